#!/usr/bin/env python3
"""Run the Patient Registry web server."""
import logging
import os

from dotenv import load_dotenv
load_dotenv()

from patient_registry.config import get_settings


def main():
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    reload = os.getenv("SERVER_RELOAD", "false").lower() == "true"

    print(f"""
    Patient Registration System
      URL:        http://{settings.API_HOST}:{settings.API_PORT}
      API Docs:   http://{settings.API_HOST}:{settings.API_PORT}/docs
      Hot Reload: {reload}
    """)

    uvicorn.run(
        "server.app:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=reload,
    )


if __name__ == "__main__":
    main()
