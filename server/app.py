"""FastAPI web server for the Patient Registry."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, NoReturn, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from patient_registry.config import Settings, get_settings
from patient_registry.context import RegistryContext
from patient_registry.db.query_gateway import SAMPLE_QUERIES
from patient_registry.errors import (
    InitializationError,
    QueryDeniedError,
    QueryError,
    RepositoryError,
    ValidationError,
)
from patient_registry.models.patient import PatientFields

logger = logging.getLogger(__name__)


# Request/Response Models
class PatientIn(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class QueryRequest(BaseModel):
    sql: str


class QueryResponse(BaseModel):
    count: int
    rows: list[dict[str, Any]]
    timestamp: str


def _registry(request: Request) -> RegistryContext:
    registry: Optional[RegistryContext] = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Database not initialized")
    return registry


def _fields(patient: PatientIn) -> PatientFields:
    return PatientFields.from_mapping(patient.model_dump())


def _raise_http(e: Exception) -> NoReturn:
    """Translate registry errors into readable HTTP errors."""
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e)) from e
    if isinstance(e, QueryDeniedError):
        raise HTTPException(status_code=403, detail=str(e)) from e
    if isinstance(e, QueryError):
        raise HTTPException(status_code=400, detail=f"Query error: {e}") from e
    if isinstance(e, InitializationError):
        raise HTTPException(status_code=503, detail="Database could not be initialized; reload the application") from e
    if isinstance(e, RepositoryError):
        raise HTTPException(status_code=400, detail=f"Failed to {e.operation} patient: {e}") from e
    raise e


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the registry session on startup."""
        registry = RegistryContext(settings)
        app.state.refresh_trigger = 0

        def _on_refresh() -> None:
            app.state.refresh_trigger += 1

        tab = registry.attach_tab(on_refresh=_on_refresh)
        registry.handle.acquire()
        tab.start()
        app.state.registry = registry
        logger.info(f"Server started - DB strategy: {registry.handle.active_strategy.name}")
        yield

        app.state.registry = None
        registry.close()
        logger.info("Server shutting down")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Patient registration form, record list and SQL console",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/status")
    async def get_status(request: Request):
        """Get system status."""
        registry = _registry(request)
        strategy = registry.handle.active_strategy
        try:
            total = registry.patients.count()
        except (RepositoryError, InitializationError) as e:
            _raise_http(e)
        return {
            "status": "ok",
            "version": settings.APP_VERSION,
            "timestamp": datetime.now().isoformat(),
            "database": {
                "strategy": strategy.name if strategy else None,
                "durable": strategy.durable if strategy else None,
                "generation": registry.handle.generation,
            },
            "patients": total,
            "refresh_trigger": request.app.state.refresh_trigger,
        }

    @app.get("/api/patients")
    async def list_patients(request: Request):
        """List all patients ordered by last name, first name."""
        registry = _registry(request)
        try:
            patients = registry.registration.records()
        except (RepositoryError, InitializationError) as e:
            _raise_http(e)
        return {"count": len(patients), "patients": [p.to_dict() for p in patients]}

    @app.post("/api/patients", status_code=201)
    async def create_patient(request: Request, patient: PatientIn):
        """Register a new patient."""
        registry = _registry(request)
        try:
            patient_id = registry.registration.register(_fields(patient))
        except (ValidationError, RepositoryError, InitializationError) as e:
            _raise_http(e)
        return {"status": "created", "id": patient_id}

    @app.get("/api/patients/{patient_id}")
    async def get_patient(request: Request, patient_id: int):
        registry = _registry(request)
        try:
            found = registry.registration.record(patient_id)
        except (RepositoryError, InitializationError) as e:
            _raise_http(e)
        if found is None:
            raise HTTPException(status_code=404, detail=f"Patient {patient_id} not found")
        return found.to_dict()

    @app.put("/api/patients/{patient_id}")
    async def update_patient(request: Request, patient_id: int, patient: PatientIn):
        """Replace all editable fields of a patient."""
        registry = _registry(request)
        try:
            changed = registry.registration.edit(patient_id, _fields(patient))
        except (ValidationError, RepositoryError, InitializationError) as e:
            _raise_http(e)
        if not changed:
            raise HTTPException(status_code=404, detail=f"Patient {patient_id} not found")
        return {"status": "updated", "id": patient_id}

    @app.delete("/api/patients/{patient_id}")
    async def delete_patient(request: Request, patient_id: int):
        registry = _registry(request)
        try:
            removed = registry.registration.remove(patient_id)
        except (RepositoryError, InitializationError) as e:
            _raise_http(e)
        if not removed:
            raise HTTPException(status_code=404, detail=f"Patient {patient_id} not found")
        return {"status": "deleted", "id": patient_id}

    @app.post("/api/query", response_model=QueryResponse)
    async def run_query(request: Request, query: QueryRequest):
        """Run a console statement and return rows or a command summary."""
        registry = _registry(request)
        try:
            rows = registry.queries.execute(query.sql)
        except (QueryError, InitializationError) as e:
            _raise_http(e)
        return QueryResponse(count=len(rows), rows=rows, timestamp=datetime.now().isoformat())

    @app.get("/api/query/samples")
    async def sample_queries():
        return {"samples": SAMPLE_QUERIES}

    return app


app = create_app()
