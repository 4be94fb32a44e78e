"""Patient domain model: the single entity stored by the registry."""

from __future__ import annotations

from dataclasses import dataclass, fields as dataclass_fields
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional


class Gender(str, Enum):
    """Recommended values for ``gender``; the column itself accepts any text."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


REQUIRED_FIELDS = ("first_name", "last_name", "date_of_birth", "gender")
OPTIONAL_FIELDS = ("email", "phone", "address")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


@dataclass
class PatientFields:
    """The mutable column set written by insert and update (full replace)."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.date_of_birth, date):
            self.date_of_birth = self.date_of_birth.isoformat()
        if isinstance(self.gender, Gender):
            self.gender = self.gender.value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PatientFields":
        """Build from a form/JSON mapping, ignoring unknown keys."""
        known = {f.name for f in dataclass_fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not _blank_to_none(getattr(self, name))]

    def to_params(self) -> tuple[Any, ...]:
        """Column values in schema order; blank optional fields become NULL."""
        return (
            self.first_name,
            self.last_name,
            self.date_of_birth,
            self.gender,
            _blank_to_none(self.email),
            _blank_to_none(self.phone),
            _blank_to_none(self.address),
        )


@dataclass
class Patient:
    """A stored patient row."""

    id: int
    first_name: str
    last_name: str
    date_of_birth: str
    gender: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def fields(self) -> PatientFields:
        return PatientFields(
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            email=self.email,
            phone=self.phone,
            address=self.address,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Patient":
        return cls(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            date_of_birth=str(row["date_of_birth"]),
            gender=row["gender"],
            email=row.get("email"),
            phone=row.get("phone"),
            address=row.get("address"),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )
