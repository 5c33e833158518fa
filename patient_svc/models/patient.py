"""
Domain model for patients.
"""
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Optional

from core.datetime_utils import date_from_db_string, from_db_string

# Fields a client may change; id and created_at are owned by the store.
MUTABLE_FIELDS = (
    "document_type",
    "document_number",
    "first_name",
    "last_name",
    "birth_date",
    "phone_number",
    "email",
)

# Column order used by every SELECT in the repository.
COLUMNS = ("id",) + MUTABLE_FIELDS + ("created_at",)


@dataclass(frozen=True)
class Patient:
    """A persisted patient record."""

    id: int
    document_type: str
    document_number: str
    first_name: str
    last_name: str
    birth_date: date
    phone_number: Optional[str]
    email: Optional[str]
    created_at: datetime

    @property
    def document(self) -> tuple:
        """The (document_type, document_number) identity pair."""
        return (self.document_type, self.document_number)

    def mutable_fields(self) -> Dict[str, Any]:
        """Current values of every client-mutable field."""
        data = asdict(self)
        return {name: data[name] for name in MUTABLE_FIELDS}

    def with_fields(self, fields: Dict[str, Any]) -> "Patient":
        """
        Return a copy with every mutable field taken from `fields`.

        id and created_at are always carried over from this record.
        """
        return replace(self, **{name: fields[name] for name in MUTABLE_FIELDS})

    @classmethod
    def from_row(cls, row: tuple) -> "Patient":
        """
        Create a Patient from a database row.

        Args:
            row: Tuple in COLUMNS order.
        """
        values = dict(zip(COLUMNS, row))
        values["birth_date"] = date_from_db_string(values["birth_date"])
        values["created_at"] = from_db_string(values["created_at"])
        return cls(**values)
