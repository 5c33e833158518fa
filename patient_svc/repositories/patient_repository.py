"""
Repository for patient database operations.

This module contains all database access for patient-related operations.

Architecture:
    PatientRepository is the data access layer for patients.
    It should be injected via core.dependencies.get_patient_repository().

All SQL is encapsulated in this repository - no SQL in service or API layers.
Every query is parameterized; filter values are never interpolated.
"""
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from core.datetime_utils import date_to_db_string, to_db_string, utc_now
from core.exceptions import ConstraintViolationError, DatabaseError
from models.patient import COLUMNS, MUTABLE_FIELDS, Patient
from repositories.base import Database

logger = logging.getLogger(__name__)

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM patients"
_ORDER = "ORDER BY created_at DESC, id DESC"

# Largest value SQLite can bind as INTEGER
_SQLITE_MAX_INT = 2**63 - 1


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the filter matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_row_values(fields: Dict[str, Any]) -> List[Any]:
    """Mutable field values in column order, dates serialized for SQLite."""
    values = []
    for name in MUTABLE_FIELDS:
        value = fields[name]
        if name == "birth_date":
            value = date_to_db_string(value)
        values.append(value)
    return values


class PatientRepository:
    """
    Repository for patient CRUD operations.

    Writes rejected by the unique document index raise
    ConstraintViolationError; any other SQLite failure raises DatabaseError.
    """

    def __init__(self, db: Database):
        """
        Initialize the patient repository.

        Args:
            db: Database instance for data access.
                Injected via core.dependencies.get_patient_repository().
        """
        self._db = db

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and translate SQLite errors."""
        conn = self._db.get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e).upper():
                raise ConstraintViolationError(operation=operation) from e
            logger.error(f"Integrity error during {operation}: {e}")
            raise DatabaseError(operation=operation) from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error during {operation}: {e}")
            raise DatabaseError(operation=operation) from e
        finally:
            conn.close()

    def insert(self, fields: Dict[str, Any]) -> Patient:
        """
        Insert a new patient and return the stored record.

        The id and created_at timestamp are assigned here. The insert and the
        read-back share one transaction.

        Args:
            fields: Validated values for every mutable field.

        Raises:
            ConstraintViolationError: If the document pair is already taken.
        """
        placeholders = ", ".join("?" for _ in MUTABLE_FIELDS)
        with self._connection("insert") as conn:
            cursor = conn.execute(
                f"INSERT INTO patients ({', '.join(MUTABLE_FIELDS)}, created_at) "
                f"VALUES ({placeholders}, ?)",
                _to_row_values(fields) + [to_db_string(utc_now())],
            )
            row = conn.execute(f"{_SELECT} WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return Patient.from_row(row)

    def find_by_id(self, patient_id: int) -> Optional[Patient]:
        """Get a patient by id, or None if it does not exist."""
        with self._connection("find_by_id") as conn:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (patient_id,)).fetchone()
        return Patient.from_row(row) if row else None

    def exists_by_document(
        self,
        document_type: str,
        document_number: str,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether any patient holds the given document pair.

        Args:
            document_type: Document type, e.g. "CC".
            document_number: Document number.
            exclude_id: Patient id to ignore (the record being updated).
        """
        sql = "SELECT 1 FROM patients WHERE document_type = ? AND document_number = ?"
        params: List[Any] = [document_type, document_number]
        if exclude_id is not None:
            sql += " AND id != ?"
            params.append(exclude_id)

        with self._connection("exists_by_document") as conn:
            row = conn.execute(sql + " LIMIT 1", params).fetchone()
        return row is not None

    def list(
        self,
        name_filter: Optional[str] = None,
        document_number_filter: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Patient], int]:
        """
        List patients newest first with optional filters and offset paging.

        Args:
            name_filter: Substring matched against "first_name last_name".
            document_number_filter: Exact document number.
            page: 1-indexed page number; values below 1 are treated as 1.
            page_size: Items per page; values below 1 produce an empty page.

        Pages beyond what SQLite can address are empty.

        Returns:
            Tuple of (items on the requested page, total matching count).
        """
        clauses = []
        params: List[Any] = []
        if name_filter:
            clauses.append("(first_name || ' ' || last_name) LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(name_filter)}%")
        if document_number_filter:
            clauses.append("document_number = ?")
            params.append(document_number_filter)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        page = max(page, 1)
        offset = (page - 1) * page_size

        with self._connection("list") as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM patients{where}", params).fetchone()[0]
            if page_size < 1 or page_size > _SQLITE_MAX_INT or offset > _SQLITE_MAX_INT:
                rows = []
            else:
                rows = conn.execute(
                    f"{_SELECT}{where} {_ORDER} LIMIT ? OFFSET ?",
                    params + [page_size, offset],
                ).fetchall()

        return [Patient.from_row(row) for row in rows], total

    def list_created_after(self, after: datetime) -> List[Patient]:
        """Get patients created strictly after `after`, newest first."""
        with self._connection("list_created_after") as conn:
            rows = conn.execute(
                f"{_SELECT} WHERE created_at > ? {_ORDER}",
                (to_db_string(after),),
            ).fetchall()
        return [Patient.from_row(row) for row in rows]

    def update(self, patient: Patient) -> bool:
        """
        Overwrite every mutable field of a stored patient.

        id and created_at are never written.

        Returns:
            True if a row was updated, False if the id does not exist.

        Raises:
            ConstraintViolationError: If the new document pair is already taken.
        """
        assignments = ", ".join(f"{name} = ?" for name in MUTABLE_FIELDS)
        with self._connection("update") as conn:
            cursor = conn.execute(
                f"UPDATE patients SET {assignments} WHERE id = ?",
                _to_row_values(patient.mutable_fields()) + [patient.id],
            )
        return cursor.rowcount > 0

    def delete(self, patient_id: int) -> bool:
        """
        Hard-delete a patient.

        Returns:
            True if a record existed and was removed.
        """
        with self._connection("delete") as conn:
            cursor = conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
        return cursor.rowcount > 0
