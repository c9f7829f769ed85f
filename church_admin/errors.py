from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes we translate
_PG_UNIQUE = "23505"
_PG_FOREIGN_KEY = "23503"
_PG_NOT_NULL = "23502"

_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w.]+)")
_PG_KEY_RE = re.compile(r"Key \(([^)]+)\)")

GENERIC_DB_ERROR = "An unexpected database error occurred. Please contact support if this persists."


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    """
    The one error envelope every route returns.
    """
    body: Dict[str, Any] = {"success": False, "error": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _pgcode(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _unique_field(message: str) -> str:
    m = _SQLITE_UNIQUE_RE.search(message)
    if m:
        # "members.email" -> "email"; composite keys report the first column
        return m.group(1).split(",")[0].split(".")[-1]
    m = _PG_KEY_RE.search(message)
    if m:
        return m.group(1).split(",")[0].strip()
    return "field"


def describe_db_error(exc: SQLAlchemyError) -> Tuple[int, str]:
    """
    Map a driver/ORM error to (http_status, user-facing message).

    - unique violation      -> 409
    - foreign key violation -> 400
    - not null violation    -> 400
    - connection / timeout  -> 503
    - anything else         -> 500
    """
    message = str(getattr(exc, "orig", None) or exc)
    lowered = message.lower()

    if isinstance(exc, IntegrityError):
        code = _pgcode(exc)
        if code == _PG_UNIQUE or "unique constraint" in lowered or "duplicate key" in lowered:
            return 409, f"A record with this {_unique_field(message)} already exists."
        if code == _PG_FOREIGN_KEY or "foreign key" in lowered:
            return 400, "Cannot complete this operation because the record is referenced by other records."
        if code == _PG_NOT_NULL or "not null" in lowered:
            return 400, "A required field is missing."
        return 400, "Invalid data provided for one or more fields."

    if isinstance(exc, OperationalError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
        if "timeout" in lowered or "timed out" in lowered:
            return 503, "Database operation timed out. Please try again."
        if "closed" in lowered:
            return 503, "Database connection was closed. Please try again."
        return 503, "Database connection failed. Please try again later."

    return 500, GENERIC_DB_ERROR


def db_failure(exc: SQLAlchemyError, fallback: str) -> HTTPException:
    """
    Build the HTTPException a route raises after a failed DB call.
    Unknown errors get the route's own fallback message.
    """
    status, message = describe_db_error(exc)
    if status == 500:
        message = fallback
    return HTTPException(status_code=status, detail=message)
