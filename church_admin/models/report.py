from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Column
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field

from .common import new_id, utcnow


class Report(SQLModel, table=True):
    """
    Persisted snapshot of a generated report.

    file_path is a logical name; its extension (.csv / .json) picks the
    download format. The payload itself lives in `data`.
    """

    __tablename__ = "reports"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    title: str = Field(max_length=200)
    report_type: str = Field(index=True, max_length=32)
    period: str = Field(default="1month", max_length=16)

    data: Any = Field(default=None, sa_column=Column(JSON))
    file_path: Optional[str] = Field(default=None, max_length=512)

    created_at: datetime = Field(default_factory=utcnow, index=True)
