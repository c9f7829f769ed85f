from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import new_id, utcnow


class ChurchSetting(SQLModel, table=True):
    """
    Key-value configuration row, upserted by key.
    value is always stored as text; callers decide how to interpret it.
    """

    __tablename__ = "church_settings"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    key: str = Field(index=True, unique=True, max_length=128)
    value: str = Field(default="")
    category: str = Field(default="general", index=True, max_length=64)
    description: Optional[str] = Field(default=None)
    is_public: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)
