from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from .common import new_id, utcnow


class Zone(SQLModel, table=True):
    """
    Geographic / pastoral grouping. Owns many SaleGroups.
    """

    __tablename__ = "zones"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    name: str = Field(index=True, unique=True, max_length=128)
    description: Optional[str] = Field(default=None)

    leader_name: Optional[str] = Field(default=None, max_length=200)
    # Optional: leader as a registered member (no FK: members also point at zones)
    leader_id: Optional[str] = Field(default=None, max_length=32)

    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class SaleGroup(SQLModel, table=True):
    """
    Small group inside a Zone. Name is unique per zone.
    """

    __tablename__ = "sale_groups"
    __table_args__ = (UniqueConstraint("zone_id", "name", name="uq_sale_group_zone_name"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    name: str = Field(index=True, max_length=128)
    leader_name: Optional[str] = Field(default=None, max_length=200)

    zone_id: str = Field(foreign_key="zones.id", index=True)

    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
