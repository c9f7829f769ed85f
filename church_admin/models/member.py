from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import Column
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field

from .common import utcnow


class MemberStatus(str, Enum):
    """
    Member lifecycle. INACTIVE doubles as "pending" on the registration dashboard.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TRANSFERRED = "TRANSFERRED"
    SUSPENDED = "SUSPENDED"


class MembershipType(str, Enum):
    REGULAR = "REGULAR"
    ASSOCIATE = "ASSOCIATE"
    HONORARY = "HONORARY"


class Member(SQLModel, table=True):
    """
    A registered church member.

    Notes:
    - id is the human-readable member number (MKC000001), allocated by
      services.member_ids and protected by the primary key.
    - email is unique at the database level; NULLs are allowed many times.
    - zone_id follows the sale group's zone when a sale group is set.
    - children_ages / children_info / unique_skills are JSON lists.
    """

    __tablename__ = "members"

    id: str = Field(primary_key=True, max_length=32)

    first_name: str = Field(index=True, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: str = Field(index=True, max_length=100)

    email: Optional[str] = Field(default=None, index=True, unique=True, max_length=254)
    phone: Optional[str] = Field(default=None, index=True, max_length=32)

    # Address
    subcity: Optional[str] = Field(default=None, max_length=100)
    kebele: Optional[str] = Field(default=None, max_length=100)
    special_place_name: Optional[str] = Field(default=None, max_length=200)

    # Personal
    date_of_birth: Optional[date] = Field(default=None, index=True)
    gender: Optional[str] = Field(default=None, max_length=16)
    marital_status: Optional[str] = Field(default=None, max_length=16)
    number_of_children: Optional[int] = Field(default=None)
    children_ages: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    children_info: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    profession: Optional[str] = Field(default=None, max_length=200)
    unique_skills: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    education_level: Optional[str] = Field(default=None, max_length=32)

    emergency_contact_name: Optional[str] = Field(default=None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=32)

    # Public URL, or "local:<filename>" when the object store was unreachable
    profile_image: Optional[str] = Field(default=None, max_length=1024)

    # Pastoral placement
    sale_group_id: Optional[str] = Field(default=None, foreign_key="sale_groups.id", index=True)
    zone_id: Optional[str] = Field(default=None, foreign_key="zones.id", index=True)

    notes: Optional[str] = Field(default=None)

    status: MemberStatus = Field(default=MemberStatus.ACTIVE, index=True)
    membership_type: MembershipType = Field(default=MembershipType.REGULAR, index=True)
    membership_date: date = Field(default_factory=date.today)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    # -------------------------
    # Convenience helpers
    # -------------------------

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def touch(self) -> None:
        self.updated_at = utcnow()
