from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field

from .common import new_id, utcnow


class Ministry(SQLModel, table=True):
    """
    A ministry (worship team, youth, outreach, ...).

    notes keeps the human-entered free text plus the "Requirements:",
    "Contact Email:", "Contact Phone:" and "Leader:" lines written at creation.
    Leaders themselves live in MinistryLeader; see services.ministry_notes.
    """

    __tablename__ = "ministries"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    name: str = Field(index=True, unique=True, max_length=128)
    description: Optional[str] = Field(default=None)

    meeting_day: Optional[str] = Field(default=None, max_length=16)
    meeting_time: Optional[str] = Field(default=None, max_length=16)
    location: Optional[str] = Field(default=None, max_length=200)
    capacity: Optional[int] = Field(default=None)

    is_active: bool = Field(default=True, index=True)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class MinistryLeader(SQLModel, table=True):
    """
    Explicit leadership row. position keeps the order leaders were entered in.
    """

    __tablename__ = "ministry_leaders"
    __table_args__ = (UniqueConstraint("ministry_id", "name", name="uq_ministry_leader_name"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    ministry_id: str = Field(foreign_key="ministries.id", index=True)
    name: str = Field(max_length=200)
    position: int = Field(default=0)

    # Optional link when the leader is also a registered member
    member_id: Optional[str] = Field(default=None, foreign_key="members.id", index=True)

    created_at: datetime = Field(default_factory=utcnow)


class MemberMinistry(SQLModel, table=True):
    """
    Join row between Member and Ministry.

    Removal is soft (is_active=False) so participation history survives;
    the partial unique index allows one *active* row per (member, ministry).
    """

    __tablename__ = "member_ministries"
    __table_args__ = (
        Index(
            "uq_member_ministry_active",
            "member_id",
            "ministry_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)

    member_id: str = Field(foreign_key="members.id", index=True)
    ministry_id: str = Field(foreign_key="ministries.id", index=True)

    role: str = Field(default="MEMBER", max_length=64)
    joined_at: datetime = Field(default_factory=utcnow)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
