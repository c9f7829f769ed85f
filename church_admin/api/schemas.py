from __future__ import annotations

import re
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydField, field_validator
from pydantic.alias_generators import to_camel

from ..models.member import MemberStatus, MembershipType

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _upper_or_none(v: Any) -> Any:
    v = _blank_to_none(v)
    return v.upper() if isinstance(v, str) else v


class CamelModel(BaseModel):
    """
    Request bodies: camelCase on the wire, snake_case in Python.
    Unknown keys are ignored so older clients keep working.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# -----------------------------
# Members
# -----------------------------

class MemberFields(CamelModel):
    middle_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    subcity: Optional[str] = None
    kebele: Optional[str] = None
    special_place_name: Optional[str] = None

    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    number_of_children: Optional[int] = PydField(default=None, ge=0)
    children_ages: Optional[List[Any]] = None
    children_info: Optional[List[Any]] = None
    profession: Optional[str] = None
    unique_skills: Optional[List[Any]] = None
    education_level: Optional[str] = None

    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    sale_group_id: Optional[str] = None
    zone_id: Optional[str] = None
    notes: Optional[str] = None
    profile_image: Optional[str] = None

    @field_validator(
        "middle_name",
        "email",
        "phone",
        "subcity",
        "kebele",
        "special_place_name",
        "date_of_birth",
        "number_of_children",
        "profession",
        "emergency_contact_name",
        "emergency_contact_phone",
        "sale_group_id",
        "zone_id",
        "notes",
        "profile_image",
        mode="before",
    )
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("gender", "marital_status", "education_level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return _upper_or_none(v)


class MemberCreate(MemberFields):
    first_name: str = PydField(..., min_length=1)
    last_name: str = PydField(..., min_length=1)
    # Ministry name picked on the registration form
    ministry: Optional[str] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("ministry", mode="before")
    @classmethod
    def _blank_ministry(cls, v: Any) -> Any:
        return _blank_to_none(v)


class MemberUpdate(MemberFields):
    """Partial update. Only keys the client sent are applied."""

    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: Optional[MemberStatus] = None
    membership_type: Optional[MembershipType] = None
    membership_date: Optional[date] = None

    @field_validator("first_name", "last_name", "id", "membership_date", mode="before")
    @classmethod
    def _blank_required(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("status", "membership_type", mode="before")
    @classmethod
    def _upper_enum(cls, v: Any) -> Any:
        return _upper_or_none(v)


# -----------------------------
# Ministries
# -----------------------------

class MinistryFields(CamelModel):
    description: Optional[str] = None
    meeting_day: Optional[str] = None
    meeting_time: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = PydField(default=None, ge=0)
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    leader: Optional[str] = None
    leaders: Optional[List[Optional[str]]] = None

    @field_validator("description", "meeting_day", "meeting_time", "location", "capacity", "notes", "leader", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    def leader_names(self) -> List[Optional[str]]:
        names: List[Optional[str]] = list(self.leaders or [])
        if self.leader:
            names.insert(0, self.leader)
        return names


class MinistryCreate(MinistryFields):
    name: Optional[str] = None
    requirements: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    @field_validator("name", "requirements", "contact_email", "contact_phone", mode="before")
    @classmethod
    def _blank_extra(cls, v: Any) -> Any:
        return _blank_to_none(v)


class MinistryUpdate(MinistryFields):
    name: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _blank_name(cls, v: Any) -> Any:
        return _blank_to_none(v)


class MinistryMemberAdd(CamelModel):
    member_id: Optional[str] = None
    role: Optional[str] = "MEMBER"

    @field_validator("member_id", "role", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


# -----------------------------
# Zones / sale groups
# -----------------------------

class ZoneCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    leader_name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "description", "leader_name", "notes", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


class ZoneUpdate(ZoneCreate):
    leader_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("leader_id", mode="before")
    @classmethod
    def _blank_leader(cls, v: Any) -> Any:
        return _blank_to_none(v)


class SaleGroupCreate(CamelModel):
    name: Optional[str] = None
    leader_name: Optional[str] = None
    zone_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "leader_name", "zone_id", "notes", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


class SaleGroupUpdate(CamelModel):
    name: Optional[str] = None
    leader_name: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "leader_name", "notes", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


# -----------------------------
# Settings
# -----------------------------

class SettingValue(CamelModel):
    value: Any = None
    category: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None

    def text_value(self) -> str:
        if self.value is None or self.value is False or self.value == "":
            return ""
        return str(self.value)


class SettingUpsert(SettingValue):
    key: Optional[str] = None


# -----------------------------
# Reports
# -----------------------------

class ReportCreate(CamelModel):
    type: str = "membership"
    period: str = "1month"
    format: str = "csv"
    title: Optional[str] = None

    @field_validator("format", mode="before")
    @classmethod
    def _norm_format(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().lower()
        return "json" if s == "json" else "csv"
