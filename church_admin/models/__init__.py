# church_admin/models/__init__.py
# Central import surface for SQLModel table registration.
# Keeping these imports ensures init_db() sees all models and creates tables.

from .member import Member, MemberStatus, MembershipType
from .ministry import Ministry, MinistryLeader, MemberMinistry

# Pastoral structure
from .zone import Zone, SaleGroup

# Configuration + reporting
from .church_setting import ChurchSetting
from .report import Report

__all__ = [
    "Member",
    "MemberStatus",
    "MembershipType",
    "Ministry",
    "MinistryLeader",
    "MemberMinistry",
    "Zone",
    "SaleGroup",
    "ChurchSetting",
    "Report",
]
