"""
Structured lines inside Ministry.notes.

Ministries created through the registration form carry lines like:

    Requirements: Must attend orientation
    Contact Email: youth@example.org
    Contact Phone: +251 911 000000
    Leader: Ann
    Leader: Ben

Leaders are stored as MinistryLeader rows; the "Leader:" lines are still
written (so exported notes read the same) and parsed back for older rows
that have no leader records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

LEADER_PREFIX = "Leader: "
REQUIREMENTS_PREFIX = "Requirements: "
CONTACT_EMAIL_PREFIX = "Contact Email: "
CONTACT_PHONE_PREFIX = "Contact Phone: "


@dataclass
class MinistryNotes:
    leaders: List[str] = field(default_factory=list)
    requirements: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    # Lines that are none of the above, in order
    free_text: List[str] = field(default_factory=list)


def clean_leaders(names: Iterable[Optional[str]]) -> List[str]:
    """Strip, drop blanks, de-duplicate keeping first occurrence."""
    out: List[str] = []
    for raw in names:
        name = (raw or "").strip()
        if name and name not in out:
            out.append(name)
    return out


def compose_notes(
    *,
    leaders: Iterable[str] = (),
    requirements: Optional[str] = None,
    contact_email: Optional[str] = None,
    contact_phone: Optional[str] = None,
) -> Optional[str]:
    lines: List[str] = []
    if requirements and requirements.strip():
        lines.append(f"{REQUIREMENTS_PREFIX}{requirements.strip()}")
    if contact_email and contact_email.strip():
        lines.append(f"{CONTACT_EMAIL_PREFIX}{contact_email.strip()}")
    if contact_phone and contact_phone.strip():
        lines.append(f"{CONTACT_PHONE_PREFIX}{contact_phone.strip()}")
    for name in clean_leaders(leaders):
        lines.append(f"{LEADER_PREFIX}{name}")
    return "\n".join(lines) if lines else None


def parse_notes(notes: Optional[str]) -> MinistryNotes:
    parsed = MinistryNotes()
    if not notes:
        return parsed

    for line in notes.splitlines():
        if line.startswith(LEADER_PREFIX):
            name = line[len(LEADER_PREFIX):].strip()
            if name and name not in parsed.leaders:
                parsed.leaders.append(name)
        elif line.startswith(REQUIREMENTS_PREFIX):
            parsed.requirements = line[len(REQUIREMENTS_PREFIX):].strip() or None
        elif line.startswith(CONTACT_EMAIL_PREFIX):
            parsed.contact_email = line[len(CONTACT_EMAIL_PREFIX):].strip() or None
        elif line.startswith(CONTACT_PHONE_PREFIX):
            parsed.contact_phone = line[len(CONTACT_PHONE_PREFIX):].strip() or None
        elif line.strip():
            parsed.free_text.append(line)
    return parsed


def replace_leader_lines(notes: Optional[str], leaders: Iterable[str]) -> Optional[str]:
    """Rewrite the "Leader:" lines of existing notes, keeping every other line."""
    kept = [line for line in (notes or "").splitlines() if not line.startswith(LEADER_PREFIX)]
    kept.extend(f"{LEADER_PREFIX}{name}" for name in clean_leaders(leaders))
    text = "\n".join(line for line in kept if line.strip())
    return text or None
