from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List

from ..config import settings

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = settings.member_id_prefix
DEFAULT_WIDTH = settings.member_id_width


def generate_member_id(
    existing_ids: Iterable[str] = (),
    *,
    prefix: str = DEFAULT_PREFIX,
    width: int = DEFAULT_WIDTH,
) -> str:
    """
    Next sequential member id: prefix + zero-padded (max + 1).

    Example: ["MKC000001", "MKC000007", "legacy-1"] -> "MKC000008"

    Ids without the prefix, or with a non-numeric suffix, are ignored.
    The caller owns collision handling (the id is the primary key).
    """
    numbers: List[int] = []
    for raw in existing_ids:
        if not raw or not raw.startswith(prefix):
            continue
        suffix = raw[len(prefix):]
        if suffix.isdigit():
            numbers.append(int(suffix))

    next_number = max(numbers) + 1 if numbers else 1
    return f"{prefix}{str(next_number).zfill(width)}"


def is_valid_member_id(
    member_id: str,
    *,
    prefix: str = DEFAULT_PREFIX,
    width: int = DEFAULT_WIDTH,
) -> bool:
    if not member_id:
        return False
    return re.fullmatch(rf"{re.escape(prefix)}\d{{{width}}}", member_id) is not None


def convert_to_member_id_format(
    existing_ids: Iterable[str],
    *,
    prefix: str = DEFAULT_PREFIX,
    width: int = DEFAULT_WIDTH,
) -> Dict[str, str]:
    """
    Map legacy ids to the prefixed format, numbered by their position.
    Already-prefixed ids are left out of the mapping.
    """
    mapping: Dict[str, str] = {}
    for index, raw in enumerate(existing_ids):
        if raw.startswith(prefix):
            continue
        mapping[raw] = f"{prefix}{str(index + 1).zfill(width)}"
    return mapping
