from __future__ import annotations

import csv
import io
import json
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
JSON_MEDIA_TYPE = "application/json"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: Optional[str], fallback: str = "report") -> str:
    s = _SLUG_RE.sub("-", (text or "").strip().lower()).strip("-")
    return s or fallback


def export_format(file_path: Optional[str]) -> str:
    """.json -> "json"; anything else (including no path) -> "csv"."""
    if file_path and file_path.lower().endswith(".json"):
        return "json"
    return "csv"


def report_file_path(title: str, report_id: str, fmt: str) -> str:
    ext = "json" if fmt == "json" else "csv"
    return f"reports/{slugify(title)}-{report_id}.{ext}"


def download_filename(title: Optional[str], fmt: str, today: Optional[date] = None) -> str:
    d = today or date.today()
    ext = "json" if fmt == "json" else "csv"
    return f"{slugify(title)}-{d.isoformat()}.{ext}"


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


def to_csv(rows: Iterable[Dict[str, Any]]) -> str:
    """
    Header = union of row keys in first-seen order. Quoting is left to the
    csv module (commas, quotes and newlines get quoted).
    """
    rows = list(rows)
    headers: List[str] = []
    for r in rows:
        for k in r.keys():
            if k not in headers:
                headers.append(k)

    buf = io.StringIO()
    if not headers:
        return ""
    writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore")
    writer.writeheader()
    for r in rows:
        writer.writerow({k: _cell(r.get(k)) for k in headers})
    return buf.getvalue()


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)
