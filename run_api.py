"""
Starts the church admin API (uvicorn, church_admin.main:app).

HOST, PORT, DATABASE_URL / DB_PATH and the STORAGE_* keys come from the
environment or .env; see .env.example. Tables are created on startup, so a
fresh SQLite file only needs `church-admin-seed` for sample zones and
ministries.
"""

import logging
import sys

from church_admin.main import run

STARTUP_HINTS = (
    "DATABASE_URL or DB_PATH points somewhere unreachable or unwritable",
    "PORT is already taken by another process",
    "a Postgres DATABASE_URL without its driver installed",
    "package not installed: pip install -e .",
)


def main() -> None:
    try:
        run()
    except Exception:
        logging.basicConfig(level=logging.ERROR)
        logging.exception("Church admin API did not start")
        print("\nChurch admin API did not start. Check the traceback above; usually one of:", file=sys.stderr)
        for hint in STARTUP_HINTS:
            print(f"  - {hint}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
