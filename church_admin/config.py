from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_origins(raw: Any) -> List[str]:
    """
    Normalize CORS allow origins from env.

    Supports:
      - list[str] (already parsed)
      - "*"
      - comma-separated string: "https://a.com, https://b.com"
    """
    if raw is None:
        return ["*"]

    if isinstance(raw, list):
        items = [str(x).strip() for x in raw]
        items = [x for x in items if x]
        return items or ["*"]

    s = str(raw).strip()
    if not s or s == "*":
        return ["*"]

    if "," in s:
        parts = [p.strip() for p in s.split(",")]
        parts = [p for p in parts if p]
        return parts or ["*"]

    return [s]


class Settings(BaseSettings):
    """
    Central app settings (backend).

    - Env var names are stable; values are normalized (CORS, log level, URLs).
    - resolved_database_url is the single source of truth for the engine.
    - Object storage is optional; uploads degrade to a local sentinel without it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="church-admin", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server runtime (uvicorn)
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    # Preferred: a real SQLAlchemy URL (SQLite locally, Postgres in production)
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default="./data/church.sqlite", alias="DB_PATH")

    # Object storage (Supabase-compatible REST API)
    storage_url: str = Field(default="", alias="STORAGE_URL")
    storage_anon_key: str = Field(default="", alias="STORAGE_ANON_KEY")
    storage_service_key: str = Field(default="", alias="STORAGE_SERVICE_KEY")
    storage_bucket: str = Field(default="member-photos", alias="STORAGE_BUCKET")
    storage_folder: str = Field(default="profiles", alias="STORAGE_FOLDER")
    max_image_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_IMAGE_BYTES")
    allowed_image_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["image/jpeg", "image/jpg", "image/png", "image/webp"],
        alias="ALLOWED_IMAGE_TYPES",
    )

    # Member ids: MKC000001, MKC000002, ...
    member_id_prefix: str = Field(default="MKC", alias="MEMBER_ID_PREFIX")
    member_id_width: int = Field(default=6, alias="MEMBER_ID_WIDTH")

    # Dashboard stats polling (client side)
    dashboard_api_base: str = Field(default="http://127.0.0.1:8000", alias="DASHBOARD_API_BASE")
    stats_poll_interval_s: float = Field(default=30.0, alias="STATS_POLL_INTERVAL_S")

    http_timeout_s: float = Field(default=20.0, alias="HTTP_TIMEOUT_S")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> list[str]:
        return _split_origins(v)

    @field_validator("allowed_image_types", mode="before")
    @classmethod
    def _norm_allowed_image_types(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [p.strip().lower() for p in v.split(",") if p.strip()]
        return v

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "127.0.0.1"

    @field_validator("storage_url", "dashboard_api_base", mode="before")
    @classmethod
    def _norm_base_url(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip().rstrip("/")

    @field_validator("database_url", "storage_anon_key", "storage_service_key", mode="before")
    @classmethod
    def _norm_str(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("db_path", mode="before")
    @classmethod
    def _norm_db_path(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "./data/church.sqlite"

    @field_validator("member_id_prefix", mode="before")
    @classmethod
    def _norm_member_id_prefix(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "MKC"

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def storage_configured(self) -> bool:
        return bool(self.storage_url and self.storage_anon_key and self.storage_service_key)

    @property
    def resolved_database_url(self) -> str:
        """
        Priority:
        1) DATABASE_URL if provided
        2) Build sqlite:/// URL from DB_PATH (file path or full sqlite URL)
        """
        if self.database_url:
            return self.database_url

        path = (self.db_path or "").strip() or "./data/church.sqlite"

        if path.startswith("sqlite:"):
            return path

        p = Path(path)
        if not p.is_absolute():
            if str(p).startswith("./"):
                return f"sqlite:///{p.as_posix()}"
            return f"sqlite:///./{p.as_posix()}"

        # Absolute path needs 4 slashes after scheme (sqlite:////abs/path)
        return f"sqlite:////{p.as_posix().lstrip('/')}"


settings = Settings()
