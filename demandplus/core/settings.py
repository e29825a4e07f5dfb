"""Application settings loaded from .env."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()

STORAGE_BACKENDS = ("local", "firestore")


def _as_int(raw: str | None, default: int) -> int:
    try:
        return int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "sim", "on")


def _resolve_project_path(raw: str, project_root: Path) -> Path:
    path = Path(raw).expanduser()
    if path.is_absolute():
        return path
    return (project_root / path).resolve()


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the DEMAND+ application."""

    storage_backend: str
    data_file: Path
    admin_access_code: str
    viewer_access_code: str
    gemini_api_key: str
    gemini_model: str
    notifications_enabled: bool
    log_level: str
    session_timeout_minutes: int

    @classmethod
    def from_env(cls) -> "Settings":
        project_root = Path(__file__).resolve().parents[2]
        data_default = project_root / "data" / "demand_plus.json"

        data_file_raw = os.getenv("DEMANDPLUS_DATA_FILE", str(data_default)).strip() or str(data_default)
        backend = os.getenv("DEMANDPLUS_STORAGE_BACKEND", "local").strip().lower() or "local"

        return cls(
            storage_backend=backend,
            data_file=_resolve_project_path(data_file_raw, project_root),
            admin_access_code=os.getenv("DEMANDPLUS_ADMIN_CODE", "").strip(),
            viewer_access_code=os.getenv("DEMANDPLUS_VIEWER_CODE", "").strip(),
            gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-3-flash-preview").strip() or "gemini-3-flash-preview",
            notifications_enabled=_as_bool(os.getenv("DEMANDPLUS_NOTIFICATIONS"), True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper().strip() or "INFO",
            session_timeout_minutes=_as_int(os.getenv("SESSION_TIMEOUT_MINUTES"), 30),
        )

    def validate(self) -> None:
        missing = []
        if not self.admin_access_code:
            missing.append("DEMANDPLUS_ADMIN_CODE")
        if not self.viewer_access_code:
            missing.append("DEMANDPLUS_VIEWER_CODE")
        if missing:
            missing_str = ", ".join(missing)
            raise ValueError(f"Variaveis obrigatorias ausentes no .env: {missing_str}")
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"DEMANDPLUS_STORAGE_BACKEND invalido: '{self.storage_backend}'. Use {' ou '.join(STORAGE_BACKENDS)}."
            )
        if self.admin_access_code == self.viewer_access_code:
            raise ValueError("Os codigos de acesso ADMIN e VIEWER devem ser diferentes.")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Returns cached settings instance."""
    return Settings.from_env()
