from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[3]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH)

DOCUMENTS_PATH = Path(os.path.expanduser("~")) / "Documents"
DEFAULT_BACKEND_URL = "http://localhost:5000"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    app_name: str = "School Portal"
    backend_url: str = DEFAULT_BACKEND_URL
    socket_url: str = DEFAULT_BACKEND_URL
    request_timeout: float = 10.0
    token_rotation_interval: float = 15.0
    app_data_dir: Path = DOCUMENTS_PATH / "School Portal"
    log_level: str = "INFO"

    @property
    def credentials_path(self) -> Path:
        return self.app_data_dir / "credentials.json"

    @classmethod
    def from_env(cls) -> "Settings":
        app_name = os.getenv("APP_NAME", "School Portal")
        backend_url = os.getenv("BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/")
        socket_url = (os.getenv("SOCKET_URL") or backend_url).rstrip("/")
        app_data_dir = Path(
            os.getenv("APP_DATA_DIR", str(DOCUMENTS_PATH / app_name))
        ).expanduser()
        return cls(
            app_name=app_name,
            backend_url=backend_url,
            socket_url=socket_url,
            request_timeout=_env_float("REQUEST_TIMEOUT", 10.0),
            token_rotation_interval=_env_float("TOKEN_ROTATION_INTERVAL", 15.0),
            app_data_dir=app_data_dir,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def __str__(self) -> str:
        return (
            f"Settings(app_name={self.app_name}, "
            f"backend_url={self.backend_url}, "
            f"socket_url={self.socket_url}, "
            f"request_timeout={self.request_timeout}, "
            f"token_rotation_interval={self.token_rotation_interval}, "
            f"app_data_dir={self.app_data_dir}, "
            f"log_level={self.log_level})"
        )


settings = Settings.from_env()


def refresh_settings() -> Settings:
    """Rebuild the settings object from the current environment."""

    global settings  # noqa: PLW0603 - module-level singleton

    load_dotenv(ENV_PATH, override=True)
    settings = Settings.from_env()
    return settings
