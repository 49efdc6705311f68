from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

# Pick up a local .env once; real environment variables win.
load_dotenv(override=False)


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 4000
    allowed_origins: Tuple[str, ...] = ()


def _split_origins(raw: str) -> Tuple[str, ...]:
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT") or 4000),
        allowed_origins=_split_origins(os.getenv("ALLOWED_ORIGINS", "")),
    )


@dataclass(frozen=True)
class StoreConfig:
    root: str = "./scenario_data"


def get_store_config() -> StoreConfig:
    return StoreConfig(root=os.getenv("SCENARIOS_ROOT", "./scenario_data"))


@dataclass(frozen=True)
class SecurityConfig:
    api_key: str | None = None
    rate_limit_n: int = 5
    rate_limit_window_sec: float = 1.0


def get_security_config() -> SecurityConfig:
    return SecurityConfig(
        api_key=os.getenv("API_KEY") or None,
        rate_limit_n=int(os.getenv("RATE_LIMIT_N", "5")),
        rate_limit_window_sec=float(os.getenv("RATE_LIMIT_WINDOW_SEC", "1.0")),
    )


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
