from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class EnvCfg:
    """Typed shape of the settings get_app_env() resolves."""
    QUOTE_SERVICE_URL: str = ""
    QUOTE_SERVICE_TOKEN: str = ""
    MARKUP_PERCENT: float = 0.0
    BATCH_SIZE: int = 500
    MAX_WORKERS: int = 4
    DUPLICATE_WINDOW_SECONDS: int = 300
    MAPPING_MODE: str = "conservative"
