# src/shipping_rate_analysis/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from shipping_rate_analysis.errors import RateAnalysisError
from shipping_rate_analysis.models import EnvCfg


class EnvError(RateAnalysisError):
    """Raised when required environment variables are missing or malformed."""


REQUIRED_KEYS: Tuple[str, ...] = (
    "QUOTE_SERVICE_URL",
    "QUOTE_SERVICE_TOKEN",
)

# EnvCfg field -> environment variable
_OPTIONAL_KEYS: Dict[str, str] = {
    "MARKUP_PERCENT": "RATE_ANALYSIS_MARKUP_PERCENT",
    "BATCH_SIZE": "RATE_ANALYSIS_BATCH_SIZE",
    "MAX_WORKERS": "RATE_ANALYSIS_MAX_WORKERS",
    "DUPLICATE_WINDOW_SECONDS": "RATE_ANALYSIS_DUPLICATE_WINDOW_SECONDS",
    "MAPPING_MODE": "RATE_ANALYSIS_MAPPING_MODE",
}


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load the nearest `.env` (searching upward from `start` or CWD).
    Existing process variables win unless `override=True`.
    Returns the resolved path, or Path() when nothing was found.
    """
    start_path = Path.cwd() if start is None else Path(start)

    found = find_dotenv(filename=".env", usecwd=True)
    dotenv_path = Path(found) if found else Path()

    if not found:
        for p in (start_path, *start_path.parents):
            candidate = p / ".env"
            if candidate.exists():
                dotenv_path = candidate
                break

    if not dotenv_path.exists() or dotenv_path.is_dir():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise EnvError(f"Missing required environment variable: {name}")
    return value


def env(name: str, *, default=None, required: bool = False, cast: Optional[Callable] = None):
    """
    Test-friendly accessor.

    - Missing and `required` -> KeyError(name).
    - `cast` is applied to the raw string; cast errors propagate.
    - Missing and not required -> `default` (not cast).
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        if required:
            raise KeyError(name)
        return default
    if cast is not None:
        return cast(raw)
    return raw


def _parse_dotenv_lines(text: str) -> Dict[str, str]:
    """Parse .env content: `export` prefixes, quoted values, ` #` comments."""
    out: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        if " #" in v:
            v = v.split(" #", 1)[0]
        out[k.strip()] = v.strip().strip('"').strip("'")
    return out


def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load a .env into the process environment and return the pairs it held.

    With `strict=True`, every key in `required_keys` must be set afterwards
    or EnvError is raised.
    """
    loaded: Dict[str, str] = {}

    if dotenv_path:
        path = Path(dotenv_path)
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
            loaded = _parse_dotenv_lines(path.read_text(encoding="utf-8"))
    else:
        path = load_project_dotenv(override=override)
        if path and path.exists():
            loaded = _parse_dotenv_lines(path.read_text(encoding="utf-8"))

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise EnvError(f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def _typed(name: str, cast: Callable, default):
    try:
        return env(name, default=default, cast=cast)
    except ValueError as e:
        raise EnvError(f"Invalid value for {name}: {os.getenv(name)!r}") from e


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = True) -> EnvCfg:
    """
    Load settings and return a typed EnvCfg.

    `dotenv_path=None` skips file loading (tests). Process values are never
    overridden by the file. With `strict=True` the quoting service URL and
    token must be present.
    """
    if dotenv_path:
        load_env(Path(dotenv_path), override=False)

    if strict:
        missing = [k for k in REQUIRED_KEYS if not os.getenv(k)]
        if missing:
            raise EnvError(f"Missing required environment variable(s): {', '.join(missing)}")

    defaults = EnvCfg()
    return EnvCfg(
        QUOTE_SERVICE_URL=os.getenv("QUOTE_SERVICE_URL", ""),
        QUOTE_SERVICE_TOKEN=os.getenv("QUOTE_SERVICE_TOKEN", ""),
        MARKUP_PERCENT=_typed(_OPTIONAL_KEYS["MARKUP_PERCENT"], float, defaults.MARKUP_PERCENT),
        BATCH_SIZE=_typed(_OPTIONAL_KEYS["BATCH_SIZE"], int, defaults.BATCH_SIZE),
        MAX_WORKERS=_typed(_OPTIONAL_KEYS["MAX_WORKERS"], int, defaults.MAX_WORKERS),
        DUPLICATE_WINDOW_SECONDS=_typed(
            _OPTIONAL_KEYS["DUPLICATE_WINDOW_SECONDS"], int, defaults.DUPLICATE_WINDOW_SECONDS),
        MAPPING_MODE=_typed(_OPTIONAL_KEYS["MAPPING_MODE"], str, defaults.MAPPING_MODE),
    )


__all__ = [
    "EnvError",
    "REQUIRED_KEYS",
    "load_project_dotenv",
    "load_env",
    "get_env",
    "get_required_env",
    "env",
    "get_app_env",
]
