from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

STORE_DIRNAME = "_rate_analyses"


def derive_output_paths(input_file: Path, store_dir: Optional[Path] = None) -> Tuple[Path, Path]:
    """
    Given an upload path, return (store_dir, log_path).

    The store defaults to `<input dir>/_rate_analyses`; the log sits next to
    the input with a `.log` extension.

    Raises FileNotFoundError if input_file doesn't exist (explicit early signal for CLI).
    """
    p = Path(input_file)
    if not p.exists():
        raise FileNotFoundError(p)

    store = Path(store_dir) if store_dir is not None else p.parent / STORE_DIRNAME
    log = p.with_suffix(".log")
    return store, log
