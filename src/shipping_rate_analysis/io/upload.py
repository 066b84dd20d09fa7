# src/shipping_rate_analysis/io/upload.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import pandas as pd

from shipping_rate_analysis.errors import UploadError

logger = logging.getLogger(__name__)

CSV_SUFFIXES = (".csv", ".txt")
EXCEL_SUFFIXES = (".xlsx", ".xlsm")


@dataclass(frozen=True)
class Upload:
    """Headers plus rows keyed by header, every cell a string ('' when empty)."""
    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)
    file_name: str = ""

    def __len__(self) -> int:
        return len(self.rows)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, file_name: str = "") -> "Upload":
        df = df.copy()
        df.columns = [str(c).strip() for c in df.columns]
        # Drop pandas' placeholder names for blank header cells
        keep = [c for c in df.columns if c and not c.startswith("Unnamed:")]
        df = df[keep].astype("string").fillna("")
        if keep and len(df):
            # Fully blank rows (trailing spreadsheet rows) are not shipments
            nonblank = (df.apply(lambda s: s.str.strip()) != "").any(axis=1)
            df = df.loc[nonblank]
        rows = [{k: str(v) for k, v in rec.items()} for rec in df.to_dict(orient="records")]
        return cls(headers=list(keep), rows=rows, file_name=file_name)

    def column(self, header: str) -> list[str]:
        return [r.get(header, "") for r in self.rows]


def read_upload(path: Union[str, Path]) -> Upload:
    """Read a CSV or Excel upload (first sheet) as strings.

    Raises FileNotFoundError when the path is missing and UploadError when
    the file cannot be parsed or carries no data rows.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    suffix = p.suffix.lower()
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(p, dtype=str, keep_default_na=False, skipinitialspace=True)
        elif suffix in EXCEL_SUFFIXES:
            df = pd.read_excel(p, sheet_name=0, engine="openpyxl", dtype=str)
        else:
            raise UploadError(f"Unsupported upload type {suffix!r} (expected .csv or .xlsx)")
    except UploadError:
        raise
    except (ValueError, OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as ex:
        raise UploadError(f"Could not read upload {p.name}: {ex}") from ex

    upload = Upload.from_frame(df, file_name=p.name)
    logger.debug("Opened upload: %s (rows=%d, cols=%d)", p.name, len(upload.rows), len(upload.headers))

    if not upload.headers:
        raise UploadError(f"Upload {p.name} has no header row")
    if not upload.rows:
        raise UploadError(f"Upload {p.name} has no data rows")
    return upload


__all__ = ["Upload", "read_upload", "CSV_SUFFIXES", "EXCEL_SUFFIXES"]
