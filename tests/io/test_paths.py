from pathlib import Path
import pytest
from shipping_rate_analysis.io.paths import derive_output_paths, STORE_DIRNAME


def test_derive_output_paths_happy_path(tmp_path: Path):
    src = tmp_path / "Shipments_Q3-2024.csv"
    src.write_text("placeholder")

    store, log = derive_output_paths(src)
    assert store == src.parent / STORE_DIRNAME
    assert log.parent == src.parent
    assert log.name == f"{src.stem}.log"


def test_derive_output_paths_explicit_store(tmp_path: Path):
    src = tmp_path / "s.xlsx"
    src.write_text("placeholder")
    store, _ = derive_output_paths(src, tmp_path / "elsewhere")
    assert store == tmp_path / "elsewhere"


def test_derive_output_paths_missing_input_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        derive_output_paths(tmp_path / "missing.csv")
