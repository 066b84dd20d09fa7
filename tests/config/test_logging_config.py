from pathlib import Path
import logging

from shipping_rate_analysis.config.logging_config import (
    get_logger,
    default_log_path_for_input,
)


def _reset(name):
    lg = logging.getLogger(name)
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()
    return lg


def test_default_log_path_for_input():
    assert default_log_path_for_input("/x/y/shipments.xlsx") == Path("/x/y/shipments.log")
    assert default_log_path_for_input("file.csv") == Path("file.log")


def test_get_logger_idempotent_no_duplicate_handlers(tmp_path):
    _reset("sra.test")
    log_path = tmp_path / "run.log"
    logger = get_logger("sra.test", level="DEBUG", log_file=log_path, console=False)
    logger2 = get_logger("sra.test", level="DEBUG", log_file=log_path, console=False)

    assert logger is logger2
    assert len(logger.handlers) == 1


def test_get_logger_adds_console_handler():
    _reset("sra.console")
    logger = get_logger("sra.console", level="INFO", console=True, log_file=None)
    shs = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(shs) == 1
    assert logger.propagate is False


def test_get_logger_writes_to_file_with_format(tmp_path):
    _reset("sra.file")
    log_file = tmp_path / "logs" / "app.log"
    logger = get_logger("sra.file", level="INFO", log_file=log_file, console=False)
    logger.info("priced %d shipments", 3)

    content = log_file.read_text(encoding="utf-8")
    assert "| INFO | sra.file | priced 3 shipments" in content


def test_get_logger_respects_level_env(monkeypatch, tmp_path):
    _reset("sra.level.env")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    log_file = tmp_path / "lvl.log"
    logger = get_logger("sra.level.env", log_file=log_file, console=False)

    logger.info("should NOT appear")
    logger.error("should appear")

    text = log_file.read_text(encoding="utf-8")
    assert "should appear" in text
    assert "should NOT appear" not in text


def test_unknown_level_name_falls_back_to_info():
    _reset("sra.level.bad")
    assert get_logger("sra.level.bad", level="LOUD", console=False).level == logging.INFO


def test_adding_file_later_keeps_single_console(tmp_path):
    _reset("sra.multi")
    lg1 = get_logger("sra.multi", level="INFO", console=True, log_file=None)
    lg2 = get_logger("sra.multi", level="INFO", console=True, log_file=tmp_path / "x.log")

    assert lg1 is lg2
    assert len(lg2.handlers) == 2
