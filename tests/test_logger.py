"""Tests for log file setup and retention."""

from freezegun import freeze_time

from logger import _prune_old_logs, logger, setup_logging


@freeze_time("2026-03-20 09:00:00")
def test_prune_old_logs(tmp_path):
    for name in ("2026-03-01.log", "2026-03-06.log", "2026-03-19.log", "notes.txt"):
        (tmp_path / name).write_text("x")

    _prune_old_logs(tmp_path, keep_days=14)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["2026-03-06.log", "2026-03-19.log", "notes.txt"]


@freeze_time("2026-03-20 09:00:00")
def test_setup_logging_writes_dated_file(tmp_path):
    original = list(logger.handlers)
    original_level = logger.level
    try:
        configured = setup_logging(tmp_path, "DEBUG")
        configured.info("Reminder engine started")
        for handler in configured.handlers:
            handler.flush()

        assert configured is logger
        content = (tmp_path / "2026-03-20.log").read_text(encoding="utf-8")
        assert "| INFO     | nudgebot | Reminder engine started" in content
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = original
        logger.setLevel(original_level)
