import logging

from giro.logging_utils import end_phase_timer, get_logger, log_error, log_system_event, log_warning, start_phase_timer


def test_get_logger_writes_to_configured_file(tmp_path):
    logs_dir = tmp_path / "logs"
    config = {"paths": {"logs_dir": str(logs_dir)}, "logging": {"level": "DEBUG", "file_name": "run.log"}}

    logger = get_logger("giro.test_logging", config)
    assert logger.level == logging.DEBUG
    log_system_event(logger, "starting")
    log_warning(logger, "careful")
    log_error(logger, "broken")
    for handler in logger.handlers:
        handler.flush()

    text = (logs_dir / "run.log").read_text(encoding="utf-8")
    assert "[SYSTEM] starting" in text
    assert "[WARNING] careful" in text
    assert "[ERROR] broken" in text


def test_get_logger_does_not_duplicate_handlers(tmp_path):
    config = {"paths": {"logs_dir": str(tmp_path)}}
    get_logger("giro.test_handlers", config)
    logger = get_logger("giro.test_handlers", config)
    assert len(logger.handlers) == 2
    assert logger.level == logging.INFO


def test_phase_timer_records_elapsed(tmp_path):
    logger = get_logger("giro.test_timer", {"paths": {"logs_dir": str(tmp_path)}})
    timings = {}
    started = start_phase_timer("Ingestion")
    elapsed = end_phase_timer("Ingestion", started, timings, logger)
    assert timings == {"Ingestion": elapsed}
    assert elapsed >= 0
