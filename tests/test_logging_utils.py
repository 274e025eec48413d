import logging

from palcontrol.logging_utils import PERFORMANCE_LOGGER, perf_timer, setup_logging


def test_perf_timer_logs_when_performance_logger_enabled(caplog):
    with caplog.at_level(logging.DEBUG, logger=PERFORMANCE_LOGGER):
        with perf_timer("Comprobación del monitor"):
            pass

    records = [r for r in caplog.records if r.name == PERFORMANCE_LOGGER]
    assert len(records) == 1
    assert records[0].getMessage().startswith("Comprobación del monitor completado en")


def test_perf_timer_is_silent_by_default(caplog):
    with caplog.at_level(logging.INFO, logger=PERFORMANCE_LOGGER):
        with perf_timer("Comprobación del monitor"):
            pass

    assert [r for r in caplog.records if r.name == PERFORMANCE_LOGGER] == []


def test_setup_logging_toggles_performance_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    performance = logging.getLogger(PERFORMANCE_LOGGER)
    try:
        setup_logging("INFO", performance=True)
        assert performance.isEnabledFor(logging.DEBUG)

        setup_logging("INFO", performance=False)
        assert not performance.isEnabledFor(logging.DEBUG)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
        performance.setLevel(logging.NOTSET)
