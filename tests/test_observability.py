import logging

from polarion_client.core.logging import LogfmtFormatter, setup_logging
from polarion_client.core.observability import log_event


def _record(msg, **extra):
    record = logging.LogRecord("polarion_client.client", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_logfmt_renders_known_extras_in_order():
    line = LogfmtFormatter().format(
        _record("op_call", tool="work_items", method="POST", status=201, duration_ms=12)
    )

    assert line == (
        "level=info logger=polarion_client.client event=op_call "
        "method=POST status=201 duration_ms=12 tool=work_items"
    )


def test_logfmt_quotes_values_with_spaces_and_quotes():
    line = LogfmtFormatter().format(_record("op.retry", error='bad "thing" here'))

    assert 'error="bad \\"thing\\" here"' in line


def test_logfmt_ignores_unknown_extras():
    line = LogfmtFormatter().format(_record("op_call", secret="x"))

    assert "secret" not in line


def test_log_event_drops_reserved_keys_and_none(caplog):
    with caplog.at_level(logging.INFO, logger="polarion_client.observability"):
        log_event("work_items.batch_created", batch=0, items=3, error=None, name="x")

    record = next(r for r in caplog.records if r.getMessage() == "work_items.batch_created")
    assert record.batch == 0
    assert record.items == 3
    assert not hasattr(record, "error")
    assert record.name == "polarion_client.observability"


def test_log_event_level_and_logger(caplog):
    log = logging.getLogger("polarion_client.services.work_items")
    with caplog.at_level(logging.WARNING, logger="polarion_client.services"):
        log_event("work_items.oversized_skipped", log, level=logging.WARNING, items=2)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.name == "polarion_client.services.work_items"


def test_setup_logging_installs_single_logfmt_handler():
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        setup_logging("debug")
        setup_logging("debug")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, LogfmtFormatter)
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
