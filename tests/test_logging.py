import logging

from tribute.logging import ProfessionalFormatter, configure_logging


def test_professional_formatter_uses_short_levels():
    fmt = ProfessionalFormatter()
    record = logging.LogRecord(
        "tribute.ledger.merge", logging.WARNING, __file__, 1, "merged %d", (3,), None
    )
    line = fmt.format(record)
    assert line.endswith("| WRN | tribute.ledger.merge | merged 3")


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(level=logging.INFO)
        configure_logging(level=logging.DEBUG)
        ours = [h for h in root.handlers if isinstance(h.formatter, ProfessionalFormatter)]
        assert len(ours) == 1
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
