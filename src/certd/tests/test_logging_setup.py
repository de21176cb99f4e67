import io
import logging
import sys

import pytest
from loguru import logger

from src.certd.logging_setup import configure_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logger.remove()
    logger.add(sys.stderr)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = []
        std_logger.propagate = True


def test_uvicorn_records_routed_to_loguru(restore_logging):
    sink = io.StringIO()
    configure_logging("info", sink=sink)

    logging.getLogger("uvicorn.error").warning("server starting")
    logging.getLogger("uvicorn.access").debug("filtered out")

    output = sink.getvalue()
    assert "WARNING" in output
    assert "server starting" in output
    assert "filtered out" not in output
