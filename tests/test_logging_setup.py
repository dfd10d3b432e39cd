from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from lunchsync import logging_setup


@pytest.fixture()
def pkg_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    logger = logging.getLogger("lunchsync")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_configure_attaches_one_handler(pkg_logger: logging.Logger) -> None:
    buf = io.StringIO()

    logging_setup.configure_logging("debug", fmt="%(name)s:%(message)s", stream=buf)
    logging_setup.configure_logging("error", stream=io.StringIO())
    logging_setup.get_logger("lunchsync.push").debug("hello")

    stream_handlers = [h for h in pkg_logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(stream_handlers) == 1
    assert pkg_logger.level == logging.DEBUG
    assert buf.getvalue() == "lunchsync.push:hello\n"


def test_level_comes_from_env(
    pkg_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LUNCHSYNC_LOG_LEVEL", "warning")

    logging_setup.configure_logging(stream=io.StringIO())

    assert pkg_logger.level == logging.WARNING


def test_unknown_level_is_rejected(pkg_logger: logging.Logger) -> None:
    with pytest.raises(ValueError, match="unknown log level"):
        logging_setup.configure_logging("chatty")
