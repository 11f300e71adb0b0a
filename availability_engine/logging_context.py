"""Session id correlation for engine logs.

One thread may drive several booking sessions (a console juggling rivals,
a request handler resuming snapshots), so the id is bound around each
session operation rather than once per thread. Records pick it up through
SessionIdFilter, attached to session loggers and to the root handlers
installed by config.load_config().

Usage:
    from availability_engine.logging_context import bound_to_session, get_session_logger

    logger = get_session_logger(__name__)

    class BookingSession:
        @bound_to_session
        def select_date(self, day):
            logger.info("Date picked")  # record.session_id == self.session_id
"""

import functools
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Optional, TypeVar

NO_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(session_id)s]: %(message)s"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)

F = TypeVar("F", bound=Callable)


def set_session_id(session_id: str) -> None:
    """Set the session id for the rest of the current context."""
    _session_id.set(session_id)


def get_session_id() -> str:
    return _session_id.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """Bind session_id for the duration of the block, then restore the previous id."""
    token = _session_id.set(session_id)
    try:
        yield
    finally:
        _session_id.reset(token)


def bound_to_session(method: F) -> F:
    """Run a method of an object with a ``session_id`` attribute inside its scope."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with session_scope(self.session_id):
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class SessionIdFilter(logging.Filter):
    """Stamps the bound session id on each record that lacks one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def _has_filter(filterer: logging.Filterer) -> bool:
    return any(isinstance(f, SessionIdFilter) for f in filterer.filters)


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger whose records always carry ``session_id``."""
    logger = logging.getLogger(name)
    if not _has_filter(logger):
        logger.addFilter(SessionIdFilter())
    return logger


def install_session_filter(logger: Optional[logging.Logger] = None) -> None:
    """Attach SessionIdFilter to every handler of ``logger`` (default: root).

    Handler filters see records from all modules, so a format using
    ``%(session_id)s`` never fails on a plain ``logging.getLogger`` record.
    """
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not _has_filter(handler):
            handler.addFilter(SessionIdFilter())
