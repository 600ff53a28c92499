"""
Logging helpers

The pool and the facades log through a small capability object with
error/warn/info/debug methods so callers can plug in their own sink.
"""

import logging
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class PoolLogger(Protocol):
    """Logger capability accepted by pools and facades"""

    def error(self, message: str, detail: Any = None) -> None: ...

    def warn(self, message: str, detail: Any = None) -> None: ...

    def info(self, message: str, detail: Any = None) -> None: ...

    def debug(self, message: str, detail: Any = None) -> None: ...


class StdlibLogger:
    """Adapts a `logging.Logger` to the PoolLogger capability"""

    def __init__(self, logger: Optional[logging.Logger] = None, name: str = "redispool"):
        self._logger = logger or logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, message: str, detail: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if isinstance(detail, BaseException):
            self._logger.log(level, f"{message} {detail}", exc_info=detail)
        elif detail is not None:
            self._logger.log(level, f"{message} {detail}")
        else:
            self._logger.log(level, message)

    def error(self, message: str, detail: Any = None) -> None:
        self._log(logging.ERROR, message, detail)

    def warn(self, message: str, detail: Any = None) -> None:
        self._log(logging.WARNING, message, detail)

    def info(self, message: str, detail: Any = None) -> None:
        self._log(logging.INFO, message, detail)

    def debug(self, message: str, detail: Any = None) -> None:
        self._log(logging.DEBUG, message, detail)


def setup_logging(level: str = "INFO",
                  fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s") -> None:
    """Setup logging for command-line use"""
    logging.basicConfig(level=getattr(logging, level.upper()), format=fmt)

    # Keep the client library quiet unless something goes wrong
    logging.getLogger("redis").setLevel(logging.WARNING)

    if level.upper() == "DEBUG":
        logging.getLogger("redispool").setLevel(logging.DEBUG)
