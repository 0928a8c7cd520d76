"""Log handlers installed by the logger factory."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Union


class ConsoleHandler(logging.StreamHandler):
    """Writes to stdout; ERROR and above go to stderr.

    The stream is looked up per record so pytest's output capture and
    ``contextlib.redirect_stdout`` are honoured.
    """

    def __init__(self, *, error_level: int = logging.ERROR) -> None:
        super().__init__(sys.stdout)
        self.error_level = error_level

    def emit(self, record: logging.LogRecord) -> None:
        self.setStream(sys.stderr if record.levelno >= self.error_level else sys.stdout)
        super().emit(record)


class RotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size-rotating UTF-8 log file; the parent directory is created on demand."""

    def __init__(
        self,
        filename: Union[str, Path],
        *,
        maxBytes: int = 10485760,  # 10MB
        backupCount: int = 5,
        delay: bool = False,
    ) -> None:
        path = Path(filename).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, maxBytes=maxBytes, backupCount=backupCount, encoding="utf-8", delay=delay)
