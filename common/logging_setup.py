# common/logging_setup.py
import logging
import sys
from pathlib import Path
from typing import Optional, Union


class _ServiceNoiseFilter(logging.Filter):
    """
    Keep console output readable:
    - service logs (bookings_service.*, common.*) pass through
    - uvicorn access/error logs pass through
    - other third-party loggers only at WARNING+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(("bookings_service", "common", "uvicorn")):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_file_name: str = "bookings.log",
) -> None:
    """
    Configure root logging for a service process.

    Parameters
    ----------
    level : int or str
        Console level, e.g. ``logging.INFO`` or ``"DEBUG"``.
    log_dir : str or Path, optional
        When given, a DEBUG-level file handler is added under this directory.
    log_file_name : str
        Name of the log file inside ``log_dir``.

    Calling it again replaces the handlers installed by the previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        if getattr(h, "_bookings_handler", False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ServiceNoiseFilter())
    ch._bookings_handler = True
    root.addHandler(ch)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_dir / log_file_name), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        fh._bookings_handler = True
        root.addHandler(fh)

    logging.captureWarnings(True)
