import logging
import sys

from catalog.config import settings

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"


def configure_logging(level: str = None) -> None:
    """
    Install a single stdout handler on the ``catalog`` logger tree.
    Safe to call more than once (app startup, scripts, tests).
    """
    log = logging.getLogger("catalog")
    log.setLevel((level or settings.LOG_LEVEL).upper())
    if not any(getattr(h, "_catalog_handler", False) for h in log.handlers):
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(_FORMAT))
        h._catalog_handler = True
        log.addHandler(h)
