import logging

from siteaudit.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    if any(getattr(h, "_siteaudit", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._siteaudit = True
    root.addHandler(handler)
    root.setLevel(level.upper())
    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
