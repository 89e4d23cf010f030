import logging
import sys

from cart_service.config import settings

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    root = logging.getLogger("cart_service")
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(h)


def get_logger(name: str) -> logging.Logger:
    # module loggers live under the "cart_service" tree so one handler covers them
    if not name.startswith("cart_service"):
        name = f"cart_service.{name}"
    return logging.getLogger(name)
