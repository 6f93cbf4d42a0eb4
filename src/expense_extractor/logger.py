import logging
import os
from datetime import datetime

LOG_FORMAT = "[ %(asctime)s ] %(lineno)d %(name)s - %(levelname)s - %(message)s"

LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
LOG_FILE = f"{datetime.now().strftime('%m_%d_%Y_%H_%M_%S')}.log"
LOG_FILE_PATH = os.path.join(LOG_DIR, LOG_FILE)

_configured = False


def _configure_root():
    global _configured
    if _configured:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    handlers = [logging.StreamHandler()]
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_FILE_PATH))
    except OSError:
        # read-only filesystems still get console logging
        pass

    package_logger = logging.getLogger("expense_extractor")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger under the package hierarchy.

    Usage:
        logger = get_logger(__name__)
    """
    _configure_root()
    if not name.startswith("expense_extractor"):
        name = f"expense_extractor.{name}"
    return logging.getLogger(name)
