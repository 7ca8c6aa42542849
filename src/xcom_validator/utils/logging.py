import logging
import os
import sys

ROOT_LOGGER = "xcom_validator"


def get_logger(name: str | None = None):
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s %(message)s")
        h.setFormatter(fmt)
        root.addHandler(h)
        root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    if not name:
        return root
    return root.getChild(name)
