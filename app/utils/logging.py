from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root.handlers.clear()
    root.addHandler(handler)

    # SQL statement echo is too chatty below WARNING.
    logging.getLogger("sqlalchemy.engine").setLevel(max(logging.WARNING, root.level))
