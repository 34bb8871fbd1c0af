"""Process-wide logging configuration."""

import logging
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # Stripe's own request logging duplicates ours
    logging.getLogger("stripe").setLevel(logging.WARNING)
