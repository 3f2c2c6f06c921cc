import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Route application logs to stdout once, at the configured level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
