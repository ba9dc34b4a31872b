import logging

LOGGING_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. A no-op if handlers are already installed."""
    logging.basicConfig(level=level.upper(), format=LOGGING_FORMAT)
