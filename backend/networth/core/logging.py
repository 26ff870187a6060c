import logging
import sys

from networth.config import get_settings


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging to output to stdout with proper formatting."""
    root_logger = logging.getLogger()
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Simulation runs are chatty at DEBUG; keep them at INFO unless asked
    logging.getLogger("networth.services.montecarlo").setLevel(max(level, logging.INFO))
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured: %s", get_settings().dict_for_logging())
