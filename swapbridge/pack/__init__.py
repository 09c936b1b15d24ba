"""SWAP pack - republishes SWAP mote readings as hub topics."""

__version__ = "0.1.0"

from .router import Router
from .service import SwapPackService


def main(argv=None):
    """Entry point for the SWAP pack."""
    import logging
    import sys

    from .config import describe, load_config
    from swapbridge.hub.client import HubConnectionError
    from swapbridge.shared.logging import setup_logging
    from swapbridge.swap.values import SchemaError

    config = load_config(argv)
    setup_logging(config.log_level, timestamps=config.log_timestamps)
    logger = logging.getLogger(__name__)

    for line in describe(config):
        logger.info(line)

    service = SwapPackService(config)
    try:
        service.run()
    except (SchemaError, HubConnectionError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


__all__ = ["Router", "SwapPackService", "main"]
