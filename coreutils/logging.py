import logging

LOG_FORMAT = '%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s'


def setup_logging(level=logging.INFO):
    """Centralized logging configuration; call once from an entry point."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)
