import logging
import traceback
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

# SDK loggers that flood DEBUG output with wire-level detail
_SDK_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "kubernetes")


def setup_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
    """Configure root logging on first use; later calls leave it alone."""
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=fmt or DEFAULT_FORMAT)
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_log_level(level: int) -> None:
    """Switch the root level, e.g. to DEBUG for --verbose. SDK loggers stay at WARNING."""
    setup_logging(level)
    logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name or "ecr_cleaner")


def log_exception(logger: logging.Logger, message: str = "An error occurred", exc_info: Exception = None) -> None:
    """Log an error together with its cause chain and traceback.

    Args:
        logger: Logger instance to use
        message: Headline logged first
        exc_info: Exception to describe; None uses the exception being handled
    """
    logger.error(message)
    error = exc_info
    depth = 0
    while error is not None:
        prefix = "Exception" if depth == 0 else "Caused by"
        logger.error(f"{prefix}: {type(error).__name__}: {error}")
        error = error.__cause__
        depth += 1
    if exc_info is not None and exc_info.__traceback__ is not None:
        trace = "".join(traceback.format_exception(type(exc_info), exc_info, exc_info.__traceback__))
    else:
        trace = traceback.format_exc()
    logger.error(f"Full traceback:\n{trace}")
