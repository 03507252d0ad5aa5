"""
Logging for the codementor analysis engine.

Every module logs under the ``codementor`` namespace. The engine itself never
installs handlers; hosts and the CLI call ``setup_logging`` once.

Channels with their own level:
    codementor.classification  low-confidence classifications (INFO)
    codementor.scheduling      connectivity transitions (INFO/WARNING)
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "codementor"
CLASSIFICATION_LOGGER = f"{ROOT_LOGGER}.classification"
SCHEDULING_LOGGER = f"{ROOT_LOGGER}.scheduling"

# httpx logs every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    show_low_confidence: bool = False,
) -> logging.Logger:
    """
    Install a stderr RichHandler (and optionally a file handler) on the
    ``codementor`` logger.

    Args:
        verbose: DEBUG for the whole engine, including per-job traces
        quiet: Only errors
        log_file: Also append plain-text records to this file
        show_low_confidence: Surface low-confidence classifications at INFO
            even when the engine level is WARNING

    Returns:
        The ``codementor`` logger
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,
            show_time=True,
            show_path=verbose,
        )
    )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logging.getLogger(CLASSIFICATION_LOGGER).setLevel(
        logging.INFO if show_low_confidence and not quiet else logging.NOTSET
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``codementor`` namespace ('engine' -> 'codementor.engine')."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
