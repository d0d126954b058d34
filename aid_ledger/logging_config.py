import logging
import sys

LOGGER_NAME = "aid_ledger"
# Third-party loggers kept at WARNING unless the ledger itself logs at DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the ``aid_ledger`` logger once.

    ``level`` may be a number or a name such as ``"debug"``; unknown names
    mean INFO. Later calls only adjust the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    noisy_level = logging.DEBUG if logger.level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return logger
