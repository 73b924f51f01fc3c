"""Package logger setup for the render scripts."""
import logging
import sys
from typing import Optional

from tqdm import tqdm

PACKAGE_LOGGER = "spheretrace"
LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'


class TqdmHandler(logging.StreamHandler):
    """Console handler that prints through tqdm so active progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Route the package logger to the console (and `log_file`, if given) at `level`."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Calling this twice replaces the handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = [TqdmHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
