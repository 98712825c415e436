import logging
import logging.handlers
import multiprocessing as mp
from typing import List, Optional

from tqdm import tqdm

PACKAGE = "orbitbrot"

# numba logs every compilation pass at DEBUG.
_NOISY = ("numba",)


def get_logger(suffix: Optional[str] = None) -> logging.Logger:
    if suffix:
        return logging.getLogger(f"{PACKAGE}.{suffix}")
    return logging.getLogger(PACKAGE)


class TqdmHandler(logging.StreamHandler):
    """Console handler that prints above an active progress bar."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(processName)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def _handlers(level: int, console: bool, log_file: Optional[str], rotate_bytes: int, rotate_count: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(TqdmHandler())
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=rotate_bytes, backupCount=rotate_count, encoding="utf-8"))
    fmt = _formatter()
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
    return handlers


def configure_root_logging(
    *,
    level: int = logging.INFO,
    console: bool = True,
    log_file: Optional[str] = None,
    rotate_bytes: int = 5 * 1024 * 1024,
    rotate_count: int = 3,
) -> logging.Logger:
    """Attach console and rotating file handlers to the package logger.

    Any handlers from an earlier call are replaced, so the CLI can be
    invoked repeatedly in one process.
    """
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in _handlers(level, console, log_file, rotate_bytes, rotate_count):
        logger.addHandler(h)
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return logger


def create_log_queue() -> mp.Queue:
    return mp.Queue(-1)


def start_queue_listener(queue: mp.Queue, listener_logger: logging.Logger) -> logging.handlers.QueueListener:
    """Drain worker records into the handlers of ``listener_logger``."""
    listener = logging.handlers.QueueListener(queue, *listener_logger.handlers, respect_handler_level=True)
    listener.start()
    return listener


def stop_queue_listener(listener: logging.handlers.QueueListener, queue: mp.Queue) -> None:
    listener.stop()
    queue.close()
    queue.join_thread()


def configure_worker_logging(queue: Optional[mp.Queue], *, level: int = logging.INFO) -> None:
    """Route the package logger of a sampling process into the parent's queue.

    Without a queue the worker keeps whatever handlers it inherited, which
    is the case for in-process runs and tests.
    """
    if queue is None:
        return
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
    qh = logging.handlers.QueueHandler(queue)
    qh.setLevel(level)
    logger.addHandler(qh)
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
