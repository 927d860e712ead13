import locale
import logging
import sys
from pathlib import Path

from ulid import ULID

from recall.application.config import AppConfig
from recall.application.factory import get_card_store
from recall.application.study_service import StudyService
from recall.domain.ports import Clock

LOG_FORMAT = "%(asctime)s %(levelname)s [%(run_id)s] %(name)s: %(message)s"


class _RunIdFilter(logging.Filter):
    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        return True


def setup_collation() -> str | None:
    """
    Collate titles with the user's locale (LC_COLLATE from the environment).

    Returns the locale name, or None when the environment names a locale the
    system does not have; sorting then stays on the C locale.
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logging.getLogger("recall").debug(f"Locale collation unavailable, using C: {e}")
        return None


def verbosity_to_level(verbose: int) -> int:
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(config: AppConfig) -> tuple[logging.Logger, Path, str]:
    """
    Attach a per-run log file under ``config.log_dir``.

    Returns:
        (package logger, log file path, run id)
    """
    run_id = str(ULID())
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"recall_{run_id}.log"

    logger = logging.getLogger("recall")
    logger.setLevel(verbosity_to_level(config.verbose))

    for handler in list(logger.handlers):
        if getattr(handler, "_recall_run", False):
            logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.addFilter(_RunIdFilter(run_id))
    file_handler._recall_run = True  # type: ignore[attr-defined]
    logger.addHandler(file_handler)

    logger.debug(f"Run {run_id} started (python {sys.version.split()[0]})")
    return logger, log_path, run_id


async def load_service(config: AppConfig, clock: Clock | None = None) -> StudyService:
    """Build the configured store, load the collection and return a ready service."""
    store = get_card_store(config, clock)
    service = StudyService(store, clock=clock, mode=config.review_order)
    await service.load()
    return service
