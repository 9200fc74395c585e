"""
Ledger Factory
Centralizes the logic for selecting the storage adapter and wiring the ledger.
"""

import logging

from vocabflow.application.config import AppConfig
from vocabflow.application.ledger import ProgressLedger
from vocabflow.domain.progress.ports import ProgressStorage
from vocabflow.infrastructure.adapters.storage import InMemoryStorage, JsonFileStorage

logger = logging.getLogger(__name__)


def get_progress_storage(config: AppConfig) -> ProgressStorage:
    """
    Returns the ProgressStorage implementation selected by config.
    """
    if config.storage_backend == "memory":
        logger.debug("Storage: in-memory (progress will not be kept)")
        return InMemoryStorage()

    logger.debug(f"Storage: {config.data_dir / config.storage_key}.json")
    return JsonFileStorage(config.data_dir, key=config.storage_key)


def build_ledger(config: AppConfig) -> ProgressLedger:
    return ProgressLedger(get_progress_storage(config), default_goal=config.daily_goal)
