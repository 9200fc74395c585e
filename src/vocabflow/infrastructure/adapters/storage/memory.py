"""
In-memory Storage: Infrastructure adapter with no durability.

Used by tests and by throwaway sessions (``storage_backend = "memory"``).
"""

import copy
import logging
from typing import Any

from vocabflow.domain.progress.ports import ProgressStorage

logger = logging.getLogger(__name__)


class InMemoryStorage(ProgressStorage):
    """
    Keeps a deep copy of the last saved blob.

    ``fail_writes`` simulates a full or disabled store.
    """

    def __init__(self, blob: dict[str, Any] | None = None, fail_writes: bool = False):
        self._blob = copy.deepcopy(blob)
        self.fail_writes = fail_writes
        self.save_count = 0

    def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._blob)

    def save(self, blob: dict[str, Any]) -> bool:
        if self.fail_writes:
            logger.warning("In-memory storage is rejecting writes")
            return False
        self._blob = copy.deepcopy(blob)
        self.save_count += 1
        return True
