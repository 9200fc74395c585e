"""
Ports (interfaces) for progress persistence.

These define the contract that infrastructure adapters must implement.
The ledger depends on this abstraction, not on a concrete storage backend.
"""

from abc import ABC, abstractmethod
from typing import Any


class ProgressStorage(ABC):
    """
    Port for durable, best-effort storage of the serialized ledger blob.

    Implementations:
        - JsonFileStorage: One JSON file per storage key on local disk.
        - InMemoryStorage: Dict-backed store for tests and throwaway sessions.
    """

    @abstractmethod
    def load(self) -> dict[str, Any] | None:
        """
        Read the stored blob.

        Returns:
            The decoded blob, or None if nothing is stored or it is unreadable.
            Never raises.
        """
        pass

    @abstractmethod
    def save(self, blob: dict[str, Any]) -> bool:
        """
        Replace the stored blob.

        Returns:
            True if the write succeeded. Failures are swallowed and reported
            as False; they never propagate to the caller.
        """
        pass
