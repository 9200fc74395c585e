"""
JSON File Storage: Infrastructure adapter for local disk persistence.

Implements ProgressStorage with one JSON document per storage key.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from vocabflow.domain.constants import STORAGE_KEY
from vocabflow.domain.progress.ports import ProgressStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(ProgressStorage):
    """
    Stores the ledger blob at ``<data_dir>/<key>.json``.

    Writes are atomic: the blob goes to a temp file in the same directory
    which then replaces the target.
    """

    def __init__(self, data_dir: Path, key: str = STORAGE_KEY):
        self.data_dir = Path(data_dir)
        self.key = key

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.key}.json"

    def load(self) -> dict[str, Any] | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.path}: expected a JSON object")
            return None
        return data

    def save(self, blob: dict[str, Any]) -> bool:
        tmp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.data_dir,
                prefix=f".{self.key}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(blob, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write {self.path}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return False
