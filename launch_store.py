# launch_store.py
import json
import logging
import os
import threading

from models import LaunchResult

logger = logging.getLogger(__name__)

LAUNCHES_KEY = "lobsterpad_launches"


class LaunchHistory:
    """Past launches under a fixed key in a JSON file; path=None keeps them in memory"""

    def __init__(self, path=None):
        self.path = path
        self._lock = threading.Lock()
        self._launches = self._load()

    def _load(self) -> list:
        if not self.path or not os.path.exists(self.path):
            return []
        try:
            with open(self.path) as f:
                return list(json.load(f).get(LAUNCHES_KEY, []))
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Error loading launch history from {self.path}: {e}")
            return []

    def _save(self):
        if not self.path:
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({LAUNCHES_KEY: self._launches}, f, indent=2)

    def record(self, result: LaunchResult):
        with self._lock:
            self._launches.append(result.to_dict())
            self._save()

    def all(self) -> list:
        with self._lock:
            return list(self._launches)

    def clear(self):
        with self._lock:
            self._launches = []
            self._save()

    def __len__(self):
        return len(self._launches)
