"""
DNS lookup results shared by the propagation checker and the controller
"""

import threading
from typing import Dict


class DnsMatchState:
    """Maps `namespace:name` keys to whether the last lookup matched"""

    def __init__(self):
        self._lock = threading.Lock()
        self._matches: Dict[str, bool] = {}

    def matches(self, key: str) -> bool:
        with self._lock:
            return self._matches.get(key, False)

    def update(self, key: str, matched: bool) -> bool:
        """Store the latest result and report whether it differs from the previous one"""
        with self._lock:
            previous = self._matches.get(key, False)
            self._matches[key] = matched
            return previous != matched

    def forget(self, key: str) -> None:
        with self._lock:
            self._matches.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._matches)
