from __future__ import annotations

import threading


class MemoryStore:
    """
    Process-local key/value store.

    Mutations and reads take the same lock so concurrent callers always observe a
    consistent snapshot. Nothing outside the store holds a reference to its mapping.
    """

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            return True

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
