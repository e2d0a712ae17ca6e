"""Thread-safe holder for a server's persisted state and snapshot."""

from __future__ import annotations

import threading
from typing import Optional


def _as_bytes(data: Optional[bytes]) -> bytes:
    return b"" if data is None else bytes(data)


class Persister:
    """Keeps the persistent state and the latest snapshot of one server."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._raftstate = b""
        self._snapshot = b""

    def copy(self) -> Persister:
        """Return a new persister holding the same state and snapshot."""
        with self._lock:
            other = Persister()
            other._raftstate = self._raftstate
            other._snapshot = self._snapshot
            return other

    def read_raft_state(self) -> bytes:
        with self._lock:
            return self._raftstate

    def raft_state_size(self) -> int:
        with self._lock:
            return len(self._raftstate)

    def save(self, raftstate: Optional[bytes], snapshot: Optional[bytes]) -> None:
        """Store state and snapshot together, as a single atomic action."""
        state = _as_bytes(raftstate)
        snap = _as_bytes(snapshot)
        with self._lock:
            self._raftstate = state
            self._snapshot = snap

    def read_snapshot(self) -> bytes:
        with self._lock:
            return self._snapshot

    def snapshot_size(self) -> int:
        with self._lock:
            return len(self._snapshot)