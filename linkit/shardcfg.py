"""Assignment of shards to replica groups and its rebalancing."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

N_SHARDS = 12
NUM_FIRST = 1
GID1 = 1

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619


class ShardConfigError(Exception):
    """Raised when a configuration is invalid or an update is not allowed."""


def key_to_shard(key: str) -> int:
    """Shard that ``key`` belongs to: 32-bit FNV-1a of its UTF-8 bytes, mod N_SHARDS."""
    h = _FNV_OFFSET
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h % N_SHARDS


@dataclass
class ShardConfig:
    """Configuration number, shard -> gid map and gid -> servers map."""

    num: int = 0
    shards: List[int] = field(default_factory=lambda: [0] * N_SHARDS)
    groups: Dict[int, List[str]] = field(default_factory=dict)

    def to_json(self) -> str:
        groups = {str(gid): list(srvs) for gid, srvs in self.groups.items()}
        return json.dumps(
            {
                "Num": self.num,
                "Shards": list(self.shards),
                "Groups": {k: groups[k] for k in sorted(groups)},
            },
            separators=(",", ":"),
        )

    def __str__(self) -> str:
        return self.to_json()

    def copy(self) -> ShardConfig:
        return ShardConfig(
            num=self.num,
            shards=list(self.shards),
            groups={gid: list(srvs) for gid, srvs in self.groups.items()},
        )

    def _analyze(self) -> Tuple[int, int, int, int]:
        """Return (most-loaded gid, its count, least-loaded gid, its count)."""
        counts: Dict[int, int] = {}
        for g in self.shards:
            counts[g] = counts.get(g, 0) + 1
        mn, mg = -1, -1
        ln, lg = 257, -1
        for g in sorted(self.groups):
            c = counts.get(g, 0)
            if c < ln:
                ln, lg = c, g
            if c > mn:
                mn, mg = c, g
        return mg, mn, lg, ln

    def rebalance(self) -> None:
        """Balance the assignment of shards to groups, in place."""
        if not self.groups:
            self.shards = [0] * N_SHARDS
            return

        for s, g in enumerate(self.shards):
            if g not in self.groups:
                self.shards[s] = self._analyze()[2]

        while True:
            mg, mn, lg, ln = self._analyze()
            if mn < ln + 2:
                break
            self.shards[self.shards.index(mg)] = lg

    def join(self, servers: Mapping[int, Sequence[str]]) -> None:
        """Add new groups; raises if a gid exists or a server is already placed."""
        changed = False
        for gid, srvs in servers.items():
            if gid in self.groups:
                raise ShardConfigError(f"re-Join {gid}")
            for xgid, xservers in self.groups.items():
                for s1 in xservers:
                    if s1 in srvs:
                        raise ShardConfigError(
                            f"Join({gid}) puts server {s1} in groups {xgid} and {gid}"
                        )
            self.groups[gid] = list(srvs)
            changed = True
        if not changed:
            raise ShardConfigError("Join but no change")
        self.num += 1

    def leave(self, gids: Iterable[int]) -> None:
        """Remove groups; raises if a gid is not present."""
        changed = False
        for gid in gids:
            if gid not in self.groups:
                raise ShardConfigError(f"Leave({gid}) but not in config")
            del self.groups[gid]
            changed = True
        if not changed:
            raise ShardConfigError("Leave but no change")
        self.num += 1

    def join_balance(self, servers: Mapping[int, Sequence[str]]) -> None:
        self.join(servers)
        self.rebalance()

    def leave_balance(self, gids: Iterable[int]) -> None:
        self.leave(gids)
        self.rebalance()

    def gid_servers(self, shard: int) -> Tuple[int, Optional[List[str]], bool]:
        """Return the shard's gid, that group's servers and whether the group exists."""
        gid = self.shards[shard]
        srvs = self.groups.get(gid)
        return gid, srvs, srvs is not None

    def is_member(self, gid: int) -> bool:
        """Whether ``gid`` is assigned at least one shard."""
        return gid in self.shards

    def check_config(self, groups: Sequence[int]) -> None:
        """Raise ShardConfigError unless the config has exactly ``groups``, balanced."""
        if len(self.groups) != len(groups):
            raise ShardConfigError(f"wanted {len(groups)} groups, got {len(self.groups)}")
        for g in groups:
            if g not in self.groups:
                raise ShardConfigError(f"missing group {g}")
        if groups:
            for s, g in enumerate(self.shards):
                if g not in self.groups:
                    raise ShardConfigError(f"shard {s} -> invalid group {g}")
        counts: Dict[int, int] = {}
        for g in self.shards:
            counts[g] = counts.get(g, 0) + 1
        low, high = 257, 0
        for g in self.groups:
            c = counts.get(g, 0)
            high = max(high, c)
            low = min(low, c)
        if high > low + 1:
            raise ShardConfigError(f"max {high} too much larger than min {low}")


def from_string(s: str) -> ShardConfig:
    """Parse a configuration produced by ``ShardConfig.to_json``."""
    try:
        raw = json.loads(s)
    except json.JSONDecodeError as exc:
        raise ShardConfigError(f"Unmarshall err {exc}") from exc
    if not isinstance(raw, dict):
        raise ShardConfigError("Unmarshall err: not an object")
    try:
        num = int(raw.get("Num") or 0)
        shards = [int(g) for g in (raw.get("Shards") or [])][:N_SHARDS]
        shards += [0] * (N_SHARDS - len(shards))
        groups = {
            int(gid): list(srvs or []) for gid, srvs in (raw.get("Groups") or {}).items()
        }
    except (TypeError, ValueError, AttributeError) as exc:
        raise ShardConfigError(f"Unmarshall err {exc}") from exc
    return ShardConfig(num=num, shards=shards, groups=groups)