"""
In-Memory Collaborators

Fakes for the reactive cache's external collaborators, all driven by one
ManualClock so TTL behaviour can be tested without sleeping.

- FakeRedisClient: the subset of RedisClient used by ValueStore,
  ExclusiveLease and RedisQueue
- InMemoryStore: ValueBackend
- InMemoryLeaseManager: LeaseManager
- RecordingQueue: MessageQueue that records what was produced
"""

import itertools
import uuid
from dataclasses import dataclass
from typing import Any

from reactive_cache.core.exceptions import CacheKeyError
from reactive_cache.core.interfaces.message_queue import MessageQueue, QueueMessage
from reactive_cache.infrastructure.lease.exclusive_lease import CANCEL_SCRIPT


class ManualClock:
    """Seconds since an arbitrary epoch; only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class Project:
    """Minimal subject."""
    id: int
    name: str = "project"


# =============================================================================
# Redis-level fake
# =============================================================================


class FakeRedisClient:
    """
    In-memory stand-in for RedisClient.

    Supports strings with millisecond expiry, the lease cancel script, sorted
    sets and a single-group stream model with a pending entries list.
    """

    def __init__(self, clock: ManualClock | None = None):
        self.clock = clock or ManualClock()
        self.data: dict[str, Any] = {}
        self.expires_at: dict[str, float] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.streams: dict[str, list[tuple[str, dict[str, str]]]] = {}
        self.groups: dict[tuple[str, str], dict[str, Any]] = {}
        self._seq = itertools.count(1)
        self._connected = False

    # -- lifecycle ------------------------------------------------------------

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "type": "in_memory"}

    # -- strings --------------------------------------------------------------

    def _expire(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and self.clock() >= deadline:
            self.data.pop(key, None)
            self.expires_at.pop(key, None)

    async def get(self, key: str) -> str | None:
        self._expire(key)
        return self.data.get(key)

    async def set(self, key, value, ttl=None, nx=False) -> bool:
        self._expire(key)
        if nx and key in self.data:
            return False
        self.data[key] = value
        if ttl is not None:
            self.expires_at[key] = self.clock() + ttl
        else:
            self.expires_at.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._expire(key)
            if key in self.data:
                del self.data[key]
                removed += 1
            self.expires_at.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        count = 0
        for key in keys:
            self._expire(key)
            count += key in self.data
        return count

    async def pttl(self, key: str) -> int:
        self._expire(key)
        if key not in self.data:
            return -2
        if key not in self.expires_at:
            return -1
        return int((self.expires_at[key] - self.clock()) * 1000)

    async def eval(self, script: str, keys: list[str], args: list[Any]) -> Any:
        assert script == CANCEL_SCRIPT
        key, token = keys[0], args[0]
        if await self.get(key) == token:
            return await self.delete(key)
        return 0

    # -- sorted sets ------------------------------------------------------------

    async def zadd(self, name: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zrangebyscore(self, name, min_score, max_score, limit=None) -> list[str]:
        low = float("-inf") if min_score == "-inf" else float(min_score)
        high = float("inf") if max_score == "+inf" else float(max_score)
        members = sorted(
            (score, member)
            for member, score in self.zsets.get(name, {}).items()
            if low <= score <= high
        )
        result = [member for _, member in members]
        return result if limit is None else result[:limit]

    async def zrem(self, name: str, *members: str) -> int:
        zset = self.zsets.get(name, {})
        removed = 0
        for member in members:
            if member in zset:
                del zset[member]
                removed += 1
        return removed

    async def zcard(self, name: str) -> int:
        return len(self.zsets.get(name, {}))

    # -- streams ----------------------------------------------------------------

    async def xgroup_create(self, name: str, group: str) -> bool:
        if (name, group) in self.groups:
            raise CacheKeyError("BUSYGROUP Consumer Group name already exists")
        self.streams.setdefault(name, [])
        self.groups[(name, group)] = {"last_delivered": 0, "pending": {}}
        return True

    async def xadd(self, name: str, fields: dict[str, str], max_len: int | None = None) -> str:
        msg_id = f"{int(self.clock() * 1000)}-{next(self._seq)}"
        self.streams.setdefault(name, []).append((msg_id, dict(fields)))
        return msg_id

    async def xlen(self, name: str) -> int:
        return len(self.streams.get(name, []))

    async def xreadgroup(self, group, consumer, streams, count, block) -> list:
        response = []
        for name in streams:
            state = self.groups[(name, group)]
            entries = self.streams.get(name, [])[state["last_delivered"]:][:count]
            state["last_delivered"] += len(entries)
            for msg_id, _ in entries:
                state["pending"][msg_id] = {"consumer": consumer, "delivered_at": self.clock()}
            if entries:
                response.append([name, entries])
        return response

    async def xack(self, name: str, group: str, *ids: str) -> int:
        pending = self.groups[(name, group)]["pending"]
        return sum(1 for msg_id in ids if pending.pop(msg_id, None) is not None)

    async def xautoclaim(self, name, group, consumer, min_idle_ms, count) -> list:
        pending = self.groups[(name, group)]["pending"]
        entries = dict(self.streams.get(name, []))
        claimed = []
        for msg_id, info in list(pending.items()):
            if len(claimed) >= count:
                break
            if (self.clock() - info["delivered_at"]) * 1000 >= min_idle_ms:
                info["consumer"] = consumer
                info["delivered_at"] = self.clock()
                claimed.append([msg_id, entries.get(msg_id)])
        return ["0-0", claimed, []]


# =============================================================================
# Interface-level fakes
# =============================================================================


class InMemoryStore:
    """ValueBackend with TTLs measured on a ManualClock."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.values: dict[str, Any] = {}
        self.expires_at: dict[str, float] = {}
        self.writes: list[tuple[str, Any, float | None]] = []

    def _live(self, key: str) -> bool:
        deadline = self.expires_at.get(key)
        if deadline is not None and self.clock() >= deadline:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)
        return key in self.values

    async def read(self, key: str) -> Any | None:
        return self.values.get(key) if self._live(key) else None

    async def write(self, key: str, value: Any, ttl: float | None = None) -> None:
        self.writes.append((key, value, ttl))
        self.values[key] = value
        if ttl is None:
            self.expires_at.pop(key, None)
        else:
            self.expires_at[key] = self.clock() + ttl

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key):
                removed += 1
            self.values.pop(key, None)
            self.expires_at.pop(key, None)
        return removed


class InMemoryLeaseManager:
    """LeaseManager with expiring leases on a ManualClock."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.leases: dict[str, tuple[str, float]] = {}
        self.obtained: list[str] = []
        self.cancelled: list[str] = []

    def held(self, key: str) -> bool:
        lease = self.leases.get(key)
        if lease and self.clock() >= lease[1]:
            del self.leases[key]
            return False
        return lease is not None

    async def try_obtain(self, key: str, timeout: float) -> str | None:
        if self.held(key):
            return None
        token = str(uuid.uuid4())
        self.leases[key] = (token, self.clock() + timeout)
        self.obtained.append(key)
        return token

    async def cancel(self, key: str, token: str) -> bool:
        self.cancelled.append(key)
        if self.held(key) and self.leases[key][0] == token:
            del self.leases[key]
            return True
        return False


class RecordingQueue(MessageQueue):
    """MessageQueue that records immediate and delayed jobs."""

    def __init__(self):
        self.produced: list[dict[str, Any]] = []
        self.delayed: list[tuple[dict[str, Any], float]] = []
        self.acked: list[str] = []

    async def initialize(self) -> None:
        pass

    async def produce(self, payload: dict[str, Any]) -> str:
        self.produced.append(payload)
        return f"{len(self.produced)}-0"

    async def produce_delayed(self, payload: dict[str, Any], delay: float) -> str:
        self.delayed.append((payload, delay))
        return str(uuid.uuid4())

    async def consume(self, consumer_name: str, batch_size: int = 10, block_ms: int = 2000):
        return []

    async def acknowledge(self, message_id: str) -> None:
        self.acked.append(message_id)

    async def close(self) -> None:
        pass

    def message(self, payload: dict[str, Any], msg_id: str = "1-0") -> QueueMessage:
        return QueueMessage(id=msg_id, payload=payload, timestamp="")
