"""Redis-backed coordination store for delayed reindex windows.

Layout per index (see window_keys):
- ``{prefix}:{index}:windows``          sorted set of open window starts
- ``{prefix}:{index}:{start}:ids``      set of record ids
- ``{prefix}:{index}:{start}:fields``   set of field names, ``*`` = all fields

Window creation is a ``ZADD NX`` on the registry, merges run in MULTI/EXEC
pipelines, and claiming is a Lua script so it cannot interleave with a merge.
"""

import json
import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import CoordinationUnavailable
from .contracts import WindowRef, WindowState
from .window_keys import (
    ALL_FIELDS,
    fields_key,
    ids_key,
    index_from_registry_key,
    registry_key,
)

logger = logging.getLogger(__name__)


# Lua script: Claim a window (read and delete atomically)
# KEYS[1] = ids key, KEYS[2] = fields key, KEYS[3] = registry key
# ARGV[1] = window start member
# Returns JSON {ids = [...], fields = [...]} or nil if nothing was there
_CLAIM_WINDOW_SCRIPT = """
local registered = redis.call('ZREM', KEYS[3], ARGV[1])
local ids = redis.call('SMEMBERS', KEYS[1])
local fields = redis.call('SMEMBERS', KEYS[2])
if registered == 0 and #ids == 0 and #fields == 0 then
    return nil
end
redis.call('DEL', KEYS[1], KEYS[2])
return cjson.encode({ids = ids, fields = fields})
"""


def _decode(value) -> str:
    """Normalize a Redis reply to str (pools may or may not decode responses)."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate connection-level failures into CoordinationUnavailable."""
    try:
        yield
    except (RedisError, OSError) as exc:
        logger.error(f"Coordination store {operation} failed: {exc}")
        raise CoordinationUnavailable(f"Redis {operation} failed: {exc}") from exc


class RedisCoordinationStore:
    """
    Coordination store shared by every producer and worker process.

    Args:
        client: redis.asyncio client (the RedisService client or an ARQ pool)
        prefix: Key namespace for all window state
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "reindex:delayed") -> None:
        self._client = client
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    async def create_if_absent(self, window: WindowRef, deadline: int, ttl: int) -> bool:
        """
        Register the window in its index registry.

        Args:
            window: The window to create
            deadline: When the window's job will fire (logged only)
            ttl: Expiry in seconds applied to the registry

        Returns:
            True if this call created the window, False if it already existed
        """
        key = registry_key(self._prefix, window.index_name)
        with _store_errors("create"):
            pipe = self._client.pipeline(transaction=True)
            pipe.zadd(key, {str(window.window_start): window.window_start}, nx=True)
            pipe.expire(key, ttl)
            added, _ = await pipe.execute()
        created = added == 1
        if created:
            logger.debug(
                f"Window opened: index={window.index_name}, "
                f"start={window.window_start}, deadline={deadline}"
            )
        return created

    async def union_add(self, window: WindowRef, record_ids: Iterable[str], ttl: int) -> None:
        members = [str(record_id) for record_id in record_ids]
        if not members:
            return
        key = ids_key(self._prefix, window.index_name, window.window_start)
        with _store_errors("union"):
            pipe = self._client.pipeline(transaction=True)
            pipe.sadd(key, *members)
            pipe.expire(key, ttl)
            await pipe.execute()

    async def merge_field_restriction(
        self, window: WindowRef, update_fields: Optional[Iterable[str]], ttl: int
    ) -> None:
        """
        Merge a field restriction into the window.

        An empty or missing restriction adds the ``*`` member, which wins
        over any field names present before or after it.
        """
        members = [str(name) for name in update_fields or ()] or [ALL_FIELDS]
        key = fields_key(self._prefix, window.index_name, window.window_start)
        with _store_errors("merge"):
            pipe = self._client.pipeline(transaction=True)
            pipe.sadd(key, *members)
            pipe.expire(key, ttl)
            await pipe.execute()

    async def read_and_delete(self, window: WindowRef) -> Optional[WindowState]:
        with _store_errors("claim"):
            result = await self._client.eval(
                _CLAIM_WINDOW_SCRIPT,
                3,
                ids_key(self._prefix, window.index_name, window.window_start),
                fields_key(self._prefix, window.index_name, window.window_start),
                registry_key(self._prefix, window.index_name),
                str(window.window_start),
            )
        if result is None:
            return None

        # cjson encodes empty arrays as objects, hence the "or []"
        data = json.loads(result)
        record_ids = frozenset(_decode(v) for v in data.get("ids") or [])
        fields = {_decode(v) for v in data.get("fields") or []}
        if not fields or ALL_FIELDS in fields:
            return WindowState(record_ids, None)
        return WindowState(record_ids, frozenset(fields))

    async def open_windows(self, index_name: str) -> list[int]:
        with _store_errors("registry read"):
            members = await self._client.zrange(registry_key(self._prefix, index_name), 0, -1)
        return [int(_decode(member)) for member in members]

    async def indexes(self) -> list[str]:
        keys = await self._scan_keys(registry_key(self._prefix, "*"))
        return sorted(index_from_registry_key(self._prefix, key) for key in keys)

    async def clear_all(self) -> int:
        """Delete every key under the prefix; returns the number of windows removed."""
        registries = await self._scan_keys(registry_key(self._prefix, "*"))
        keys = await self._scan_keys(f"{self._prefix}:*")
        if not keys:
            return 0
        with _store_errors("clear"):
            pipe = self._client.pipeline(transaction=True)
            for key in registries:
                pipe.zcard(key)
            pipe.delete(*keys)
            results = await pipe.execute()
        return sum(results[:-1])

    async def _scan_keys(self, pattern: str, count: int = 100) -> list[str]:
        """Iterate keys matching pattern using SCAN (non-blocking)."""
        result: list[str] = []
        cursor = 0
        with _store_errors("scan"):
            while True:
                cursor, keys = await self._client.scan(cursor=cursor, match=pattern, count=count)
                result.extend(_decode(key) for key in keys)
                if cursor == 0:
                    break
        return result
