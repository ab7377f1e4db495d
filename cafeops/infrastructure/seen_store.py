import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Set

import redis
from redis.exceptions import RedisError

from cafeops.core.config import settings
from cafeops.interfaces.ISeenStore import ISeenStore

logger = logging.getLogger(__name__)


def seen_key(staff_id: int, kind: str) -> str:
    # Keyed by staff identity so switching accounts on one device starts clean
    return f"staff:{staff_id}:seen:{kind}"


class JsonFileSeenStore(ISeenStore):
    """Seen sets in a JSON file, for a client running on a single device."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.SEEN_STORE_PATH)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, list]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"SeenStore: could not read {self.path} ({e}); starting empty.")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, list]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def load(self, staff_id: int, kind: str) -> Set[str]:
        with self._lock:
            stored = self._read().get(seen_key(staff_id, kind), [])
        return {str(i) for i in stored} if isinstance(stored, list) else set()

    def add(self, staff_id: int, kind: str, event_ids: Iterable[str]) -> None:
        ids = set(event_ids)
        if not ids:
            return
        key = seen_key(staff_id, kind)
        with self._lock:
            data = self._read()
            current = set(data.get(key, []))
            if ids <= current:
                return
            data[key] = sorted(current | ids)
            self._write(data)

    def clear(self, staff_id: int, kind: str) -> None:
        key = seen_key(staff_id, kind)
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


class RedisSeenStore(ISeenStore):
    """
    Seen sets as Redis sets (SADD only, so marking is idempotent and never
    removes ids). Every mark is also written to a local fallback store, and
    every set read from Redis is kept in RAM, so losing Redis mid-session or
    at startup never turns a seen id back into an unseen one.
    """

    def __init__(self, redis_url: str | None = None, client=None,
                 fallback: ISeenStore | None = None):
        self._memory_store: Dict[str, Set[str]] = {}
        self.fallback = fallback or JsonFileSeenStore(settings.SEEN_STORE_PATH)
        self.redis = client
        self.redis_available = False

        # 1. Primary Memory (Redis)
        try:
            if self.redis is None:
                redis_url = redis_url or settings.REDIS_URL
                if not redis_url:
                    raise ValueError("REDIS_URL is not configured")
                self.redis = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=1  # Fail fast if Redis is down
                )
            self.redis.ping()
            self.redis_available = True
            logger.info("SeenStore: connected to Redis.")
        except (RedisError, ValueError) as e:
            logger.warning(f"SeenStore: Redis unreachable ({e}). Using {self.fallback.__class__.__name__} fallback.")

    def load(self, staff_id: int, kind: str) -> Set[str]:
        key = seen_key(staff_id, kind)
        cached = self._memory_store.setdefault(key, set())
        if self.redis_available:
            try:
                cached.update(self.redis.smembers(key))
            except RedisError as e:
                self._handle_redis_error(e)
        return cached | self.fallback.load(staff_id, kind)

    def add(self, staff_id: int, kind: str, event_ids: Iterable[str]) -> None:
        ids = set(event_ids)
        if not ids:
            return
        key = seen_key(staff_id, kind)
        if self.redis_available:
            try:
                self.redis.sadd(key, *sorted(ids))
            except RedisError as e:
                self._handle_redis_error(e)

        # Always write to RAM and the fallback as well
        self._memory_store.setdefault(key, set()).update(ids)
        self.fallback.add(staff_id, kind, ids)

    def clear(self, staff_id: int, kind: str) -> None:
        key = seen_key(staff_id, kind)
        if self.redis_available:
            try:
                self.redis.delete(key)
            except RedisError as e:
                self._handle_redis_error(e)
        self._memory_store.pop(key, None)
        self.fallback.clear(staff_id, kind)

    def _handle_redis_error(self, e):
        """Stop trying Redis after the first failure."""
        logger.error(f"Redis Error: {e}. Switching to fallback mode.")
        self.redis_available = False


def build_seen_store() -> ISeenStore:
    if settings.REDIS_URL:
        return RedisSeenStore(settings.REDIS_URL, fallback=JsonFileSeenStore(settings.SEEN_STORE_PATH))
    return JsonFileSeenStore(settings.SEEN_STORE_PATH)
