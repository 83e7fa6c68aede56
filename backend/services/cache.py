"""
Redis Cache Service for Catalog Data

Caches the Firestore catalog reads that every planner verification repeats:
course display codes and wildcard prefix expansions.

Values are stored as JSON with a per-kind TTL. Any Redis failure is logged
and treated as a cache miss, so a request never fails because of the cache.
"""

import json
from typing import Optional, List, Dict, Any, Iterable

import redis

from core.config import (
    REDIS_URL,
    REDIS_HOST,
    REDIS_PORT,
    REDIS_DB,
    REDIS_PASSWORD,
    COURSE_CODE_TTL,
    PREFIX_MATCH_TTL,
)

# Cache key prefixes
CACHE_PREFIX = "degree_planner:"
COURSE_CODE_PREFIX = f"{CACHE_PREFIX}course_code:"
PREFIX_MATCH_PREFIX = f"{CACHE_PREFIX}prefix_match:"


class RedisCache:
    """Redis cache for catalog lookups"""

    def __init__(self):
        self._client: Optional[redis.Redis] = None
        self._connected = False

    def _create_client(self) -> redis.Redis:
        options = {"decode_responses": True, "socket_timeout": 5, "socket_connect_timeout": 5}
        if REDIS_URL:
            return redis.from_url(REDIS_URL, **options)
        return redis.Redis(host=REDIS_HOST, port=REDIS_PORT, db=REDIS_DB, password=REDIS_PASSWORD, **options)

    def connect(self) -> bool:
        """
        Open the Redis connection (REDIS_URL wins over host/port).

        Returns:
            True if the server answered a ping
        """
        try:
            client = self._create_client()
            client.ping()
        except redis.RedisError as e:
            print(f"[CACHE] Redis unavailable, catalog reads go to Firestore: {e}")
            self._client = None
            self._connected = False
            return False

        self._client = client
        self._connected = True
        print(f"[CACHE] Connected to Redis ({REDIS_URL or f'{REDIS_HOST}:{REDIS_PORT}'})")
        return True

    @property
    def is_connected(self) -> bool:
        """Ping the server if a connection was made"""
        if self._client is None or not self._connected:
            return False
        try:
            self._client.ping()
        except redis.RedisError:
            self._connected = False
            return False
        return True

    def _ready(self) -> bool:
        """Reconnect on demand"""
        return self.is_connected or self.connect()

    def get(self, key: str) -> Optional[Any]:
        """Read and decode a JSON value; None on miss or error"""
        if not self._ready():
            return None

        try:
            raw = self._client.get(key)
            return json.loads(raw) if raw else None
        except (redis.RedisError, ValueError) as e:
            print(f"[CACHE] Read failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = COURSE_CODE_TTL) -> bool:
        """Encode and store a JSON value with a TTL"""
        if not self._ready():
            return False

        try:
            self._client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as e:
            print(f"[CACHE] Write failed for {key}: {e}")
            return False
        return True

    def _matching_keys(self, pattern: str) -> List[str]:
        return list(self._client.scan_iter(match=pattern))

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern"""
        if not self._ready():
            return 0

        try:
            keys = self._matching_keys(pattern)
            return self._client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            print(f"[CACHE] Delete failed for {pattern}: {e}")
            return 0

    def clear_all(self) -> bool:
        """Drop every planner key"""
        if not self._ready():
            return False

        removed = self.delete_pattern(f"{CACHE_PREFIX}*")
        print(f"[CACHE] Cleared {removed} planner keys")
        return True

    # --- Course codes ---

    def _course_code_key(self, course_id: str) -> str:
        return f"{COURSE_CODE_PREFIX}{self._sanitize_key(course_id)}"

    def get_course_codes(self, course_ids: List[str]) -> Dict[str, str]:
        """
        Get cached display codes for course ids.

        Returns:
            Mapping of course_id -> code for the ids found in cache
        """
        if not course_ids or not self._ready():
            return {}

        try:
            values = self._client.mget([self._course_code_key(cid) for cid in course_ids])
        except redis.RedisError as e:
            print(f"[CACHE] Course code lookup failed: {e}")
            return {}

        return {cid: json.loads(value) for cid, value in zip(course_ids, values) if value}

    def set_course_codes(self, codes: Dict[str, str]) -> int:
        """Cache display codes in one pipeline; returns the number written"""
        if not codes or not self._ready():
            return 0

        pipe = self._client.pipeline()
        for cid, code in codes.items():
            pipe.setex(self._course_code_key(cid), COURSE_CODE_TTL, json.dumps(code))
        try:
            pipe.execute()
        except redis.RedisError as e:
            print(f"[CACHE] Course code write failed: {e}")
            return 0
        return len(codes)

    # --- Wildcard expansions ---

    def _prefix_match_key(self, prefix: str, pattern: str) -> str:
        return f"{PREFIX_MATCH_PREFIX}{self._sanitize_key(prefix.upper())}:{self._sanitize_key(pattern.upper())}"

    def get_prefix_matches(self, prefix: str, pattern: str) -> Optional[List[Dict[str, str]]]:
        """Cached {course_id, code} rows for a wildcard, or None"""
        return self.get(self._prefix_match_key(prefix, pattern))

    def set_prefix_matches(self, prefix: str, pattern: str, courses: List[Dict[str, str]]) -> bool:
        return self.set(self._prefix_match_key(prefix, pattern), courses, PREFIX_MATCH_TTL)

    @staticmethod
    def _sanitize_key(key: str) -> str:
        """Course codes contain spaces and slashes"""
        return key.replace(" ", "_").replace("/", "-")

    def _count(self, patterns: Iterable[str]) -> List[int]:
        return [len(self._matching_keys(p)) for p in patterns]

    def get_stats(self) -> Dict[str, Any]:
        """Hit/miss counters, memory and planner key counts"""
        if not self._ready():
            return {"connected": False}

        try:
            stats = self._client.info("stats")
            memory = self._client.info("memory")
            course_codes, prefix_matches = self._count(
                [f"{COURSE_CODE_PREFIX}*", f"{PREFIX_MATCH_PREFIX}*"]
            )
        except redis.RedisError as e:
            return {"connected": True, "error": str(e)}

        return {
            "connected": True,
            "hits": stats.get("keyspace_hits", 0),
            "misses": stats.get("keyspace_misses", 0),
            "memory_used": memory.get("used_memory_human", "unknown"),
            "course_code_keys": course_codes,
            "prefix_match_keys": prefix_matches,
            "total_keys": course_codes + prefix_matches
        }


_cache_instance: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Shared cache, connected on first use"""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = RedisCache()
        _cache_instance.connect()
    return _cache_instance


def is_cache_available() -> bool:
    return get_cache().is_connected
