"""
Redis caching layer for the Posts service.
"""

from typing import Optional, TYPE_CHECKING

import pydantic
import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import AccessLayerException, CacheError
from ..posts.models import Post

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class RedisPostCache:
    """Redis copy of posts keyed by id, title or slug."""

    def __init__(
        self,
        redis_url: str,
        namespace: str = "post",
        *,
        metrics: Optional["MetricsCollector"] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.namespace = namespace
        self.metrics = metrics
        self.logger = get_logger("posts.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30
                )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except RedisError as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise AccessLayerException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    async def get_by_id(self, key: str) -> Optional[Post]:
        return await self._get("id", key)

    async def get_by_title(self, key: str) -> Optional[Post]:
        return await self._get("title", key)

    async def get_by_slug(self, key: str) -> Optional[Post]:
        return await self._get("slug", key)

    async def set_by_id(self, key: str, ttl_seconds: int, post: Post) -> None:
        await self._set("id", key, ttl_seconds, post)

    async def set_by_title(self, key: str, ttl_seconds: int, post: Post) -> None:
        await self._set("title", key, ttl_seconds, post)

    async def set_by_slug(self, key: str, ttl_seconds: int, post: Post) -> None:
        await self._set("slug", key, ttl_seconds, post)

    async def delete_by_id(self, key: str) -> None:
        cache_key = self._cache_key("id", key)
        client = self._client(cache_key)
        try:
            removed = await client.delete(cache_key)
        except RedisError as e:
            self.logger.error("Error deleting cached post", cache_key=cache_key, error=str(e))
            raise CacheError(f"Redis DEL failed: {e}", details={"cache_key": cache_key}) from e

        self.logger.debug("Deleted cached post", cache_key=cache_key, removed=removed)

    async def _get(self, dimension: str, key: str) -> Optional[Post]:
        cache_key = self._cache_key(dimension, key)
        client = self._client(cache_key)
        try:
            cached_data = await client.get(cache_key)
        except (RedisError, UnicodeDecodeError) as e:
            self._record_lookup(dimension, "error")
            self.logger.warning("Error getting cached post", cache_key=cache_key, error=str(e))
            raise CacheError(f"Redis GET failed: {e}", details={"cache_key": cache_key}) from e

        if cached_data is None:
            self._record_lookup(dimension, "miss")
            self.logger.debug("Cache miss for post", cache_key=cache_key)
            return None

        try:
            post = Post.model_validate_json(cached_data)
        except pydantic.ValidationError as e:
            self._record_lookup(dimension, "error")
            self.logger.warning("Undecodable cached post", cache_key=cache_key, error=str(e))
            raise CacheError("Cached post could not be decoded", details={"cache_key": cache_key}) from e

        self._record_lookup(dimension, "hit")
        self.logger.debug("Cache hit for post", cache_key=cache_key)
        return post

    async def _set(self, dimension: str, key: str, ttl_seconds: int, post: Post) -> None:
        cache_key = self._cache_key(dimension, key)
        client = self._client(cache_key)
        try:
            await client.setex(cache_key, ttl_seconds, post.model_dump_json())
        except RedisError as e:
            self.logger.error("Error caching post", cache_key=cache_key, error=str(e))
            raise CacheError(f"Redis SETEX failed: {e}", details={"cache_key": cache_key}) from e

        self.logger.debug("Cached post", cache_key=cache_key, ttl=ttl_seconds)

    def _cache_key(self, dimension: str, key: str) -> str:
        """Generate cache key for a post lookup dimension."""
        return f"{self.namespace}:{dimension}:{key}"

    def _client(self, cache_key: str) -> redis.Redis:
        if self.redis is None:
            raise CacheError("Redis cache not started", details={"cache_key": cache_key})
        return self.redis

    def _record_lookup(self, dimension: str, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("post_cache_lookups_total", dimension=dimension, result=result)

    async def health_check(self) -> bool:
        """Check Redis health."""
        if self.redis is None:
            return False
        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False
