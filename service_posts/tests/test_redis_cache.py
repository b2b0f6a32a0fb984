"""
Unit tests for the Redis post cache.
"""

import pytest
from unittest.mock import AsyncMock
from datetime import datetime, timezone

from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from shared.errors import AccessLayerException, CacheError
from shared.metrics import MetricsCollector
from service_posts.app.cache.redis_cache import RedisPostCache
from service_posts.app.posts.models import Post


class TestRedisPostCache:
    """Test cases for RedisPostCache."""

    @pytest.fixture
    def client(self):
        """Mock redis.asyncio client."""
        return AsyncMock()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("posts")

    @pytest.fixture
    def post_cache(self, client, metrics):
        """Create RedisPostCache with an injected client."""
        return RedisPostCache("redis://localhost:6379/0", metrics=metrics, client=client)

    @pytest.fixture
    def post(self):
        return Post(
            id=1,
            title="Hello",
            slug="hello",
            content="First post",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    @pytest.mark.asyncio
    async def test_get_by_slug_hit(self, post_cache, client, metrics, post):
        client.get.return_value = post.model_dump_json()

        result = await post_cache.get_by_slug("hello")

        assert result == post
        client.get.assert_called_once_with("post:slug:hello")
        assert metrics.get_sample_value("post_cache_lookups_total", dimension="slug", result="hit") == 1.0

    @pytest.mark.asyncio
    async def test_get_by_id_miss_returns_none(self, post_cache, client, metrics):
        client.get.return_value = None

        result = await post_cache.get_by_id("1")

        assert result is None
        client.get.assert_called_once_with("post:id:1")
        assert metrics.get_sample_value("post_cache_lookups_total", dimension="id", result="miss") == 1.0

    @pytest.mark.asyncio
    async def test_empty_post_is_not_a_miss(self, post_cache, client):
        client.get.return_value = Post(id=0, title="", slug="").model_dump_json()

        result = await post_cache.get_by_title("")

        assert result is not None
        assert result.title == ""

    @pytest.mark.asyncio
    async def test_get_transport_error_raises_cache_error(self, post_cache, client, metrics):
        client.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(CacheError) as exc_info:
            await post_cache.get_by_title("Hello")

        assert exc_info.value.details["cache_key"] == "post:title:Hello"
        assert metrics.get_sample_value("post_cache_lookups_total", dimension="title", result="error") == 1.0

    @pytest.mark.asyncio
    async def test_get_undecodable_bytes_raises_cache_error(self, post_cache, client, metrics):
        client.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(CacheError):
            await post_cache.get_by_slug("hello")

        assert metrics.get_sample_value("post_cache_lookups_total", dimension="slug", result="error") == 1.0

    @pytest.mark.asyncio
    async def test_get_corrupt_payload_raises_cache_error(self, post_cache, client):
        client.get.return_value = "{not json"

        with pytest.raises(CacheError):
            await post_cache.get_by_id("1")

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_ttl(self, post_cache, client, post):
        await post_cache.set_by_title("Hello", 3600, post)

        client.setex.assert_called_once_with("post:title:Hello", 3600, post.model_dump_json())

    @pytest.mark.asyncio
    async def test_set_error_raises_cache_error(self, post_cache, client, post):
        client.setex.side_effect = RedisTimeoutError("timed out")

        with pytest.raises(CacheError):
            await post_cache.set_by_id("1", 3600, post)

    @pytest.mark.asyncio
    async def test_delete_by_id(self, post_cache, client):
        client.delete.return_value = 1

        await post_cache.delete_by_id("1")

        client.delete.assert_called_once_with("post:id:1")

    @pytest.mark.asyncio
    async def test_delete_error_raises_cache_error(self, post_cache, client):
        client.delete.side_effect = RedisConnectionError("down")

        with pytest.raises(CacheError):
            await post_cache.delete_by_id("1")

    @pytest.mark.asyncio
    async def test_custom_namespace(self, client):
        post_cache = RedisPostCache("redis://localhost:6379/0", "blog", client=client)
        client.get.return_value = None

        await post_cache.get_by_slug("hello")

        client.get.assert_called_once_with("blog:slug:hello")

    @pytest.mark.asyncio
    async def test_not_started_raises_cache_error(self):
        post_cache = RedisPostCache("redis://localhost:6379/0")

        with pytest.raises(CacheError):
            await post_cache.get_by_id("1")

        assert await post_cache.health_check() is False

    @pytest.mark.asyncio
    async def test_start_pings(self, post_cache, client):
        await post_cache.start()

        client.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_failure(self, post_cache, client):
        client.ping.side_effect = RedisConnectionError("down")

        with pytest.raises(AccessLayerException) as exc_info:
            await post_cache.start()

        assert exc_info.value.code == "REDIS_START_FAILED"

    @pytest.mark.asyncio
    async def test_health_check(self, post_cache, client):
        assert await post_cache.health_check() is True

        client.ping.side_effect = RedisConnectionError("down")

        assert await post_cache.health_check() is False

    @pytest.mark.asyncio
    async def test_stop_closes_client(self, post_cache, client):
        await post_cache.stop()

        client.aclose.assert_awaited_once()
