"""
Cache-aside access to posts.

Reads go cache first, then the durable store, then back into the cache
with a fixed TTL. Writes go to the durable store only; ``delete`` also
drops the id-keyed cache entry. ``update`` does not touch the cache, so a
previously cached copy keeps being served until its TTL runs out.
"""

from typing import Awaitable, Callable, List, Optional, TypeVar

from shared.errors import AccessLayerException, CacheError, NotFoundError, ValidationError
from shared.logging import get_logger

from .models import (
    Post, PostCreateRequest, PostUpdateRequest,
    PostIDRequest, PostTitleRequest, PostSlugRequest,
)
from .ports import PostRepository, PostCacheRepository

T = TypeVar("T")

DEFAULT_CACHE_TTL_SECONDS = 3600


class PostUsecase:
    """Coordinates the post store and the post cache for each operation."""

    def __init__(
        self,
        post_repo: PostRepository,
        cache_repo: PostCacheRepository,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        if cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        self.post_repo = post_repo
        self.cache_repo = cache_repo
        self.cache_ttl_seconds = cache_ttl_seconds
        self.logger = get_logger("posts.usecase")

    async def create(self, request: PostCreateRequest) -> None:
        operation = "postUsecase.create"
        self._validate(operation, request)

        post = await self._from_store(operation, "store_write", self.post_repo.create, request.to_post())
        self.logger.info("Post created", post_id=post.id, slug=post.slug)

    async def find_all(self) -> List[Post]:
        return await self._from_store("postUsecase.find_all", "store_read", self.post_repo.get_all)

    async def find_by_id(self, request: PostIDRequest) -> Post:
        operation = "postUsecase.find_by_id"
        self._validate(operation, request)
        return await self._cache_aside(
            operation, "id", request.cache_key,
            self.cache_repo.get_by_id, self.cache_repo.set_by_id,
            lambda: self.post_repo.get_by_id(request.id),
        )

    async def find_by_title(self, request: PostTitleRequest) -> Post:
        operation = "postUsecase.find_by_title"
        self._validate(operation, request)
        return await self._cache_aside(
            operation, "title", request.cache_key,
            self.cache_repo.get_by_title, self.cache_repo.set_by_title,
            lambda: self.post_repo.get_by_title(request.cache_key),
        )

    async def find_by_slug(self, request: PostSlugRequest) -> Post:
        operation = "postUsecase.find_by_slug"
        self._validate(operation, request)
        return await self._cache_aside(
            operation, "slug", request.cache_key,
            self.cache_repo.get_by_slug, self.cache_repo.set_by_slug,
            lambda: self.post_repo.get_by_slug(request.slug),
        )

    async def update(self, request: PostUpdateRequest) -> None:
        operation = "postUsecase.update"
        self._validate(operation, request)

        post = await self._from_store(operation, "store_write", self.post_repo.update, request.to_update())
        # Cached copies under the old id/title/slug stay until their TTL expires.
        self.logger.info("Post updated", post_id=post.id, cache_invalidated=False)

    async def delete(self, request: PostIDRequest) -> None:
        operation = "postUsecase.delete"
        self._validate(operation, request)

        await self._from_store(operation, "store_write", self.post_repo.delete, request.id)
        self.logger.info("Post deleted", post_id=request.id)

        try:
            await self.cache_repo.delete_by_id(request.cache_key)
        except CacheError as e:
            self.logger.error("Problem deleting post from cache", operation=operation,
                              post_id=request.id, error=str(e))
            raise e.with_context(operation, "cache_invalidate")

    def _validate(self, operation: str, request) -> None:
        try:
            request.validate_input()
        except ValidationError as e:
            self.logger.info("Rejected invalid input", operation=operation, errors=e.details.get("errors"))
            raise e.with_context(operation, "validate")

    async def _from_store(self, operation: str, stage: str, call: Callable[..., Awaitable[T]], *args) -> T:
        try:
            return await call(*args)
        except NotFoundError as e:
            self.logger.info("Post not found in store", operation=operation, error=str(e))
            raise e.with_context(operation, stage)
        except AccessLayerException as e:
            self.logger.error("Problem querying the store", operation=operation, stage=stage,
                              code=e.code, error=str(e))
            raise e.with_context(operation, stage)

    async def _cache_aside(
        self,
        operation: str,
        dimension: str,
        key: str,
        cache_get: Callable[[str], Awaitable[Optional[Post]]],
        cache_set: Callable[[str, int, Post], Awaitable[None]],
        store_get: Callable[[], Awaitable[Post]],
    ) -> Post:
        try:
            cached = await cache_get(key)
        except CacheError as e:
            # Treated as a miss for every lookup dimension.
            self.logger.warning("Problem getting post from cache, falling back to store",
                                operation=operation, dimension=dimension, key=key, error=str(e))
            cached = None

        if cached is not None:
            self.logger.debug("Post served from cache", operation=operation, dimension=dimension, key=key)
            return cached

        post = await self._from_store(operation, "store_read", store_get)

        try:
            await cache_set(key, self.cache_ttl_seconds, post)
        except CacheError as e:
            self.logger.error("Problem setting post in cache", operation=operation,
                              dimension=dimension, key=key, error=str(e))
            e.result = post
            raise e.with_context(operation, "cache_populate")

        return post
