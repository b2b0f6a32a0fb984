"""
Posts service for the Posts Access Layer.
"""

import asyncio
from typing import Any, Awaitable, Dict, List, Optional

from fastapi import Path

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import CacheError, RequestTimeoutError
from shared.tracing import add_span_event

from .cache.redis_cache import RedisPostCache
from .persistence.postgres import PostgreSQLPostRepository
from .posts.instrumentation import ObservedPostUsecase
from .posts.models import (
    Post, PostCreateRequest, PostUpdateBody, MessageResponse,
    PostIDRequest, PostTitleRequest, PostSlugRequest,
)
from .posts.usecase import PostUsecase


SERVICE_NAME = "posts"
SERVICE_PORT = 8013


class PostsService(BaseService):
    """Posts service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        persistence: Optional[Any] = None,
        cache: Optional[Any] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.persistence = persistence if persistence is not None else PostgreSQLPostRepository(
            self.config.postgres_dsn,
            min_size=self.config.postgres_min_pool_size,
            max_size=self.config.postgres_max_pool_size,
        )
        self.cache = cache if cache is not None else RedisPostCache(
            self.config.redis_url,
            self.config.post_cache_namespace,
            metrics=self.metrics,
        )
        self.usecase = ObservedPostUsecase(
            PostUsecase(self.persistence, self.cache, self.config.post_cache_ttl_seconds),
            self.metrics,
        )

        self._setup_posts_routes()

    def _setup_posts_routes(self):
        """Set up posts-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Posts Access Layer - Posts Service",
                "version": "1.0.0",
                "capabilities": ["persistence", "caching"],
                "cache_ttl_seconds": self.config.post_cache_ttl_seconds,
            }

        @self.app.post("/posts", status_code=201, response_model=MessageResponse)
        async def create_post(request: PostCreateRequest):
            """Create a new post."""
            await self._run("create", self.usecase.create(request))
            return MessageResponse(message="created")

        @self.app.get("/posts", response_model=List[Post])
        async def list_posts():
            """List all posts (never cached)."""
            return await self._run("find_all", self.usecase.find_all())

        @self.app.get("/posts/title/{title:path}", response_model=Post)
        async def get_post_by_title(title: str = Path(..., description="Post title")):
            """Get a post by title."""
            return await self._run("find_by_title", self.usecase.find_by_title(PostTitleRequest(title=title)))

        @self.app.get("/posts/slug/{slug}", response_model=Post)
        async def get_post_by_slug(slug: str = Path(..., description="Post slug")):
            """Get a post by slug."""
            return await self._run("find_by_slug", self.usecase.find_by_slug(PostSlugRequest(slug=slug)))

        @self.app.get("/posts/{post_id}", response_model=Post)
        async def get_post(post_id: int = Path(..., description="Post ID")):
            """Get a post by ID."""
            return await self._run("find_by_id", self.usecase.find_by_id(PostIDRequest(id=post_id)))

        @self.app.put("/posts/{post_id}", response_model=MessageResponse)
        async def update_post(body: PostUpdateBody, post_id: int = Path(..., description="Post ID")):
            """Update a post. Cached copies are left to expire."""
            await self._run("update", self.usecase.update(body.for_post(post_id)))
            return MessageResponse(message="updated")

        @self.app.delete("/posts/{post_id}", response_model=MessageResponse)
        async def delete_post(post_id: int = Path(..., description="Post ID")):
            """Delete a post and its id-keyed cache entry."""
            await self._run("delete", self.usecase.delete(PostIDRequest(id=post_id)))
            return MessageResponse(message="deleted")

    async def _run(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        """Run one usecase operation under the request deadline.

        A cache failure that happens after the store step succeeded is
        logged and counted, and the store result is returned.
        """
        timeout = self.config.request_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            self.logger.error("Request deadline exceeded", operation=operation, timeout_seconds=timeout)
            raise RequestTimeoutError(
                f"{operation} did not finish within {timeout}s",
                details={"operation": f"postUsecase.{operation}", "timeout_seconds": timeout},
            ) from e
        except CacheError as e:
            if not e.primary_succeeded:
                raise
            self.logger.warning(
                "Cache failure after successful operation",
                operation=operation,
                stage=e.details.get("stage"),
                error=str(e),
            )
            self.metrics.increment_counter("post_cache_soft_failures_total", operation=operation)
            add_span_event("cache_soft_failure", operation=operation, stage=str(e.details.get("stage")))
            return e.result

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check posts service dependencies."""
        dependencies = {}
        dependencies["redis"] = "ok" if await self.cache.health_check() else "error"
        dependencies["postgres"] = "ok" if await self.persistence.health_check() else "error"
        return dependencies

    async def start(self):
        """Start posts service components."""
        await self.persistence.start()
        await self.cache.start()

        self.logger.info("Posts service started", cache_ttl_seconds=self.config.post_cache_ttl_seconds)

    async def stop(self):
        """Stop posts service components."""
        await self.persistence.stop()
        await self.cache.stop()

        self.logger.info("Posts service stopped")


def create_app(config: Optional[ServiceConfig] = None, **components):
    """Create posts service application."""
    service = PostsService(config, **components)
    return service.app


if __name__ == "__main__":
    service = PostsService()
    service.run()
