"""
Tracing and metrics around the post usecase.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, List, TypeVar

from shared.errors import AccessLayerException, CacheError
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation, add_span_attributes

from .models import (
    Post, PostCreateRequest, PostUpdateRequest,
    PostIDRequest, PostTitleRequest, PostSlugRequest,
)
from .usecase import PostUsecase

T = TypeVar("T")


class ObservedPostUsecase:
    """Same operations as ``PostUsecase``, each wrapped in a span and timed."""

    def __init__(self, usecase: PostUsecase, metrics: MetricsCollector):
        self.usecase = usecase
        self.metrics = metrics

    async def create(self, request: PostCreateRequest) -> None:
        return await self._observe("create", self.usecase.create, request, slug=request.slug)

    async def find_all(self) -> List[Post]:
        return await self._observe("find_all", self.usecase.find_all)

    async def find_by_id(self, request: PostIDRequest) -> Post:
        return await self._observe("find_by_id", self.usecase.find_by_id, request, post_id=request.id)

    async def find_by_title(self, request: PostTitleRequest) -> Post:
        return await self._observe("find_by_title", self.usecase.find_by_title, request, title=request.title)

    async def find_by_slug(self, request: PostSlugRequest) -> Post:
        return await self._observe("find_by_slug", self.usecase.find_by_slug, request, slug=request.slug)

    async def update(self, request: PostUpdateRequest) -> None:
        return await self._observe("update", self.usecase.update, request, post_id=request.id)

    async def delete(self, request: PostIDRequest) -> None:
        return await self._observe("delete", self.usecase.delete, request, post_id=request.id)

    async def _observe(self, operation: str, call: Callable[..., Awaitable[T]], *args: Any, **attributes: Any) -> T:
        start_time = time.time()
        outcome = "success"
        with trace_operation(f"postUsecase.{operation}") as span:
            add_span_attributes(**{f"post.{k}": v for k, v in attributes.items()})
            try:
                return await call(*args)
            except CacheError as e:
                outcome = "success_cache_degraded" if e.primary_succeeded else e.code.lower()
                span.set_attribute("error.code", e.code)
                raise
            except AccessLayerException as e:
                outcome = e.code.lower()
                span.set_attribute("error.code", e.code)
                raise
            except asyncio.CancelledError:
                outcome = "cancelled"
                raise
            except Exception:
                outcome = "internal_error"
                raise
            finally:
                self.metrics.increment_counter("post_operations_total", operation=operation, outcome=outcome)
                self.metrics.observe_histogram(
                    "post_operation_duration_seconds", time.time() - start_time, operation=operation
                )
