"""
Shared fixtures and in-memory fakes for Posts service tests.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from shared.errors import CacheError, ConflictError, NotFoundError, StoreError
from service_posts.app.posts.models import NewPost, Post, PostUpdate
from service_posts.app.posts.usecase import PostUsecase


class InMemoryPostRepository:
    """Dict-backed PostRepository that counts calls."""

    def __init__(self):
        self.posts: Dict[int, Post] = {}
        self.calls: Counter = Counter()
        self.fail_with: Optional[Exception] = None
        self._next_id = 1

    async def start(self):
        return None

    async def stop(self):
        return None

    async def health_check(self) -> bool:
        return self.fail_with is None

    @property
    def reads(self) -> int:
        return sum(self.calls[name] for name in ("get_by_id", "get_by_title", "get_by_slug"))

    def _enter(self, name: str):
        self.calls[name] += 1
        if self.fail_with is not None:
            raise self.fail_with

    def _check_unique(self, title: str, slug: str, skip_id: Optional[int] = None):
        for post in self.posts.values():
            if post.id != skip_id and (post.title == title or post.slug == slug):
                raise ConflictError(details={"title": title, "slug": slug})

    async def create(self, new_post: NewPost) -> Post:
        self._enter("create")
        self._check_unique(new_post.title, new_post.slug)
        now = datetime.now(timezone.utc)
        post = Post(id=self._next_id, created_at=now, updated_at=now, **new_post.model_dump())
        self.posts[post.id] = post
        self._next_id += 1
        return post

    async def get_all(self) -> List[Post]:
        self._enter("get_all")
        return [self.posts[k] for k in sorted(self.posts)]

    async def get_by_id(self, post_id: int) -> Post:
        self._enter("get_by_id")
        if post_id not in self.posts:
            raise NotFoundError(details={"id": post_id})
        return self.posts[post_id]

    async def get_by_title(self, title: str) -> Post:
        self._enter("get_by_title")
        return self._find("title", title)

    async def get_by_slug(self, slug: str) -> Post:
        self._enter("get_by_slug")
        return self._find("slug", slug)

    def _find(self, field: str, value: str) -> Post:
        for post in self.posts.values():
            if getattr(post, field) == value:
                return post
        raise NotFoundError(details={field: value})

    async def update(self, post_update: PostUpdate) -> Post:
        self._enter("update")
        current = self.posts.get(post_update.id)
        if current is None:
            raise NotFoundError(details={"id": post_update.id})
        changes = post_update.changes()
        self._check_unique(changes.get("title"), changes.get("slug"), skip_id=current.id)
        updated = current.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        self.posts[current.id] = updated
        return updated

    async def delete(self, post_id: int) -> None:
        self._enter("delete")
        if self.posts.pop(post_id, None) is None:
            raise NotFoundError(details={"id": post_id})

    def id_for_slug(self, slug: str) -> int:
        return self._find("slug", slug).id


class InMemoryPostCache:
    """Dict-backed PostCacheRepository storing serialised posts."""

    def __init__(self):
        self.entries: Dict[Tuple[str, str], Tuple[str, int]] = {}
        self.calls: Counter = Counter()
        self.fail_get = False
        self.fail_set = False
        self.fail_delete = False

    async def start(self):
        return None

    async def stop(self):
        return None

    async def health_check(self) -> bool:
        return not (self.fail_get or self.fail_set or self.fail_delete)

    def put(self, dimension: str, key: str, post: Post, ttl: int = 3600):
        self.entries[(dimension, key)] = (post.model_dump_json(), ttl)

    def ttl_for(self, dimension: str, key: str) -> Optional[int]:
        entry = self.entries.get((dimension, key))
        return entry[1] if entry else None

    async def _get(self, dimension: str, key: str) -> Optional[Post]:
        self.calls[f"get_by_{dimension}"] += 1
        if self.fail_get:
            raise CacheError("connection refused", details={"cache_key": f"post:{dimension}:{key}"})
        entry = self.entries.get((dimension, key))
        return Post.model_validate_json(entry[0]) if entry else None

    async def _set(self, dimension: str, key: str, ttl_seconds: int, post: Post) -> None:
        self.calls[f"set_by_{dimension}"] += 1
        if self.fail_set:
            raise CacheError("connection refused", details={"cache_key": f"post:{dimension}:{key}"})
        self.put(dimension, key, post, ttl_seconds)

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
        self.calls["delete_by_id"] += 1
        if self.fail_delete:
            raise CacheError("connection refused", details={"cache_key": f"post:id:{key}"})
        self.entries.pop(("id", key), None)


@pytest.fixture
def repo():
    """Empty in-memory post store."""
    return InMemoryPostRepository()


@pytest.fixture
def cache():
    """Empty in-memory post cache."""
    return InMemoryPostCache()


@pytest.fixture
def usecase(repo, cache):
    """PostUsecase wired to the in-memory fakes."""
    return PostUsecase(repo, cache)


@pytest.fixture
def store_down():
    """Error raised by a failing durable store."""
    return StoreError("connection reset by peer")
