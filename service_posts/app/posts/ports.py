"""
Storage contracts the post usecase depends on.

Both ports are async. Adapters translate their driver errors into
``shared.errors`` types so the usecase never sees asyncpg or redis
exceptions.
"""

from typing import List, Optional, Protocol

from .models import NewPost, Post, PostUpdate


class PostRepository(Protocol):
    """Durable store of posts (source of truth).

    Lookups, ``update`` and ``delete`` raise ``NotFoundError`` when nothing
    matches and ``StoreError`` on driver failures.
    """

    async def create(self, new_post: NewPost) -> Post: ...

    async def get_all(self) -> List[Post]: ...

    async def get_by_id(self, post_id: int) -> Post: ...

    async def get_by_title(self, title: str) -> Post: ...

    async def get_by_slug(self, slug: str) -> Post: ...

    async def update(self, post_update: PostUpdate) -> Post: ...

    async def delete(self, post_id: int) -> None: ...


class PostCacheRepository(Protocol):
    """Volatile copy of posts keyed by id, title or slug.

    Getters return ``None`` when the key is absent. Any other failure
    raises ``CacheError``.
    """

    async def get_by_id(self, key: str) -> Optional[Post]: ...

    async def get_by_title(self, key: str) -> Optional[Post]: ...

    async def get_by_slug(self, key: str) -> Optional[Post]: ...

    async def set_by_id(self, key: str, ttl_seconds: int, post: Post) -> None: ...

    async def set_by_title(self, key: str, ttl_seconds: int, post: Post) -> None: ...

    async def set_by_slug(self, key: str, ttl_seconds: int, post: Post) -> None: ...

    async def delete_by_id(self, key: str) -> None: ...
