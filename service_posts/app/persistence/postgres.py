"""
PostgreSQL persistence layer for the Posts service.
"""

import asyncio
from contextlib import contextmanager
from typing import List, Optional

import asyncpg

from shared.logging import get_logger
from shared.tracing import trace_function
from shared.errors import AccessLayerException, ConflictError, NotFoundError, StoreError
from ..posts.models import NewPost, Post, PostUpdate


_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)
_SPAN_ATTRIBUTES = {"db.system": "postgresql", "db.sql.table": "posts"}


class PostgreSQLPostRepository:
    """asyncpg-backed durable store of posts."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("posts.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except _DRIVER_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise AccessLayerException("POSTGRES_START_FAILED", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS posts (
                    id BIGSERIAL PRIMARY KEY,
                    title VARCHAR(255) NOT NULL UNIQUE,
                    slug VARCHAR(255) NOT NULL UNIQUE,
                    content TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

    @contextmanager
    def _translate_errors(self, action: str, **details):
        """Map asyncpg failures onto the access layer error types."""
        if self.pool is None:
            raise StoreError("PostgreSQL persistence not started", details={"action": action, **details})
        try:
            yield
        except asyncpg.UniqueViolationError as e:
            self.logger.warning("Unique constraint violated", action=action, constraint=getattr(e, "constraint_name", None), **details)
            raise ConflictError(
                "A post with this title or slug already exists",
                details={"action": action, "constraint": getattr(e, "constraint_name", None), **details},
            ) from e
        except _DRIVER_ERRORS as e:
            self.logger.error("PostgreSQL error", action=action, error=str(e), **details)
            raise StoreError(f"{action} failed: {e}", details={"action": action, **details}) from e

    @trace_function("postgres.posts.create", **_SPAN_ATTRIBUTES)
    async def create(self, new_post: NewPost) -> Post:
        """Insert a post and return the stored row."""
        with self._translate_errors("create_post", slug=new_post.slug):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    INSERT INTO posts (title, slug, content)
                    VALUES ($1, $2, $3)
                    RETURNING *
                """, new_post.title, new_post.slug, new_post.content)

        self.logger.info("Post saved", post_id=row["id"], slug=row["slug"])
        return self._row_to_post(row)

    @trace_function("postgres.posts.get_all", **_SPAN_ATTRIBUTES)
    async def get_all(self) -> List[Post]:
        """Load all posts."""
        with self._translate_errors("get_all_posts"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM posts ORDER BY id ASC")

        return [self._row_to_post(row) for row in rows]

    async def get_by_id(self, post_id: int) -> Post:
        return await self._get_one("id", post_id)

    async def get_by_title(self, title: str) -> Post:
        return await self._get_one("title", title)

    async def get_by_slug(self, slug: str) -> Post:
        return await self._get_one("slug", slug)

    @trace_function("postgres.posts.get_one", **_SPAN_ATTRIBUTES)
    async def _get_one(self, column: str, value) -> Post:
        # column is one of the fixed lookup names above, never caller input
        with self._translate_errors(f"get_post_by_{column}", **{column: value}):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"SELECT * FROM posts WHERE {column} = $1", value)

        if not row:
            raise NotFoundError(f"Post with {column} {value!r} not found", details={column: value})
        return self._row_to_post(row)

    @trace_function("postgres.posts.update", **_SPAN_ATTRIBUTES)
    async def update(self, post_update: PostUpdate) -> Post:
        """Apply the provided fields to an existing post."""
        with self._translate_errors("update_post", post_id=post_update.id):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    UPDATE posts SET
                        title = COALESCE($2, title),
                        slug = COALESCE($3, slug),
                        content = COALESCE($4, content),
                        updated_at = NOW()
                    WHERE id = $1
                    RETURNING *
                """, post_update.id, post_update.title, post_update.slug, post_update.content)

        if not row:
            raise NotFoundError(f"Post with id {post_update.id} not found", details={"id": post_update.id})

        self.logger.info("Post updated", post_id=post_update.id, fields=sorted(post_update.changes()))
        return self._row_to_post(row)

    @trace_function("postgres.posts.delete", **_SPAN_ATTRIBUTES)
    async def delete(self, post_id: int) -> None:
        """Delete a post from the database."""
        with self._translate_errors("delete_post", post_id=post_id):
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM posts WHERE id = $1", post_id)

        if result != "DELETE 1":
            self.logger.warning("Post not found for deletion", post_id=post_id)
            raise NotFoundError(f"Post with id {post_id} not found", details={"id": post_id})

        self.logger.info("Post deleted", post_id=post_id)

    def _row_to_post(self, row) -> Post:
        """Convert database row to Post object."""
        return Post(
            id=row["id"],
            title=row["title"],
            slug=row["slug"],
            content=row["content"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except _DRIVER_ERRORS:
            return False
