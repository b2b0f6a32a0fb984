"""
Posts Service package for the Posts Access Layer.

This package serves reads and writes of a single entity, the post, over
a PostgreSQL source of truth and a Redis copy. It provides:

- app.main: API surface for the seven post operations and health.
- app.posts: Post models, storage contracts, and the cache-aside usecase.
- app.cache: Redis-backed cache of posts keyed by id, title or slug.
- app.persistence: PostgreSQL storage of posts.

Guidelines:
- The service is stateless; all state lives in PostgreSQL or Redis.
- The usecase receives its store and cache through the constructor.
- Cached posts are only ever copies of a store read.
"""
