"""
Persistence package for Posts Service.

PostgreSQL is the source of truth for posts.
"""
