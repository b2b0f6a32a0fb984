"""
Cache package for Posts Service.

Provides a Redis-backed cache that stores serialised posts under
``<namespace>:<id|title|slug>:<key>`` with a fixed TTL.
"""
