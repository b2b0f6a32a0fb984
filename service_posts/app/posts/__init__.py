"""
Posts domain package.

Modules of interest:
- models: Post, write payloads, and validated request inputs.
- ports: Protocols for the durable store and the cache.
- usecase: Cache-aside coordination of the two ports.
- instrumentation: Span and metric wrapper around the usecase.
"""
