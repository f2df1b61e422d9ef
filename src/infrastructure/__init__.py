"""Infrastructure layer: persistence and caching.

- **database**: Async engine, sessions, declarative base and base repository
- **credits**: The ``credito`` table mapping and its repository
- **cache**: Process-local read-through cache for query results
"""
