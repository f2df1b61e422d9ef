"""HTTP API layer built on FastAPI.

- **main**: Application factory and lifecycle management
- **dependencies**: Wiring of repository, cache and service per request
- **routes**: Public credit queries and administrative endpoints
- **middleware**: Request context, request logging and exception handlers
- **schemas**: Pydantic request and response models
- **utils**: orjson response class
"""
