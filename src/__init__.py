"""Consulta Créditos ISSQN - query API for constituted ISSQN tax credits.

Architecture Overview:
- **API Layer**: FastAPI routers, middleware and error responses
- **Core Layer**: Configuration, logging, tracing and the exception hierarchy
- **Domain Layer**: Credit records, validation rules and the query service
- **Infrastructure Layer**: PostgreSQL persistence and the query cache

Credits are never written through this service; they are loaded by an
external ingestion process and only read, validated and audited here.
"""
