"""Cross-cutting functionality shared by every layer.

- **config**: Pydantic settings with environment variable support
- **constants**: Business constants (tolerance, period cap, credit types)
- **context**: Correlation and request ID storage
- **exceptions**: Exception hierarchy with error codes and violation kinds
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Loguru setup with console, JSON and GCP formatters
- **observability**: OpenTelemetry tracing
- **types**: Type aliases
"""
