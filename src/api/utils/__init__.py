"""API helpers shared by routers and exception handlers."""
