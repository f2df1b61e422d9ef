"""Middleware and exception handlers applied to every request.

Execution order for an incoming request:
1. CORS
2. Request context (correlation ID)
3. Request logging (timings, request ID)
4. Exception handlers (consistent error responses)
"""
