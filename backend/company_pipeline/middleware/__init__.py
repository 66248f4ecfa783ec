# Middleware package init
"""
Company Pipeline Backend: HTTP Middleware Package
=================================================

What:  HTTP-level cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Access Log] → [CORS] → Route → Dispatcher pipeline

    The order is reversed for responses:
    Response ← [Request ID] ← [Access Log] ← [CORS] ← Route

    This means:
    - The request ID is set before logging or any pipeline behavior reads it
    - The access log reads the request type and failed stage recorded by routes and error handlers
"""
