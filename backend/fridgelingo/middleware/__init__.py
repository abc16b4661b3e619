"""
FridgeLingo Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    The request ID is assigned before the access log line is written, so
    every log entry of a request can be correlated with X-Request-ID.
"""
