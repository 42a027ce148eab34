# Middleware package init
"""
Jokebox Backend — Middleware Package
======================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error response
    carry the same correlation id.
"""
