# Routes package init
"""
Jokebox Backend — API Routes Package
======================================

Route Inventory:
    - jokes.py:    GET/POST /jokes, GET/PUT/DELETE /jokes/{id}, GET /jokes/random/one
    - advanced.py: POST /advanced-joke       (shared-secret gated create)
    - events.py:   GET  /events              (SSE stream of new jokes)
    - health.py:   GET  /  and  GET /health  (API index, service health)

Design Principle:
    Routes should be THIN — they handle HTTP concerns only. Storage rules live
    in JokeService, fan-out in BroadcastRegistry.
"""
