# Services package init
"""
Jokebox Backend — Services Layer
==================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Separation of concerns — routes handle HTTP, services handle the rules.

Service Inventory:
    - JokeService: Record store for jokes (CRUD, count, random pick)
    - BroadcastRegistry: Live fan-out of new jokes to /events subscribers
"""
