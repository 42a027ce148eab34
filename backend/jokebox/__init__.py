"""
Jokebox Backend — Application Package Initializer
==================================================

What: Marks the `jokebox` directory as a Python package.
Why:  Enables module imports like `from jokebox.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is split into the same layers as every request flows through:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Store + Broadcasting)   │  ← JokeService, BroadcastRegistry
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes stay thin: they parse input, call a service, and pick a status code.
    The broadcast registry lives for the whole process; everything else is
    created per request.
"""

__version__ = "1.0.0"
