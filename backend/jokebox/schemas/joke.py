"""
Jokebox Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract.
Why:   Automatic serialization and OpenAPI doc generation.
How:   FastAPI uses these models to read request bodies, serialize responses,
       and generate Swagger/OpenAPI documentation automatically.

Design Decision:
    Input fields are all Optional on purpose. "Missing" and "blank" are the
    same failure for a joke, and it is reported by JokeService as a single
    400 naming every missing field, instead of FastAPI's per-field 422.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What clients send
# ══════════════════════════════════════════════════════════════════════════


class JokeFields(BaseModel):
    """
    What:  Text fields of a joke as sent by a client.
    Who:   Body of POST /jokes, POST /advanced-joke and PUT /jokes/{id}.

    `author` is also accepted under the key `name`, which is what the list
    filter (?name=) calls it.
    """
    setup: Optional[str] = Field(default=None, description="Joke setup line")
    punchline: Optional[str] = Field(default=None, description="Joke punchline")
    author: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("author", "name"),
        description="Who submitted the joke (alias: name)",
    )

    def present(self) -> Dict[str, str]:
        """Fields that carry a non-blank value."""
        values = {
            "setup": self.setup,
            "punchline": self.punchline,
            "author": self.author,
        }
        return {
            key: value
            for key, value in values.items()
            if value is not None and value.strip()
        }


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class JokeResponse(BaseModel):
    """
    What:  Full representation of a stored joke.
    Who:   Returned by every joke endpoint and pushed to /events subscribers.
    """
    id: int = Field(description="Store-assigned joke identifier")
    setup: str = Field(description="Joke setup line")
    punchline: str = Field(description="Joke punchline")
    author: Optional[str] = Field(default=None, description="Who submitted the joke")
    created_at: datetime = Field(description="When the joke was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When the joke was last modified (UTC ISO 8601)")

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """SQLite hands back naive datetimes; every stored timestamp is UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class ApiIndexResponse(BaseModel):
    """Body of GET /: a greeting and the list of available endpoints."""
    message: str
    endpoints: Dict[str, str]


# ══════════════════════════════════════════════════════════════════════════
# Error Response Models — Consistent error format across all endpoints
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Missing required fields: punchline",
            "details": {"missing_fields": ["punchline"]},
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    subscribers: int = Field(description="Currently open /events connections")
    dropped_subscribers: int = Field(
        description="Connections closed because a delivery to them failed"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
