"""Validated settings for the graph store and its tooling."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class EventSettings(BaseModel):
    """Event delivery defaults."""

    default_sync: bool = False


class RelationshipSettings(BaseModel):
    """Relationship binding policy."""

    strict_upgrade: bool = True


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    journal_path: str | None = None


class StatestoreSettings(BaseModel):
    """Top-level settings, usually built from ``config/*.yaml``."""

    events: EventSettings = Field(default_factory=EventSettings)
    relationships: RelationshipSettings = Field(default_factory=RelationshipSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> StatestoreSettings:
        return cls.model_validate(data)
