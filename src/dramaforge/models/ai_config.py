"""AI service configuration records."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dramaforge.storage.ids import utc_now


class ServiceType(str, Enum):
    """Capability a configuration serves."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class AIServiceConfig(BaseModel):
    """Connection details for one provider account and capability."""

    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    service_type: ServiceType
    provider: str
    base_url: str
    api_key: str = ""
    model: str | list[str] = ""
    endpoint: str = ""
    query_endpoint: str = ""
    priority: int = 0
    is_active: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def models(self) -> list[str]:
        """Configured model names as a list."""
        if isinstance(self.model, list):
            return [m for m in self.model if m]
        return [self.model] if self.model else []

    @property
    def primary_model(self) -> str | None:
        models = self.models
        return models[0] if models else None

    def supports_model(self, model: str) -> bool:
        return model in self.models

    def fingerprint(self) -> str:
        """Digest of every field that affects how a client is built."""
        payload = json.dumps(
            {
                "provider": self.provider,
                "base_url": self.base_url,
                "api_key": self.api_key,
                "model": self.models,
                "endpoint": self.endpoint,
                "query_endpoint": self.query_endpoint,
                "settings": self.settings,
            },
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class AIConfigCreate(BaseModel):
    """Input for creating a service configuration."""

    name: str
    service_type: ServiceType
    provider: str
    base_url: str
    api_key: str = ""
    model: str | list[str] = ""
    endpoint: str = ""
    query_endpoint: str = ""
    priority: int = 0
    is_active: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)
