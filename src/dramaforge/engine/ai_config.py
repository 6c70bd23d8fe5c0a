"""Service configuration records and active-configuration selection."""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.exceptions import ConfigurationMissingError, NotFoundError
from dramaforge.models.ai_config import AIConfigCreate, AIServiceConfig, ServiceType
from dramaforge.providers.cache import ProviderClientCache
from dramaforge.providers.endpoints import default_endpoints
from dramaforge.storage import (
    KeyValueStore,
    StorageCollection,
    StorageKeys,
    generate_numeric_id,
)

logger = get_logger(__name__)


class AIConfigService:
    """CRUD over AI service configurations.

    Updates and deletes invalidate cached adapters for that configuration.
    """

    def __init__(self, store: KeyValueStore, cache: ProviderClientCache | None = None) -> None:
        self.store = store
        self.configs = StorageCollection(store, StorageKeys.AI_CONFIGS, AIServiceConfig)
        self.cache = cache or ProviderClientCache()

    def list_configs(self, service_type: ServiceType | str | None = None) -> list[AIServiceConfig]:
        items = self.configs.get_all()
        if service_type:
            wanted = ServiceType(service_type)
            items = [c for c in items if c.service_type == wanted]
        return items

    def get_config(self, config_id: int) -> AIServiceConfig:
        config = self.configs.get_by_id(config_id)
        if config is None:
            raise NotFoundError("AI config", config_id)
        return config

    def create_config(self, data: AIConfigCreate | dict[str, Any]) -> AIServiceConfig:
        """Store a configuration, filling provider default endpoints.

        The query endpoint default is only applied when the submission
        endpoint was left empty and no query endpoint was given.
        """
        request = data if isinstance(data, AIConfigCreate) else AIConfigCreate(**data)
        endpoint = request.endpoint
        query_endpoint = request.query_endpoint
        if not endpoint:
            defaults = default_endpoints(request.provider, request.service_type)
            endpoint = defaults.endpoint
            query_endpoint = query_endpoint or defaults.query_endpoint

        config = AIServiceConfig(
            **request.model_dump(exclude={"endpoint", "query_endpoint"}),
            id=generate_numeric_id(self.store, "ai_config"),
            endpoint=endpoint,
            query_endpoint=query_endpoint,
        )
        self.configs.add(config)
        logger.info(
            "Created AI config",
            config_id=config.id,
            provider=config.provider,
            service_type=config.service_type.value,
        )
        return config

    def update_config(self, config_id: int, fields: dict[str, Any]) -> AIServiceConfig:
        fields = {k: v for k, v in fields.items() if k not in {"id", "created_at"}}
        updated = self.configs.update(config_id, fields)
        if updated is None:
            raise NotFoundError("AI config", config_id)
        self.cache.invalidate(config_id)
        return updated

    def delete_config(self, config_id: int) -> bool:
        deleted = self.configs.delete(config_id)
        self.cache.invalidate(config_id)
        return deleted

    def select(
        self, service_type: ServiceType | str, model: str | None = None
    ) -> AIServiceConfig:
        """Pick the active configuration for a capability.

        Highest priority wins; when ``model`` is given, the highest-priority
        configuration listing that model is preferred.

        Raises:
            ConfigurationMissingError: No active configuration exists.
        """
        wanted = ServiceType(service_type)
        candidates = sorted(
            (c for c in self.configs.get_all() if c.service_type == wanted and c.is_active),
            key=lambda c: c.priority,
            reverse=True,
        )
        if not candidates:
            raise ConfigurationMissingError(wanted.value, model)
        if model:
            for config in candidates:
                if config.supports_model(model):
                    return config
        return candidates[0]
