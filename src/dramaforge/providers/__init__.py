"""Provider adapters translating canonical requests to vendor wire formats."""

from dramaforge.providers.base import GenerationProvider, HTTPProvider, SecureHeaders
from dramaforge.providers.cache import ProviderClientCache
from dramaforge.providers.endpoints import Endpoints, default_endpoints
from dramaforge.providers.factory import (
    create_image_provider,
    create_text_provider,
    create_video_provider,
)
from dramaforge.providers.models import (
    GenerationRequest,
    GenerationResult,
    ProviderType,
    TextRequest,
)
from dramaforge.providers.text import TextProvider

__all__ = [
    "Endpoints",
    "GenerationProvider",
    "GenerationRequest",
    "GenerationResult",
    "HTTPProvider",
    "ProviderClientCache",
    "ProviderType",
    "SecureHeaders",
    "TextProvider",
    "TextRequest",
    "create_image_provider",
    "create_text_provider",
    "create_video_provider",
    "default_endpoints",
]
