"""Video generation adapters."""

from dramaforge.providers.video.chatfire import ChatfireVideoProvider
from dramaforge.providers.video.minimax import MinimaxVideoProvider
from dramaforge.providers.video.openai_sora import OpenAISoraProvider, sora_size
from dramaforge.providers.video.pika import PikaVideoProvider
from dramaforge.providers.video.runway import RunwayVideoProvider
from dramaforge.providers.video.volces import VolcesArkVideoProvider

__all__ = [
    "ChatfireVideoProvider",
    "MinimaxVideoProvider",
    "OpenAISoraProvider",
    "PikaVideoProvider",
    "RunwayVideoProvider",
    "VolcesArkVideoProvider",
    "sora_size",
]
