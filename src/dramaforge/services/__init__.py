"""Backend selection: the in-process engine or a remote API."""

from __future__ import annotations

from dramaforge.config import DramaForgeSettings, get_logger
from dramaforge.main import DramaForge
from dramaforge.services.local import LocalBackend
from dramaforge.services.protocols import DramaBackend
from dramaforge.services.remote import RemoteBackend, unwrap

logger = get_logger(__name__)


def create_backend(settings: DramaForgeSettings) -> DramaBackend:
    """Build the backend named by ``settings.mode``.

    The choice is made once here; callers only see :class:`DramaBackend`.
    """
    if settings.mode == "remote":
        logger.info("Using remote backend", base_url=settings.remote_base_url)
        return RemoteBackend(settings.remote_base_url, timeout=settings.remote_timeout)
    logger.debug("Using local backend", store_path=str(settings.store_path))
    return LocalBackend(DramaForge(settings))


__all__ = [
    "DramaBackend",
    "LocalBackend",
    "RemoteBackend",
    "create_backend",
    "unwrap",
]
