"""Content graph repository."""

from dramaforge.graph.library import CharacterLibrary
from dramaforge.graph.repository import (
    ContentGraphRepository,
    StoryboardContext,
    sync_replicas,
)

__all__ = ["CharacterLibrary", "ContentGraphRepository", "StoryboardContext", "sync_replicas"]
