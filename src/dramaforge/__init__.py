"""DramaForge: AI-assisted short drama production.

DramaForge keeps a drama's content graph (episodes, storyboards, scenes and
characters) in a JSON document store and drives text, image and video
generation jobs against pluggable provider APIs.
"""

from dramaforge.config import DramaForgeSettings, get_logger, get_settings
from dramaforge.main import DramaForge

__version__ = "0.1.0"

__all__ = [
    "DramaForge",
    "DramaForgeSettings",
    "__version__",
    "get_logger",
    "get_settings",
]
