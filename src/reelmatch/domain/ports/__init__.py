from .cache import CachePort
from .metadata import AlternateTitlesPort, AnimeSeasonsPort, EpisodeMappingPort
from .provider import ProviderPort

__all__ = [
    "AlternateTitlesPort",
    "AnimeSeasonsPort",
    "CachePort",
    "EpisodeMappingPort",
    "ProviderPort",
]
