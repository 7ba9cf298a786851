from .all_debrid import AllDebridProvider
from .debrid_link import DebridLinkProvider
from .premiumize import PremiumizeProvider
from .real_debrid import RealDebridProvider
from .registry import ProviderRegistry, default_registry
from .torbox import TorBoxProvider

__all__ = [
    "AllDebridProvider",
    "DebridLinkProvider",
    "PremiumizeProvider",
    "ProviderRegistry",
    "RealDebridProvider",
    "TorBoxProvider",
    "default_registry",
]
