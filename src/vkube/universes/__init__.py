"""Universe handles and the providers that create them."""

from vkube.universes.universe import Universe
from vkube.universes.provider import UniverseProvider, open_or_create_universe, load_provider
from vkube.universes.local import LocalProvider, LocalUniverse

__all__ = [
    "Universe",
    "UniverseProvider",
    "open_or_create_universe",
    "load_provider",
    "LocalProvider",
    "LocalUniverse",
]
