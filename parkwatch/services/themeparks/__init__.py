"""themeparks.wiki API: client below just sends the request; parkwatch.services.normalizer shapes the payload."""
from parkwatch.services.themeparks.client import ThemeParksClient
from parkwatch.services.themeparks.config import ThemeParksConfig

__all__ = [
    "ThemeParksClient",
    "ThemeParksConfig",
]
