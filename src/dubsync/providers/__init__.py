"""Speech-synthesis providers selectable by name.

The dubbing core only sees TTSProvider; which backend renders the cues
(Google Cloud, ElevenLabs or the OS engine) is picked from config or the
--provider flag through ProviderRegistry.
"""

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .base import TTSProvider

from .elevenlabs import ElevenLabsProvider
from .google import GoogleTTSProvider
from .system import SystemTTSProvider

__all__ = ["ProviderRegistry"]


class ProviderRegistry:
    """Name -> provider class map, plus one shared instance per name."""

    _providers: ClassVar[dict[str, type["TTSProvider"]]] = {}
    _instances: ClassVar[dict[str, "TTSProvider"]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type["TTSProvider"]) -> None:
        """Register a TTS provider.

        Args:
            name: Name to register the provider under
            provider_class: Provider class that implements TTSProvider
        """
        cls._providers[name] = provider_class

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def get(cls, name: str) -> type["TTSProvider"]:
        """Get a provider class by name.

        Raises:
            KeyError: If provider name not found
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys()) if cls._providers else "none"
            raise KeyError(
                f"Provider '{name}' not found. Available providers: {available}"
            )
        return cls._providers[name]

    @classmethod
    def get_instance(cls, name: str) -> "TTSProvider":
        """Get a cached provider instance by name.

        Creates the instance on first call, returns cached instance after,
        so SDK clients and voice lists are reused across jobs.

        Raises:
            KeyError: If provider name not found
        """
        if name not in cls._instances:
            provider_class = cls.get(name)
            cls._instances[name] = provider_class()
        return cls._instances[name]


# Register providers
ProviderRegistry.register("google", GoogleTTSProvider)
ProviderRegistry.register("elevenlabs", ElevenLabsProvider)
ProviderRegistry.register("system", SystemTTSProvider)
