"""Recognizer backend registry with configuration-driven selection.

Maps provider name strings to RecognizerFactory classes. Backend modules
are imported lazily so an unused SDK is never loaded.
"""

from importlib import import_module

from bpa_speech.config import SpeechSettings
from bpa_speech.streaming.interface import RecognizerFactory
from bpa_speech.utils.errors import ConfigurationError

RECOGNIZER_BACKENDS: dict[str, str] = {
    "azure": "bpa_speech.streaming.azure_speech:AzureRecognizerFactory",
}


def get_recognizer_factory(provider: str, **kwargs: object) -> RecognizerFactory:
    """Create a recognizer factory by provider name.

    Args:
        provider: Provider name (e.g., "azure").
        **kwargs: Backend-specific configuration passed to the constructor.

    Returns:
        An initialized RecognizerFactory.

    Raises:
        ConfigurationError: If the provider name is not registered.
    """
    target = RECOGNIZER_BACKENDS.get(provider)
    if not target:
        available = ", ".join(sorted(RECOGNIZER_BACKENDS.keys()))
        raise ConfigurationError(
            f"Unknown recognizer provider: '{provider}'. Available: {available}"
        )
    module_name, _, class_name = target.partition(":")
    factory_cls = getattr(import_module(module_name), class_name)
    return factory_cls(**kwargs)


def factory_from_settings(settings: SpeechSettings, provider: str = "azure") -> RecognizerFactory:
    """Create a recognizer factory from the shared speech settings."""
    return get_recognizer_factory(
        provider,
        subscription_key=settings.subscription_key,
        region=settings.region,
        profanity=settings.profanity,
    )
