"""Provider credential lookup used when a queued job runs."""

from typing import Protocol

from illustrate.core.config import Settings
from illustrate.services.registry.models import ModelDescriptor, Provider


class SecretProvider(Protocol):
    """Looks up the credential for a model's backend at execution time."""

    def secret_for(self, model: ModelDescriptor) -> str | None: ...


class SettingsSecretProvider:
    """Reads provider credentials from Settings (env / .env)."""

    def __init__(self, settings: Settings):
        self._secrets = {
            Provider.OPENAI: settings.openai_api_key,
            Provider.STABILITY_AI: settings.stability_api_key,
            Provider.REPLICATE: settings.replicate_api_token,
            Provider.FAL_AI: settings.fal_api_key,
            Provider.HUGGING_FACE: settings.hugging_face_token,
            Provider.GOOGLE: settings.google_api_key,
        }

    def secret_for(self, model: ModelDescriptor) -> str | None:
        return self._secrets.get(model.provider) or None
