from dietcoach.core.config import get_settings
from .base import LLMProvider, ProviderResponse
from .openai_provider import OpenAIProvider

class ProviderFactory:
    _providers = {
        "openai": OpenAIProvider,
    }
    _instances = {}

    @classmethod
    def get_provider(cls, name: str = "openai") -> LLMProvider:
        if name not in cls._instances:
            provider_class = cls._providers.get(name)
            if not provider_class:
                raise ValueError(f"Provider {name} not found")
            cls._instances[name] = provider_class()
        return cls._instances[name]


def language_model(model_id: str) -> str:
    """Map the model ids the client sends to deployed model names."""
    settings = get_settings()
    models = {
        "chat-model": settings.CHAT_MODEL,
        "chat-model-reasoning": settings.REASONING_MODEL,
    }
    if model_id not in models:
        raise ValueError(f"Unknown chat model {model_id}")
    return models[model_id]
