"""
AI Provider Package

One adapter per backend behind the AIProvider contract:

    AIProvider.generate_json(prompt, schema) -> str

    openai      OpenAIProvider      (openai SDK, json_schema response format)
    openrouter  OpenRouterProvider  (openai SDK, OpenRouter base URL)
    google      GoogleProvider      (httpx, Gemini generateContent)
    anthropic   AnthropicProvider   (anthropic SDK)

Usage:
    from sylvia.intelligence.providers import get_provider

    provider = get_provider(config.ai.provider, config.ai.api_keys[0], config.ai)
    raw = await provider.generate_json(prompt, PROCESSING_RESULT_SCHEMA)
"""

from .base import AIProvider


PROVIDER_NAMES = ("openai", "openrouter", "google", "anthropic")


def get_provider(name: str, api_key: str, config) -> AIProvider:
    """
    Get a provider instance by name.

    Args:
        name: Provider name (openai, openrouter, google, anthropic)
        api_key: Credential for this instance
        config: AIConfig with model, timeout and retry settings

    Returns:
        AIProvider instance

    Raises:
        ValueError: If provider not found or no key given
    """
    if not api_key:
        raise ValueError(f"No API key configured for provider: {name}")

    if name == "openai":
        from .openai_provider import OpenAIProvider

        return OpenAIProvider(api_key, config)

    elif name == "openrouter":
        from .openai_provider import OpenRouterProvider

        return OpenRouterProvider(api_key, config)

    elif name == "google":
        from .google_provider import GoogleProvider

        return GoogleProvider(api_key, config)

    elif name == "anthropic":
        from .anthropic_provider import AnthropicProvider

        return AnthropicProvider(api_key, config)

    else:
        raise ValueError(
            f"Unknown provider: {name}. Available providers: {', '.join(PROVIDER_NAMES)}"
        )


__all__ = ["PROVIDER_NAMES", "AIProvider", "get_provider"]
