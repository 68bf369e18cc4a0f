"""Hosted and local providers that speak the OpenAI chat completions API."""

from regguard.llm.openai_compat import OpenAICompatibleProvider

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
LOCAL_BASE_URL = "http://localhost:11434/v1"


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI hosted models."""

    provider_id = "openai"

    def __init__(self, api_key: str, base_url: str | None = None, timeout: int = 120) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)


class GroqProvider(OpenAICompatibleProvider):
    """Groq fast inference (OpenAI-compatible endpoint)."""

    provider_id = "groq"

    def __init__(self, api_key: str, base_url: str = GROQ_BASE_URL, timeout: int = 120) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)


class GeminiProvider(OpenAICompatibleProvider):
    """Google Gemini through its OpenAI compatibility layer."""

    provider_id = "google"

    def __init__(self, api_key: str, base_url: str = GEMINI_BASE_URL, timeout: int = 120) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)


class LocalProvider(OpenAICompatibleProvider):
    """Self-hosted model server (vLLM, Ollama, llama.cpp).

    This is the only provider tenants without remote egress may use, so
    traffic never leaves the deployment.
    """

    provider_id = "local"

    def __init__(
        self,
        base_url: str = LOCAL_BASE_URL,
        api_key: str | None = None,
        timeout: int = 120,
    ) -> None:
        """Initialize the local provider.

        Args:
            base_url: OpenAI-compatible endpoint (must include ``/v1``)
            api_key: API key if the server has auth enabled
            timeout: Request timeout in seconds
        """
        super().__init__(api_key=api_key or "none", base_url=base_url, timeout=timeout)
