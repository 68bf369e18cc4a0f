"""Pydantic models for regguard.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field

from regguard.egress.models import EgressMode, SanitizationContext


class EgressConfig(BaseModel):
    """Egress client configuration."""

    mode: EgressMode = Field(
        default=EgressMode.ENFORCE,
        description="Base egress mode before tenant/user/per-call overrides",
    )
    allowed_providers: list[str] | None = Field(
        default=None,
        description="Provider allow-list; empty or unset allows every provider",
    )
    preserve_original_request: bool = Field(
        default=False,
        description="Keep a copy of the unsanitized request on the egress context",
    )


class SanitizationConfig(BaseModel):
    """Default sanitizer behaviour."""

    context: SanitizationContext = Field(
        default=SanitizationContext.CHAT,
        description="Default sanitization context for outbound LLM payloads",
    )
    sandbox_context: SanitizationContext = Field(
        default=SanitizationContext.CALCULATION,
        description="Sanitization context for sandbox output",
    )
    exclude_patterns: list[str] = Field(
        default_factory=list,
        description="Replacement labels to disable, e.g. '[PHONE]'",
    )
    use_ml_detection: bool | None = Field(
        default=None,
        description="Force the model-assisted detector on/off (None uses context default)",
    )
    ml_language: str = Field(default="en", description="Language passed to the ML detector")
    ml_score_threshold: float = Field(
        default=0.5, description="Minimum detector score for ML redaction", ge=0.0, le=1.0
    )


class ProviderConfig(BaseModel):
    """Single LLM provider endpoint."""

    enabled: bool = Field(default=True, description="Register this provider with the router")
    api_key_env: str | None = Field(
        default=None, description="Environment variable holding the API key"
    )
    base_url: str | None = Field(default=None, description="Override the provider endpoint")
    base_url_env: str | None = Field(
        default=None, description="Environment variable overriding base_url"
    )
    default_model: str | None = Field(default=None, description="Model used when none resolved")
    timeout: int = Field(default=120, description="Request timeout in seconds", ge=1)


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "openai": ProviderConfig(api_key_env="OPENAI_API_KEY", default_model="gpt-4o"),
        "groq": ProviderConfig(
            api_key_env="GROQ_API_KEY",
            base_url="https://api.groq.com/openai/v1",
            default_model="llama-3.3-70b-versatile",
        ),
        "anthropic": ProviderConfig(
            api_key_env="ANTHROPIC_API_KEY", default_model="claude-3-5-sonnet-20241022"
        ),
        "google": ProviderConfig(
            api_key_env="GOOGLE_GENERATIVE_AI_API_KEY",
            base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
            default_model="gemini-2.0-flash-exp",
        ),
        "local": ProviderConfig(
            base_url_env="LOCAL_LLM_BASE_URL",
            base_url="http://localhost:11434/v1",
            default_model="llama-3-8b",
        ),
    }


class RouterConfig(BaseModel):
    """LLM router defaults used when a tenant has no stored policy."""

    default_tenant_id: str = Field(default="default", description="Tenant used when none given")
    default_provider: str = Field(default="groq", description="Fallback provider")
    default_model: str = Field(default="llama-3.3-70b-versatile", description="Fallback model")


class PolicyStoreConfig(BaseModel):
    """Policy persistence and caching."""

    backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Backing store for tenant LLM policies"
    )
    sqlite_path: str = Field(
        default="~/.regguard/policies.db", description="SQLite database file"
    )
    redis_url: str | None = Field(
        default=None, description="Redis URL; enables the cache layer when set"
    )
    cache_ttl_seconds: int = Field(default=300, description="Policy cache TTL", ge=1)
    cache_key_prefix: str = Field(default="copilot:llm:policy", description="Redis key prefix")


class SandboxConfig(BaseModel):
    """E2B code sandbox."""

    api_key_env: str = Field(default="E2B_API_KEY", description="Env var holding the E2B key")
    timeout_ms: int = Field(default=1_800_000, description="Sandbox lifetime", ge=1000)
    template: str | None = Field(default=None, description="Custom sandbox template")
    enable_code_execution: bool = Field(
        default=True, description="Register run_code/run_analysis tools"
    )


class RegGuardConfig(BaseModel):
    """Root configuration model for regguard.yaml."""

    egress: EgressConfig = Field(default_factory=EgressConfig)
    sanitization: SanitizationConfig = Field(default_factory=SanitizationConfig)
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    router: RouterConfig = Field(default_factory=RouterConfig)
    policy_store: PolicyStoreConfig = Field(default_factory=PolicyStoreConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
