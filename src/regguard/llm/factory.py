"""Factories that assemble providers, policy stores and the router from config."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from regguard.egress.audit import EgressAuditLogger
from regguard.egress.client import EgressClient
from regguard.egress.detector import PresidioDetector
from regguard.egress.sanitizer import EgressSanitizer, create_sanitizer
from regguard.llm.anthropic import AnthropicProvider
from regguard.llm.policy import LlmTaskPolicy, TenantLlmPolicy
from regguard.llm.policy_stores import LlmPolicyStore, create_policy_store
from regguard.llm.providers import GeminiProvider, GroqProvider, LocalProvider, OpenAIProvider
from regguard.llm.router import DEFAULT_TENANT_ID, LOCAL_PROVIDER, LlmRouter

if TYPE_CHECKING:
    from regguard.config.schema import ProviderConfig, RegGuardConfig
    from regguard.llm.client import LlmProviderClient

logger = logging.getLogger(__name__)

# Order of preference when picking a default provider
PROVIDER_PREFERENCE = ("groq", "google", "anthropic", "openai", "local")

GROQ_FAST_MODEL = "llama-3.1-8b-instant"


def _build_openai(cfg: ProviderConfig, api_key: str, base_url: str | None) -> LlmProviderClient:
    return OpenAIProvider(api_key=api_key, base_url=base_url, timeout=cfg.timeout)


def _build_groq(cfg: ProviderConfig, api_key: str, base_url: str | None) -> LlmProviderClient:
    if base_url:
        return GroqProvider(api_key=api_key, base_url=base_url, timeout=cfg.timeout)
    return GroqProvider(api_key=api_key, timeout=cfg.timeout)


def _build_google(cfg: ProviderConfig, api_key: str, base_url: str | None) -> LlmProviderClient:
    if base_url:
        return GeminiProvider(api_key=api_key, base_url=base_url, timeout=cfg.timeout)
    return GeminiProvider(api_key=api_key, timeout=cfg.timeout)


def _build_anthropic(cfg: ProviderConfig, api_key: str, base_url: str | None) -> LlmProviderClient:
    if base_url:
        return AnthropicProvider(api_key=api_key, base_url=base_url, timeout=cfg.timeout)
    return AnthropicProvider(api_key=api_key, timeout=cfg.timeout)


def _build_local(cfg: ProviderConfig, api_key: str, base_url: str | None) -> LlmProviderClient:
    if base_url:
        return LocalProvider(base_url=base_url, api_key=api_key or None, timeout=cfg.timeout)
    return LocalProvider(api_key=api_key or None, timeout=cfg.timeout)


PROVIDER_BUILDERS: dict[str, Callable[[ProviderConfig, str, str | None], LlmProviderClient]] = {
    "openai": _build_openai,
    "groq": _build_groq,
    "google": _build_google,
    "anthropic": _build_anthropic,
    "local": _build_local,
}


def create_provider_registry(
    config: RegGuardConfig,
    env: Mapping[str, str] | None = None,
) -> dict[str, LlmProviderClient]:
    """Create provider clients for every configured provider with credentials.

    Hosted providers are registered when their API key variable is set. The
    local provider is registered when its base URL variable is set.

    Args:
        config: regguard configuration
        env: Environment to read credentials from (defaults to os.environ)

    Returns:
        Provider registry keyed by provider id

    Raises:
        ValueError: If a provider name has no builder
    """
    env = os.environ if env is None else env
    registry: dict[str, LlmProviderClient] = {}

    for name, cfg in config.providers.items():
        if not cfg.enabled:
            continue

        builder = PROVIDER_BUILDERS.get(name)
        if builder is None:
            raise ValueError(f"Unknown LLM provider: {name}")

        api_key = env.get(cfg.api_key_env, "") if cfg.api_key_env else ""
        base_url = env.get(cfg.base_url_env) if cfg.base_url_env else None

        if name == LOCAL_PROVIDER:
            if not base_url:
                continue
        elif not api_key:
            logger.debug("Provider %s skipped: %s not set", name, cfg.api_key_env)
            continue

        registry[name] = builder(cfg, api_key, base_url or cfg.base_url)

    return registry


def pick_default_provider(
    registry: Mapping[str, LlmProviderClient],
    config: RegGuardConfig,
) -> tuple[str, str]:
    """Pick the preferred available provider and its default model."""
    for name in PROVIDER_PREFERENCE:
        if name in registry:
            model = config.providers[name].default_model if name in config.providers else None
            return name, model or config.router.default_model
    return config.router.default_provider, config.router.default_model


def build_default_policy(
    default_provider: str,
    default_model: str,
    has_local: bool,
    tenant_id: str = DEFAULT_TENANT_ID,
    local_model: str = "llama-3-8b",
) -> TenantLlmPolicy:
    """Default tenant policy with the standard task set."""
    return TenantLlmPolicy(
        tenant_id=tenant_id,
        default_provider=default_provider,
        default_model=default_model,
        allow_remote_egress=True,
        tasks=[
            LlmTaskPolicy(
                task="main-chat",
                provider=default_provider,
                model=default_model,
                temperature=0.3,
                max_tokens=2048,
            ),
            # Egress guard checks can use a smaller, faster model
            LlmTaskPolicy(
                task="egress-guard",
                provider=default_provider,
                model=GROQ_FAST_MODEL if default_provider == "groq" else default_model,
                temperature=0.1,
                max_tokens=512,
            ),
            LlmTaskPolicy(
                task="pii-sanitizer",
                provider=LOCAL_PROVIDER if has_local else default_provider,
                model=local_model if has_local else default_model,
                temperature=0.0,
                max_tokens=256,
            ),
        ],
    )


def create_sanitizer_from_config(
    config: RegGuardConfig,
    audit_logger: EgressAuditLogger | None = None,
) -> EgressSanitizer:
    """Create the sanitizer described by ``config.sanitization``.

    The Presidio detector is only attached when ``use_ml_detection`` is
    explicitly enabled, since it needs the ``ml`` extra installed.
    """
    san_cfg = config.sanitization
    detector = None
    if san_cfg.use_ml_detection:
        detector = PresidioDetector(
            language=san_cfg.ml_language,
            score_threshold=san_cfg.ml_score_threshold,
        )
    return create_sanitizer(
        detector,
        audit_logger,
        context=san_cfg.context,
        use_ml_detection=san_cfg.use_ml_detection,
        exclude_patterns=list(san_cfg.exclude_patterns),
    )


def create_egress_client(
    config: RegGuardConfig,
    sanitizer: EgressSanitizer | None = None,
) -> EgressClient:
    """Create the egress client described by ``config.egress``."""
    return EgressClient(
        allowed_providers=config.egress.allowed_providers,
        mode=config.egress.mode,
        preserve_original_request=config.egress.preserve_original_request,
        sanitizer=sanitizer or create_sanitizer_from_config(config),
        sanitization_context=config.sanitization.context,
    )


def create_policy_store_from_config(config: RegGuardConfig) -> LlmPolicyStore:
    store_cfg = config.policy_store
    return create_policy_store(
        backend=store_cfg.backend,
        sqlite_path=store_cfg.sqlite_path,
        redis_url=store_cfg.redis_url,
        cache_ttl_seconds=store_cfg.cache_ttl_seconds,
        cache_key_prefix=store_cfg.cache_key_prefix,
    )


def create_llm_router(
    config: RegGuardConfig,
    policy_store: LlmPolicyStore | None = None,
    egress_client: EgressClient | None = None,
    env: Mapping[str, str] | None = None,
) -> LlmRouter:
    """Create a router from configuration without seeding any policy.

    Args:
        config: regguard configuration
        policy_store: Tenant policy store (built from config when None)
        egress_client: Egress gate (built from config when None)
        env: Environment to read credentials from

    Returns:
        Configured LlmRouter
    """
    return LlmRouter(
        providers=create_provider_registry(config, env),
        policy_store=policy_store or create_policy_store_from_config(config),
        default_provider=config.router.default_provider,
        default_model=config.router.default_model,
        egress_client=egress_client or create_egress_client(config),
    )


async def create_default_llm_router(
    policy_store: LlmPolicyStore,
    config: RegGuardConfig | None = None,
    egress_client: EgressClient | None = None,
    env: Mapping[str, str] | None = None,
) -> LlmRouter:
    """Create a router from environment credentials and seed the default policy.

    Args:
        policy_store: Store receiving the default tenant policy
        config: regguard configuration (defaults when None)
        egress_client: Egress gate (built from config when None)
        env: Environment to read credentials from

    Returns:
        Configured LlmRouter

    Raises:
        ValueError: If no provider has credentials
    """
    if config is None:
        from regguard.config.schema import RegGuardConfig

        config = RegGuardConfig()

    registry = create_provider_registry(config, env)
    if not registry:
        raise ValueError(
            "No LLM provider configured. Set GROQ_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY, "
            "GOOGLE_GENERATIVE_AI_API_KEY, or LOCAL_LLM_BASE_URL"
        )

    default_provider, default_model = pick_default_provider(registry, config)
    local_cfg = config.providers.get(LOCAL_PROVIDER)
    policy = build_default_policy(
        default_provider,
        default_model,
        has_local=LOCAL_PROVIDER in registry,
        tenant_id=config.router.default_tenant_id,
        local_model=(local_cfg.default_model if local_cfg else None) or "llama-3-8b",
    )
    await policy_store.set_policy(policy)

    return LlmRouter(
        providers=registry,
        policy_store=policy_store,
        default_provider=default_provider,
        default_model=default_model,
        egress_client=egress_client or create_egress_client(config),
    )
