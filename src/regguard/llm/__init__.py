"""Tenant-aware LLM routing and provider clients."""

from .anthropic import AnthropicProvider
from .client import (
    LlmCompletionOptions,
    LlmProviderClient,
    LlmStreamChunk,
    Message,
    ProviderChatOptions,
    ToolCall,
)
from .factory import create_default_llm_router, create_llm_router, create_provider_registry
from .openai_compat import OpenAICompatibleProvider
from .policy import LlmTaskPolicy, TenantLlmPolicy, UserEgressPolicy
from .policy_stores import (
    CachingPolicyStore,
    InMemoryPolicyStore,
    LlmPolicyStore,
    SqlitePolicyStore,
    create_policy_store,
)
from .providers import GeminiProvider, GroqProvider, LocalProvider, OpenAIProvider
from .router import LlmRouter

__all__ = [
    "AnthropicProvider",
    "CachingPolicyStore",
    "GeminiProvider",
    "GroqProvider",
    "InMemoryPolicyStore",
    "LlmCompletionOptions",
    "LlmPolicyStore",
    "LlmProviderClient",
    "LlmRouter",
    "LlmStreamChunk",
    "LlmTaskPolicy",
    "LocalProvider",
    "Message",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "ProviderChatOptions",
    "SqlitePolicyStore",
    "TenantLlmPolicy",
    "ToolCall",
    "UserEgressPolicy",
    "create_default_llm_router",
    "create_llm_router",
    "create_policy_store",
    "create_provider_registry",
]
