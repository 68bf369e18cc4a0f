"""Pytest configuration and shared fixtures."""

import pytest

from regguard.config.schema import RegGuardConfig
from regguard.egress.audit import EgressAuditLogger
from regguard.egress.sanitizer import EgressSanitizer
from regguard.llm.policy import LlmTaskPolicy, TenantLlmPolicy


@pytest.fixture
def default_config() -> RegGuardConfig:
    """Provide a default configuration for tests."""
    return RegGuardConfig()


@pytest.fixture
def sanitizer() -> EgressSanitizer:
    """Regex-only sanitizer with chat defaults."""
    return EgressSanitizer()


@pytest.fixture
def audit_logger() -> EgressAuditLogger:
    return EgressAuditLogger()


@pytest.fixture
def tenant_policy() -> TenantLlmPolicy:
    """Tenant policy with a main-chat task pinned to OpenAI."""
    return TenantLlmPolicy(
        tenant_id="acme",
        default_provider="groq",
        default_model="llama-3.3-70b-versatile",
        tasks=[
            LlmTaskPolicy(
                task="main-chat",
                provider="openai",
                model="gpt-4o",
                temperature=0.1,
                max_tokens=1024,
            )
        ],
    )
