"""Egress guard: PII/secret redaction and the gate in front of outbound calls.

Components:

- **Sanitizer** (:class:`EgressSanitizer`) - Context-aware regex and model-assisted redaction
- **Egress client** (:class:`EgressClient`) - Provider allow-list plus mode-dependent sanitization
- **Mode resolution** (:func:`resolve_effective_egress_mode`) - Tenant/user/per-call precedence
- **Audit** (:class:`EgressAuditLogger`) - Scan records and counters
"""

from .audit import EgressAuditLogger, EgressScanRecord
from .client import (
    EgressClient,
    compose_egress_aspects,
    provider_allowlist_aspect,
    sanitize_request_aspect,
)
from .detector import ModelAssistedDetector, PresidioDetector
from .mode_resolver import resolve_effective_egress_mode
from .models import (
    Detector,
    EgressGuardContext,
    EgressMode,
    EgressModeResolution,
    SanitizationContext,
    SanitizationOptions,
    SanitizationResult,
    ScanType,
)
from .patterns import SENSITIVE_PATTERNS, patterns_for_context
from .sanitizer import (
    EgressSanitizer,
    create_presets,
    create_sanitizer,
    sanitize_object_for_egress,
    sanitize_text_for_egress,
    sanitize_text_with_audit,
)

__all__ = [
    "SENSITIVE_PATTERNS",
    "Detector",
    "EgressAuditLogger",
    "EgressClient",
    "EgressGuardContext",
    "EgressMode",
    "EgressModeResolution",
    "EgressSanitizer",
    "EgressScanRecord",
    "ModelAssistedDetector",
    "PresidioDetector",
    "SanitizationContext",
    "SanitizationOptions",
    "SanitizationResult",
    "ScanType",
    "compose_egress_aspects",
    "create_presets",
    "create_sanitizer",
    "patterns_for_context",
    "provider_allowlist_aspect",
    "resolve_effective_egress_mode",
    "sanitize_object_for_egress",
    "sanitize_request_aspect",
    "sanitize_text_for_egress",
    "sanitize_text_with_audit",
]
