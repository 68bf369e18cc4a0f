"""Data models for the egress guard."""

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class SanitizationContext(StrEnum):
    """How aggressively outbound text is redacted."""

    OFF = "off"  # Passthrough
    CALCULATION = "calculation"  # High-confidence detectors only
    CHAT = "chat"  # High + medium confidence
    STRICT = "strict"  # Everything, including loose IBAN/IP detectors


class EgressMode(StrEnum):
    """What the egress client does with the sanitized payload."""

    OFF = "off"
    REPORT_ONLY = "report-only"
    ENFORCE = "enforce"


class ConfidenceTier(StrEnum):
    """Detector confidence; decides which contexts a detector fires in."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ScanType(StrEnum):
    """Where a scanned payload came from, for audit records."""

    LLM_REQUEST = "llm_request"
    LLM_RESPONSE = "llm_response"
    SANDBOX_OUTPUT = "sandbox_output"
    AGENT_OUTPUT = "agent_output"


TIER_CONTEXTS: dict[ConfidenceTier, frozenset[SanitizationContext]] = {
    ConfidenceTier.HIGH: frozenset(
        {SanitizationContext.CALCULATION, SanitizationContext.CHAT, SanitizationContext.STRICT}
    ),
    ConfidenceTier.MEDIUM: frozenset({SanitizationContext.CHAT, SanitizationContext.STRICT}),
    ConfidenceTier.LOW: frozenset({SanitizationContext.STRICT}),
}

ML_REDACTION_LABEL = "[ML_REDACTION]"


@dataclass(frozen=True)
class Detector:
    """A regex detector and the text that replaces its matches.

    ``replacement`` doubles as the detector's label: it is what shows up in
    ``SanitizationResult.redaction_types`` and what ``exclude_patterns``
    matches against.
    """

    name: str
    pattern: re.Pattern[str]
    replacement: str
    contexts: frozenset[SanitizationContext]
    tier: ConfidenceTier = ConfidenceTier.HIGH
    description: str = ""

    @classmethod
    def for_tier(
        cls,
        name: str,
        pattern: str,
        replacement: str,
        tier: ConfidenceTier,
        description: str = "",
        flags: int = 0,
    ) -> "Detector":
        """Build a detector whose contexts follow from its confidence tier."""
        return cls(
            name=name,
            pattern=re.compile(pattern, flags),
            replacement=replacement,
            contexts=TIER_CONTEXTS[tier],
            tier=tier,
            description=description,
        )

    def applies_to(self, context: SanitizationContext) -> bool:
        return context in self.contexts


@dataclass
class SanitizationOptions:
    """Per-call sanitizer options."""

    context: SanitizationContext = SanitizationContext.CHAT
    use_ml_detection: bool | None = None  # None = context default
    additional_patterns: list[Detector] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    scan_type: ScanType | None = None

    def uses_ml_detection(self) -> bool:
        """Whether the model-assisted layer should run for these options."""
        if self.use_ml_detection is not None:
            return self.use_ml_detection
        # ML detectors misfire on figures and reference codes
        return self.context in (SanitizationContext.CHAT, SanitizationContext.STRICT)


@dataclass
class SanitizationResult:
    """Sanitized text plus an audit trail of what was redacted."""

    text: str
    redacted: bool
    redaction_types: list[str]
    original_length: int
    sanitized_length: int

    @property
    def reduction(self) -> int:
        return self.original_length - self.sanitized_length


@dataclass
class EgressGuardContext:
    """Per-call state threaded through the egress aspect chain."""

    request: Any
    target: str = "llm"  # "llm", "sandbox", "mcp", "http"
    provider_id: str | None = None
    endpoint_id: str | None = None
    sanitized_request: Any = None
    original_request: Any = None
    tenant_id: str | None = None
    user_id: str | None = None
    task: str | None = None
    mode: EgressMode | None = None  # Requested mode
    effective_mode: EgressMode | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def stage(self) -> str:
        if self.sanitized_request is not None or self.effective_mode == EgressMode.OFF:
            return "post-sanitization"
        return "pre-sanitization"


@dataclass(frozen=True)
class EgressModeResolution:
    """Outcome of egress mode resolution."""

    requested_mode: EgressMode
    effective_mode: EgressMode
