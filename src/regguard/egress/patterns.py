"""Regex detectors for PII and secrets, and the context policy over them.

Detectors are applied in list order. Order matters: the email detector runs
before the assignment detectors so ``password=hunter2@corp.com`` style values
are caught by the most specific rule first.

Tiers:

- HIGH fires in ``calculation``, ``chat`` and ``strict``. These shapes are
  distinctive enough that they do not collide with figures or codes.
- MEDIUM fires in ``chat`` and ``strict``. Phones, IPs, IBANs and PPSNs look a
  lot like version numbers, reference codes and money amounts, so they are
  skipped for calculation output.
- LOW fires in ``strict`` only.
"""

import re

from .models import ConfidenceTier, Detector, SanitizationContext, SanitizationOptions

_HIGH = ConfidenceTier.HIGH
_MEDIUM = ConfidenceTier.MEDIUM
_LOW = ConfidenceTier.LOW

_IP_OCTET = r"(?:25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9]?[0-9])"

SENSITIVE_PATTERNS: tuple[Detector, ...] = (
    # High confidence
    Detector.for_tier(
        "email",
        r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
        "[EMAIL]",
        _HIGH,
        "Email addresses",
    ),
    Detector.for_tier("ssn", r"\b\d{3}-\d{2}-\d{4}\b", "[SSN]", _HIGH, "US SSNs"),
    Detector.for_tier(
        "credit_card",
        r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b",
        "[CREDIT_CARD]",
        _HIGH,
        "16-digit card numbers",
    ),
    Detector.for_tier(
        "stripe_live_key", r"\bsk_live_[a-zA-Z0-9]{20,}\b", "[API_KEY]", _HIGH, "Live secret keys"
    ),
    Detector.for_tier(
        "stripe_test_key", r"\bsk_test_[a-zA-Z0-9]{20,}\b", "[API_KEY]", _HIGH, "Test secret keys"
    ),
    Detector.for_tier(
        "jwt",
        r"\beyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*\b",
        "[JWT]",
        _HIGH,
        "JSON Web Tokens",
    ),
    Detector.for_tier(
        "aws_access_key", r"\bAKIA[A-Z0-9]{16}\b", "[AWS_ACCESS_KEY]", _HIGH, "AWS access key IDs"
    ),
    Detector.for_tier(
        "database_url",
        r"\b(?:postgres|mysql|mongodb|redis)://[^:]+:[^@]+@[^\s\"']+",
        "[DATABASE_URL]",
        _HIGH,
        "Connection strings with embedded credentials",
        flags=re.IGNORECASE,
    ),
    # Medium confidence
    Detector.for_tier(
        "us_phone",
        r"\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b",
        "[PHONE]",
        _MEDIUM,
        "US phone numbers",
    ),
    Detector.for_tier(
        "irish_phone",
        r"\b(?:\+353|0)[\s-]?\d{2,3}[\s-]?\d{3,4}[\s-]?\d{3,4}\b",
        "[PHONE]",
        _MEDIUM,
        "Irish phone numbers",
    ),
    Detector.for_tier("ppsn", r"\b\d{7}[A-Z]{1,2}\b", "[PPSN]", _MEDIUM, "Irish PPS numbers"),
    Detector.for_tier(
        "iban", r"\b[A-Z]{2}\d{2}[A-Z]{4}\d{7,25}\b", "[IBAN]", _MEDIUM, "Strict-form IBANs"
    ),
    Detector.for_tier(
        "ip_address",
        rf"\b(?:{_IP_OCTET}\.){{3}}{_IP_OCTET}\b",
        "[IP_ADDRESS]",
        _MEDIUM,
        "IPv4 addresses with valid octets",
    ),
    Detector.for_tier(
        "api_key_assignment",
        r"\bapi[_-]?key\s*[:=]\s*['\"]?[a-zA-Z0-9_-]{20,}['\"]?",
        "api_key: [REDACTED]",
        _MEDIUM,
        "api_key=... assignments",
        flags=re.IGNORECASE,
    ),
    Detector.for_tier(
        "password_assignment",
        r"\bpassword\s*[:=]\s*['\"]?[^\s,}\"']{8,}['\"]?",
        "password: [REDACTED]",
        _MEDIUM,
        "password=... assignments",
        flags=re.IGNORECASE,
    ),
    Detector.for_tier(
        "secret_assignment",
        r"\b(?:SECRET|PRIVATE)[_-]?(?:KEY|TOKEN)\s*[:=]\s*['\"]?[a-zA-Z0-9_-]{8,}['\"]?",
        "[SECRET_REDACTED]",
        _MEDIUM,
        "SECRET_KEY / PRIVATE_TOKEN assignments",
        flags=re.IGNORECASE,
    ),
    Detector.for_tier(
        "aws_secret_assignment",
        r"\baws[_-]?secret[_-]?access[_-]?key\s*[:=]\s*['\"]?[^\s,}\"']+['\"]?",
        "aws_secret: [REDACTED]",
        _MEDIUM,
        "aws_secret_access_key assignments",
        flags=re.IGNORECASE,
    ),
    # Strict only
    Detector.for_tier(
        "iban_loose", r"\b[A-Z]{2}\d{2}[A-Z0-9]{4,30}\b", "[IBAN_STRICT]", _LOW, "IBAN-like codes"
    ),
    Detector.for_tier(
        "ip_loose", r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b", "[IP_STRICT]", _LOW, "Dotted quads"
    ),
)


def patterns_for_context(
    context: SanitizationContext,
    options: SanitizationOptions | None = None,
) -> list[Detector]:
    """Select the detectors that apply to a sanitization context.

    Args:
        context: Sanitization context
        options: Optional extra and excluded detectors

    Returns:
        Ordered list of detectors; empty for ``off``
    """
    if context == SanitizationContext.OFF:
        return []

    detectors = [d for d in SENSITIVE_PATTERNS if d.applies_to(context)]

    if options is not None:
        detectors.extend(d for d in options.additional_patterns if d.applies_to(context))
        if options.exclude_patterns:
            excluded = set(options.exclude_patterns)
            detectors = [d for d in detectors if d.replacement not in excluded]

    return detectors
