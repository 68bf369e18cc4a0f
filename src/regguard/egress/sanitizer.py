"""Egress sanitizer: redacts PII and secrets from outbound text and payloads.

Combines the optional model-assisted detector with the ordered regex
detectors from :mod:`regguard.egress.patterns`. Strings are sanitized
directly; dicts, lists, tuples and dataclass instances are rebuilt with every
string leaf sanitized and every other value passed through untouched.
"""

import dataclasses
import logging
from typing import Any, TypeVar

from .audit import EgressAuditLogger
from .detector import ModelAssistedDetector
from .models import (
    ML_REDACTION_LABEL,
    Detector,
    SanitizationContext,
    SanitizationOptions,
    SanitizationResult,
)
from .patterns import patterns_for_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
        "x-access-token",
        "x-csrf-token",
        "x-xsrf-token",
        "proxy-authorization",
        "www-authenticate",
    }
)


def is_sensitive_header(name: str) -> bool:
    """Check whether an HTTP header must never leave the process."""
    return name.lower() in SENSITIVE_HEADERS


class EgressSanitizer:
    """Context-aware sanitizer for outbound payloads.

    Instances hold no per-call state and are safe to share across concurrent
    calls. ``defaults`` supplies the options used when a call passes none;
    keyword overrides on each call are layered on top.
    """

    def __init__(
        self,
        detector: ModelAssistedDetector | None = None,
        audit_logger: EgressAuditLogger | None = None,
        defaults: SanitizationOptions | None = None,
    ) -> None:
        """Initialize the sanitizer.

        Args:
            detector: Optional model-assisted detector; the ML layer is skipped without one
            audit_logger: Receives a record for every audited call that sets ``scan_type``
            defaults: Default options for calls that don't pass any
        """
        self.detector = detector
        self.audit_logger = audit_logger
        self.defaults = defaults or SanitizationOptions()

    def bind(self, **defaults: Any) -> "EgressSanitizer":
        """Return a sanitizer sharing this one's collaborators with new defaults.

        Args:
            **defaults: ``SanitizationOptions`` fields to fix

        Returns:
            New sanitizer
        """
        return EgressSanitizer(
            detector=self.detector,
            audit_logger=self.audit_logger,
            defaults=dataclasses.replace(self.defaults, **defaults),
        )

    def _options(
        self,
        options: SanitizationOptions | None,
        overrides: dict[str, Any],
    ) -> SanitizationOptions:
        resolved = options if options is not None else self.defaults
        if overrides:
            resolved = dataclasses.replace(resolved, **overrides)
        if not isinstance(resolved.context, SanitizationContext):
            resolved = dataclasses.replace(resolved, context=SanitizationContext(resolved.context))
        return resolved

    def _apply_ml(self, text: str, options: SanitizationOptions) -> str:
        if self.detector is None or not options.uses_ml_detection():
            return text
        try:
            return self.detector.redact(text)
        except Exception as e:
            logger.debug("Model-assisted redaction failed, continuing with patterns: %s", e)
            return text

    @staticmethod
    def _apply_detector(text: str, detector: Detector) -> str:
        try:
            return detector.pattern.sub(detector.replacement, text)
        except Exception as e:
            logger.warning("Detector %s failed, skipping: %s", detector.name, e)
            return text

    def _sanitize(self, text: str, options: SanitizationOptions) -> tuple[str, list[str]]:
        redaction_types: list[str] = []

        sanitized = self._apply_ml(text, options)
        if sanitized != text:
            redaction_types.append(ML_REDACTION_LABEL)

        for detector in patterns_for_context(options.context, options):
            before = sanitized
            sanitized = self._apply_detector(sanitized, detector)
            if sanitized != before and detector.replacement not in redaction_types:
                redaction_types.append(detector.replacement)
                logger.debug(
                    "Redacted %s (%s) under %s",
                    detector.name,
                    detector.replacement,
                    options.context,
                )

        return sanitized, redaction_types

    def sanitize_text(
        self,
        text: str | None,
        options: SanitizationOptions | None = None,
        **overrides: Any,
    ) -> str | None:
        """Sanitize a string for egress.

        Args:
            text: Text to sanitize; ``None`` and ``""`` are returned as-is
            options: Sanitization options (defaults to this sanitizer's)
            **overrides: Individual option overrides, e.g. ``context="strict"``

        Returns:
            Sanitized text
        """
        if not text or not isinstance(text, str):
            return text

        opts = self._options(options, overrides)
        if opts.context == SanitizationContext.OFF:
            return text

        sanitized, _ = self._sanitize(text, opts)
        return sanitized

    def sanitize_text_with_audit(
        self,
        text: str | None,
        options: SanitizationOptions | None = None,
        **overrides: Any,
    ) -> SanitizationResult:
        """Sanitize a string and report what was redacted.

        Args:
            text: Text to sanitize
            options: Sanitization options (defaults to this sanitizer's)
            **overrides: Individual option overrides

        Returns:
            SanitizationResult with redaction types in order of first detection
        """
        if not text or not isinstance(text, str):
            empty = text if isinstance(text, str) else ""
            return SanitizationResult(
                text=empty,
                redacted=False,
                redaction_types=[],
                original_length=0,
                sanitized_length=0,
            )

        opts = self._options(options, overrides)

        if opts.context == SanitizationContext.OFF:
            result = SanitizationResult(
                text=text,
                redacted=False,
                redaction_types=[],
                original_length=len(text),
                sanitized_length=len(text),
            )
        else:
            sanitized, redaction_types = self._sanitize(text, opts)
            result = SanitizationResult(
                text=sanitized,
                redacted=bool(redaction_types),
                redaction_types=redaction_types,
                original_length=len(text),
                sanitized_length=len(sanitized),
            )

        if opts.scan_type is not None and self.audit_logger is not None:
            self.audit_logger.record_scan(opts.scan_type, result)

        return result

    def sanitize_object(
        self,
        obj: T,
        options: SanitizationOptions | None = None,
        **overrides: Any,
    ) -> T:
        """Recursively sanitize every string leaf of a payload.

        When ``scan_type`` is set and an audit logger is attached, the whole
        payload is recorded as one scan. Its result carries the summed string
        lengths and an empty ``text``.

        Args:
            obj: String, dict, list, tuple, dataclass instance or scalar
            options: Sanitization options (defaults to this sanitizer's)
            **overrides: Individual option overrides

        Returns:
            A payload of the same shape; non-string scalars are returned as-is
        """
        opts = self._options(options, overrides)
        if opts.context == SanitizationContext.OFF:
            return obj

        tally = SanitizationResult(
            text="", redacted=False, redaction_types=[], original_length=0, sanitized_length=0
        )
        sanitized = self._walk(obj, opts, tally)
        tally.redacted = bool(tally.redaction_types)

        if opts.scan_type is not None and self.audit_logger is not None:
            self.audit_logger.record_scan(opts.scan_type, tally)

        return sanitized

    def _walk(self, obj: Any, options: SanitizationOptions, tally: SanitizationResult) -> Any:
        if obj is None:
            return None
        if isinstance(obj, str):
            if not obj:
                return obj
            sanitized, redaction_types = self._sanitize(obj, options)
            tally.original_length += len(obj)
            tally.sanitized_length += len(sanitized)
            for label in redaction_types:
                if label not in tally.redaction_types:
                    tally.redaction_types.append(label)
            return sanitized
        if isinstance(obj, dict):
            return {key: self._walk(value, options, tally) for key, value in obj.items()}
        if isinstance(obj, list):
            return [self._walk(item, options, tally) for item in obj]
        if isinstance(obj, tuple):
            return tuple(self._walk(item, options, tally) for item in obj)
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            changes = {
                f.name: self._walk(getattr(obj, f.name), options, tally)
                for f in dataclasses.fields(obj)
                if f.init
            }
            return dataclasses.replace(obj, **changes)
        # Numbers, booleans, etc. pass through unchanged
        return obj

    # Aliases matching the egress vocabulary used by callers
    sanitize_object_for_egress = sanitize_object


def create_sanitizer(
    detector: ModelAssistedDetector | None = None,
    audit_logger: EgressAuditLogger | None = None,
    **defaults: Any,
) -> EgressSanitizer:
    """Create a sanitizer with fixed default options.

    Args:
        detector: Optional model-assisted detector
        audit_logger: Optional scan audit logger
        **defaults: ``SanitizationOptions`` fields, e.g. ``context="calculation"``

    Returns:
        Configured EgressSanitizer
    """
    return EgressSanitizer(
        detector=detector,
        audit_logger=audit_logger,
        defaults=SanitizationOptions(**defaults),
    )


def create_presets(
    detector: ModelAssistedDetector | None = None,
    audit_logger: EgressAuditLogger | None = None,
) -> dict[str, EgressSanitizer]:
    """Build the standard per-context sanitizers.

    ``calculation`` never runs the model-assisted layer, since it misfires on
    figures and reference codes.

    Returns:
        Mapping of preset name to sanitizer
    """
    return {
        "chat": create_sanitizer(detector, audit_logger, context=SanitizationContext.CHAT),
        "calculation": create_sanitizer(
            detector,
            audit_logger,
            context=SanitizationContext.CALCULATION,
            use_ml_detection=False,
        ),
        "strict": create_sanitizer(detector, audit_logger, context=SanitizationContext.STRICT),
        "off": create_sanitizer(detector, audit_logger, context=SanitizationContext.OFF),
    }


_DEFAULT = EgressSanitizer()


def sanitize_text_for_egress(text: str | None, **options: Any) -> str | None:
    """Sanitize text with the regex detectors only (no ML layer)."""
    return _DEFAULT.sanitize_text(text, **options)


def sanitize_text_with_audit(text: str | None, **options: Any) -> SanitizationResult:
    """Audited variant of :func:`sanitize_text_for_egress`."""
    return _DEFAULT.sanitize_text_with_audit(text, **options)


def sanitize_object_for_egress(obj: T, **options: Any) -> T:
    """Sanitize every string leaf of ``obj`` with the regex detectors only."""
    return _DEFAULT.sanitize_object(obj, **options)
