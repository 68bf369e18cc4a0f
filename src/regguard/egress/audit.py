"""Audit recording for egress scans.

Every sanitizer call that carries a ``scan_type`` is recorded here, one
record per text or per structured payload (the egress client tags each
guarded LLM request as ``llm_request``). Records go to the module logger
and, when given, to a sink callable (for example a metrics exporter or an
audit table writer). In-process counters back the ``regguard scan`` summary
and tests.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .models import SanitizationResult, ScanType

logger = logging.getLogger(__name__)


@dataclass
class EgressScanRecord:
    """One scanned payload."""

    scan_type: ScanType
    blocked: bool
    pii_detected: bool
    sensitive_data_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scan_type": self.scan_type.value,
            "blocked": self.blocked,
            "pii_detected": self.pii_detected,
            "sensitive_data_types": list(self.sensitive_data_types),
        }


class EgressAuditLogger:
    """Records egress guard scans."""

    def __init__(self, sink: Callable[[EgressScanRecord], None] | None = None) -> None:
        """Initialize the audit logger.

        Args:
            sink: Optional callable receiving each record
        """
        self._sink = sink
        self._lock = threading.Lock()
        self._scans: dict[str, int] = {}
        self._redacted: dict[str, int] = {}
        self._types: dict[str, int] = {}

    def record_scan(self, scan_type: ScanType, result: SanitizationResult) -> EgressScanRecord:
        """Record the outcome of one sanitizer pass.

        Args:
            scan_type: Origin of the scanned payload
            result: Sanitizer audit result

        Returns:
            The record that was written
        """
        record = EgressScanRecord(
            scan_type=scan_type,
            blocked=result.redacted,
            pii_detected=result.redacted,
            sensitive_data_types=list(result.redaction_types),
        )

        with self._lock:
            self._scans[scan_type.value] = self._scans.get(scan_type.value, 0) + 1
            if result.redacted:
                self._redacted[scan_type.value] = self._redacted.get(scan_type.value, 0) + 1
            for label in result.redaction_types:
                self._types[label] = self._types.get(label, 0) + 1

        logger.debug(
            "Egress scan: type=%s redacted=%s types=%s",
            scan_type,
            result.redacted,
            ",".join(result.redaction_types) or "-",
        )

        if self._sink is not None:
            try:
                self._sink(record)
            except Exception as e:
                logger.warning("Egress audit sink failed: %s", e)

        return record

    def get_stats(self) -> dict[str, Any]:
        """Get scan counters.

        Returns:
            Dict with per-scan-type totals and per-label redaction counts
        """
        with self._lock:
            return {
                "scans": dict(self._scans),
                "redacted": dict(self._redacted),
                "redaction_types": dict(self._types),
            }

    def reset(self) -> None:
        with self._lock:
            self._scans.clear()
            self._redacted.clear()
            self._types.clear()
