"""Model-assisted PII detection for free text (names, locations, ...).

The regex detectors cannot recognise a person's name. A model-assisted
detector runs before them in ``chat`` and ``strict`` contexts when one is
configured on the sanitizer.
"""

from typing import Any, Protocol


class ModelAssistedDetector(Protocol):
    """Secondary classifier that rewrites text with PII replaced."""

    def redact(self, text: str) -> str:
        """Return ``text`` with detected entities replaced.

        Implementations must be stateless across calls and may raise; the
        sanitizer treats any exception as "no redaction" and carries on.
        """
        ...


DEFAULT_ENTITIES = (
    "PERSON",
    "LOCATION",
    "EMAIL_ADDRESS",
    "PHONE_NUMBER",
    "CREDIT_CARD",
    "IBAN_CODE",
    "IP_ADDRESS",
    "US_SSN",
)


class PresidioDetector:
    """Model-assisted detector backed by Microsoft Presidio.

    Presidio and its spaCy model are heavy, so they are imported and loaded
    lazily on first use.
    """

    def __init__(
        self,
        language: str = "en",
        entities: tuple[str, ...] | list[str] | None = None,
        score_threshold: float = 0.5,
    ):
        """Initialize the detector.

        Args:
            language: Language code passed to the analyzer
            entities: Presidio entity types to redact (None for the defaults)
            score_threshold: Minimum analyzer score for a match to be redacted
        """
        self._language = language
        self._entities = list(entities or DEFAULT_ENTITIES)
        self._score_threshold = score_threshold
        self._analyzer: Any = None
        self._anonymizer: Any = None

    def _load(self) -> None:
        """Load the Presidio engines (lazy initialization)."""
        if self._analyzer is not None:
            return

        try:
            from presidio_analyzer import AnalyzerEngine  # type: ignore[import-not-found]
            from presidio_anonymizer import AnonymizerEngine  # type: ignore[import-not-found]
        except ImportError as e:
            msg = (
                "presidio is required for model-assisted PII detection. "
                "Install with: pip install 'regguard[ml]'"
            )
            raise ImportError(msg) from e

        self._analyzer = AnalyzerEngine()
        self._anonymizer = AnonymizerEngine()

    def redact(self, text: str) -> str:
        """Replace detected entities with ``<ENTITY_TYPE>`` placeholders."""
        self._load()

        findings = self._analyzer.analyze(
            text=text,
            entities=self._entities,
            language=self._language,
            score_threshold=self._score_threshold,
        )
        if not findings:
            return text

        return self._anonymizer.anonymize(text=text, analyzer_results=findings).text
