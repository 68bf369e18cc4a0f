"""Exception types shared across the egress guard and LLM router."""


class LlmError(Exception):
    """Raised when an LLM call cannot be routed or executed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EgressPolicyError(LlmError):
    """Raised when an outbound call violates the egress policy."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=403)


class SandboxError(Exception):
    """Raised when a code sandbox cannot be created or used."""
