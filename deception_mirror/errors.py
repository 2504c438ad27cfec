"""Typed failures raised by the clients, the orchestrator and the log store."""

from typing import Any, List, Optional, Tuple


class MirrorError(Exception):
    """Base class for every failure this package raises on purpose."""


class ValidationError(MirrorError):
    """Caller input failed a precondition. Raised before any network call."""


class ProviderError(MirrorError):
    """The LLM round trip failed or came back without usable content."""


class ResponseShapeError(MirrorError):
    """The provider answered, but the payload does not match the contract."""

    def __init__(self, message: str, raw: Any = None, violations: Optional[List[Tuple[str, str]]] = None):
        super().__init__(message)
        self.raw = raw
        self.violations = list(violations or [])

    @property
    def fields(self) -> List[str]:
        return [path for path, _ in self.violations]

    def __str__(self) -> str:
        base = super().__str__()
        if not self.violations:
            return base
        details = "; ".join(f"{path}: {msg}" for path, msg in self.violations)
        return f"{base} ({details})"


class SynthesisError(MirrorError):
    """Every speech-synthesis attempt failed."""

    def __init__(self, message: str, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class LogStoreError(MirrorError):
    """The mirror log could not be read from or written to storage."""
