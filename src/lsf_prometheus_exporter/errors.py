"""Exception hierarchy shared by the exporter."""


class LsfExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(LsfExporterError):
    """Raised for a missing LSF directory or an unknown/disabled collector."""


class ExecutionError(LsfExporterError):
    """Raised when an LSF command cannot be run or exits non-zero."""

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"error while calling '{' '.join(command)}': {reason}")


class DecodeError(LsfExporterError):
    """Raised when a single row of command output cannot be decoded."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"line {line_number}: {reason}")


class NormalizationError(LsfExporterError, ValueError):
    """Raised when a single field value cannot be normalized."""


class LabelCardinalityError(AssertionError):
    """Raised when a sample's label values do not match its descriptor."""
