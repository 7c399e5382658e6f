"""Custom exception hierarchy for the smile report engine."""


class SmileReportError(Exception):
    """Base exception for all smile report errors."""


class ConfigurationError(SmileReportError):
    """Error in system configuration or rule tables."""


class IntakeValidationError(SmileReportError):
    """Intake answers failed validation."""

    def __init__(self, errors: list, warnings: list | None = None) -> None:
        self.errors = errors
        self.warnings = warnings or []
        summary = "; ".join(e.message for e in errors[:3])
        super().__init__(f"Intake validation failed with {len(errors)} error(s): {summary}")


class ContentStoreError(SmileReportError):
    """Content library is unavailable or misconfigured."""


class GenerationError(SmileReportError):
    """Error calling the LLM provider."""


class EvaluationError(SmileReportError):
    """Error during LLM report evaluation."""


class AuditStoreError(SmileReportError):
    """Error persisting or reading audit records."""
