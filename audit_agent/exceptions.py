"""
Exceptions raised by the audit workflow.

All of them surface to the user as a single message, so the message text is
written for the user rather than for a log reader.
"""


class AuditAgentError(Exception):
    """Base class for workflow errors."""


class ConfigurationError(AuditAgentError):
    """Required configuration (usually an API key) is missing."""


class WorkflowError(AuditAgentError):
    """The workflow cannot start or continue with the given input."""


class EmptyInputError(WorkflowError):
    """The input document is blank."""

    def __init__(self, message: str = "Please provide the audit report text before starting the workflow."):
        super().__init__(message)


class InvalidStepError(WorkflowError):
    """A step id outside the fixed five steps."""

    def __init__(self, step_id):
        self.step_id = step_id
        super().__init__(f"Invalid step ID: {step_id}")


class StepExecutionError(AuditAgentError):
    """The LLM call for a step failed."""

    def __init__(self, step_id: int, cause: Exception = None):
        self.step_id = step_id
        self.cause = cause
        super().__init__(
            f"Failed to generate content for step {step_id}. "
            "Please check your configuration and try again."
        )


class PDFExtractionError(AuditAgentError):
    """A PDF could not be read or yielded no text."""
