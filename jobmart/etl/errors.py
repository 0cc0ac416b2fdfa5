"""Pipeline error types."""


class PipelineError(Exception):
    """Base class for pipeline failures."""
    pass


class LoadError(PipelineError):
    """Source file missing, unreadable or malformed. Raised before staging is written."""
    pass


class SkillsParseError(PipelineError):
    """Skills pseudo-list could not be parsed. Row-level, recovered by callers."""
    pass


class MergeError(PipelineError):
    """Merge batch rejected or failed. The whole batch is rolled back."""
    pass


class PipelineStepError(PipelineError):
    """Raised by the orchestrator when a named step fails."""

    def __init__(self, step_name: str, cause: BaseException):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {cause}")
