"""Exceptions raised by the SiteCast calculators.

Services wrap unexpected failures in ``AnalysisError`` with a prefixed
message ("Risk analysis failed: ...") so the UI can show it as-is.
"""


class SiteCastError(Exception):
    """Base class for SiteCast errors."""


class ProjectNotFoundError(SiteCastError):
    """Raised when a project id does not exist."""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class WeatherServiceError(SiteCastError):
    """Raised when the forecast API is unavailable or returns an error."""


class AnalysisError(SiteCastError):
    """Raised when a calculator fails; the message carries the operation prefix."""
