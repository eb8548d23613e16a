"""Error taxonomy for the point-density pipeline.

Every stage raises one of these with the stage name and the identifier of
the offending input so a failure can be diagnosed without re-running.
"""

from typing import Any, Optional


class PipelineError(ValueError):
    """Base class for pipeline stage failures.

    Attributes:
        stage: Name of the operation that failed (e.g. "assign", "estimate").
        input_id: Identifier of the offending input, if known.
    """

    def __init__(self, message: str, stage: Optional[str] = None, input_id: Any = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.input_id = input_id

    def __str__(self) -> str:
        text = self.message
        if self.stage:
            text = f"[{self.stage}] {text}"
        if self.input_id is not None:
            text = f"{text} (input: {self.input_id})"
        return text


class CrsError(PipelineError):
    """Unknown, missing or incompatible coordinate reference system."""


class GeometryError(PipelineError):
    """Empty, degenerate (zero-area) or invalid input geometry."""


class InsufficientDataError(PipelineError):
    """Too few points for the requested statistical operation."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        input_id: Any = None,
        n_points: int = 0,
        n_required: int = 2,
    ):
        super().__init__(message, stage=stage, input_id=input_id)
        self.n_points = n_points
        self.n_required = n_required
