"""Drawing annotation models."""

from enum import Enum

from pydantic import BaseModel, Field


class DrawingTool(str, Enum):
    """Tool used to draw a stroke."""

    PEN = "pen"
    LINE = "line"
    RECTANGLE = "rectangle"
    ARROW = "arrow"

    @property
    def is_shape(self) -> bool:
        """Shapes are defined by a start and an end point only."""
        return self is not DrawingTool.PEN


class Point(BaseModel):
    """A point in overlay coordinates."""

    x: float
    y: float


class AnnotationStroke(BaseModel):
    """A committed drawing captured against a specific frame."""

    tool: DrawingTool = DrawingTool.PEN
    color: str = "#ff0000"
    width: float = Field(3.0, gt=0.0)
    path: list[Point] = Field(default_factory=list)
    bound_timestamp: float = Field(..., ge=0.0, description="Frame-quantized media time")
