"""Drawing overlay bound to the playback controller."""

from __future__ import annotations

import logging
from enum import Enum

from cuesync.correlation.timeline import quantize
from cuesync.errors import ValidationError, ValidationErrorKind
from cuesync.models.annotation import AnnotationStroke, DrawingTool, Point
from cuesync.playback.controller import PlaybackController

logger = logging.getLogger(__name__)


class OverlayState(str, Enum):
    """State of the current drawing session."""

    IDLE = "idle"
    DRAWING = "drawing"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class AnnotationOverlay:
    """Captures strokes and binds them to the frame shown at commit time.

    State machine: IDLE -> DRAWING -> COMMITTED | DISCARDED, after which a
    new stroke may begin. Undo/redo operates on committed strokes only.
    Tool, color and width are session settings and start from defaults
    for every overlay instance.
    """

    def __init__(
        self,
        controller: PlaybackController,
        *,
        tool: DrawingTool = DrawingTool.PEN,
        color: str = "#ff0000",
        width: float = 3.0,
    ) -> None:
        self._controller = controller
        self.tool = tool
        self.color = color
        self.width = width
        self._state = OverlayState.IDLE
        self._path: list[Point] = []
        self._active_tool = tool
        self._active_color = color
        self._undo: list[AnnotationStroke] = []
        self._redo: list[AnnotationStroke] = []

    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def current_path(self) -> list[Point]:
        return list(self._path)

    @property
    def strokes(self) -> list[AnnotationStroke]:
        """Committed strokes, oldest first."""
        return list(self._undo)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def select_tool(self, tool: DrawingTool) -> None:
        """Choose the tool for the next stroke."""
        self.tool = tool

    def select_color(self, color: str) -> None:
        """Choose the color for the next stroke."""
        self.color = color

    def begin_stroke(self, point: Point) -> None:
        if self._state is OverlayState.DRAWING:
            raise ValidationError(
                ValidationErrorKind.INVALID_TRANSITION, "A stroke is already in progress"
            )
        self._active_tool = self.tool
        self._active_color = self.color
        self._path = [point]
        self._state = OverlayState.DRAWING

    def add_point(self, point: Point) -> None:
        """Extend the stroke; shapes keep only their start and latest point."""
        self._require_drawing("add_point")
        if self._active_tool.is_shape:
            self._path = [self._path[0], point]
        else:
            self._path.append(point)

    def commit(self, frame_rate: float | None = None) -> AnnotationStroke:
        """Finalize the stroke at the controller's current, frame-quantized time."""
        self._require_drawing("commit")
        fps = frame_rate or self._controller.state.frame_rate
        stroke = AnnotationStroke(
            tool=self._active_tool,
            color=self._active_color,
            width=self.width,
            path=self._path,
            bound_timestamp=quantize(self._controller.current_time, fps),
        )
        self._undo.append(stroke)
        self._redo.clear()
        self._path = []
        self._state = OverlayState.COMMITTED
        logger.debug("Committed %s stroke at %.3fs", stroke.tool.value, stroke.bound_timestamp)
        return stroke

    def discard(self) -> None:
        self._require_drawing("discard")
        self._path = []
        self._state = OverlayState.DISCARDED

    def undo(self) -> AnnotationStroke | None:
        if not self._undo:
            return None
        stroke = self._undo.pop()
        self._redo.append(stroke)
        return stroke

    def redo(self) -> AnnotationStroke | None:
        if not self._redo:
            return None
        stroke = self._redo.pop()
        self._undo.append(stroke)
        return stroke

    def clear(self) -> None:
        """Drop every stroke, including any in progress and the redo stack."""
        self._undo.clear()
        self._redo.clear()
        self._path = []
        self._state = OverlayState.IDLE

    def take_strokes(self) -> list[AnnotationStroke]:
        """Hand committed strokes to a comment and start a fresh history."""
        strokes = list(self._undo)
        self._undo.clear()
        self._redo.clear()
        if self._state is not OverlayState.DRAWING:
            self._state = OverlayState.IDLE
        return strokes

    def _require_drawing(self, operation: str) -> None:
        if self._state is not OverlayState.DRAWING:
            raise ValidationError(
                ValidationErrorKind.INVALID_TRANSITION,
                f"{operation}() requires an active stroke (state={self._state.value})",
            )
