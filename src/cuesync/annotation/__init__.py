"""Frame-bound drawing annotations."""

from cuesync.annotation.overlay import AnnotationOverlay, OverlayState

__all__ = ["AnnotationOverlay", "OverlayState"]
