"""
Interaction tuning for hit testing, gestures, caps and marker placement.

These values are presentation choices; hosts override them through
``Settings.interaction`` or by passing their own instance.
"""

from pydantic import BaseModel, Field


class InteractionSettings(BaseModel):
    """Settings for pointer interaction on the inspection map."""

    # Hit testing
    hit_tolerance_px: float = Field(
        default=16.0, ge=0.0, description="Pointer tolerance around feature edges (screen pixels)"
    )

    # Gesture classification
    drag_threshold_px: float = Field(
        default=5.0, ge=0.0, description="Per-axis movement that turns a press into a drag"
    )
    click_max_duration_s: float = Field(
        default=0.25, gt=0.0, description="Longest press still treated as a click (seconds)"
    )

    # Click policy
    clear_on_empty_click: bool = Field(
        default=True, description="Whether a click on empty space clears the selection"
    )
    click_advances_stage: bool = Field(
        default=True, description="Whether clicking a feature advances its completion stage"
    )

    # Rendering helpers
    cap_thickness_px: float = Field(default=12.0, ge=0.0, description="Depth of terminal caps (screen pixels)")
    marker_max_tries: int = Field(
        default=100, ge=1, description="Rejection-sampling attempts before falling back to the centroid"
    )
