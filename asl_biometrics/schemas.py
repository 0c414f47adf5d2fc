"""
Wire validation for motion sequences submitted by the browser tracker.

The tracker posts camelCase JSON; snake_case keys are accepted as well so
that domain dataclasses can be re-validated through the same models.
"""
import dataclasses
from typing import Any, List, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidInput
from .types import HandFrame, Landmark, MotionSequence

LANDMARKS_PER_FRAME = 21
MIN_SEQUENCE_FRAMES = 5


class WireModel(BaseModel):
    """Accepts camelCase wire keys as well as snake_case field names. Floats must be finite."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class LandmarkPayload(WireModel):
    x: float = Field(..., ge=0.0, le=1.0)
    y: float = Field(..., ge=0.0, le=1.0)
    z: float


class HandFramePayload(WireModel):
    timestamp: int
    handedness: Literal["left", "right"]
    landmarks: List[LandmarkPayload] = Field(
        ..., min_length=LANDMARKS_PER_FRAME, max_length=LANDMARKS_PER_FRAME
    )
    confidence: float = Field(..., ge=0.0, le=1.0)


class MotionSequencePayload(WireModel):
    session_id: UUID
    frames: List[HandFramePayload] = Field(..., min_length=MIN_SEQUENCE_FRAMES)
    capture_start_time: int
    capture_end_time: int

    @model_validator(mode="after")
    def check_capture_window(self) -> "MotionSequencePayload":
        if self.capture_end_time < self.capture_start_time:
            raise ValueError("captureEndTime must not precede captureStartTime")
        return self

    def to_domain(self) -> MotionSequence:
        frames = tuple(
            HandFrame(
                timestamp=frame.timestamp,
                handedness=frame.handedness,
                landmarks=tuple(Landmark(lm.x, lm.y, lm.z) for lm in frame.landmarks),
                confidence=frame.confidence,
            )
            for frame in self.frames
        )
        return MotionSequence(
            session_id=str(self.session_id),
            frames=frames,
            capture_start_time=self.capture_start_time,
            capture_end_time=self.capture_end_time,
        )


def _format_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return messages


def parse_motion_sequence(data: Union[MotionSequence, dict, Any]) -> MotionSequence:
    """
    Validate a motion sequence and return it as a domain object.

    Args:
        data: JSON-like mapping from the wire, or a MotionSequence built in code

    Returns:
        Validated MotionSequence

    Raises:
        InvalidInput: if the shape or value ranges are wrong
    """
    if isinstance(data, MotionSequence):
        data = dataclasses.asdict(data)
    if not isinstance(data, dict):
        raise InvalidInput("Invalid motion sequence data", ["motion sequence must be an object"])
    try:
        payload = MotionSequencePayload.model_validate(data)
    except ValidationError as e:
        raise InvalidInput("Invalid motion sequence data", _format_errors(e)) from e
    return payload.to_domain()
