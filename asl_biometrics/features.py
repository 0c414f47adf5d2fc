"""
Motion feature extraction and capture quality validation.
"""
import logging
from typing import List

import numpy as np

from .errors import InsufficientFrames
from .landmarks import FINGERTIPS, HandLandmark, frames_to_array
from .types import MotionFeatures, MotionSequence, QualityResult

logger = logging.getLogger(__name__)

# Smallest time step between frames, in seconds. Duplicate or out-of-order
# timestamps are clamped to this so velocities stay finite.
MIN_TIME_DELTA_S = 0.001

# Quality thresholds
MIN_CONFIDENCE = 0.7
MIN_FRAME_COUNT = 10
MIN_DURATION_S = 0.5
MIN_SMOOTHNESS = 0.3

# Quality score weights and saturation points
CONFIDENCE_WEIGHT = 0.30
SMOOTHNESS_WEIGHT = 0.25
DURATION_WEIGHT = 0.20
FRAME_COUNT_WEIGHT = 0.25
FULL_DURATION_S = 2.0
FULL_FRAME_COUNT = 30

ISSUE_LOW_CONFIDENCE = "Low hand detection confidence - ensure good lighting"
ISSUE_FEW_FRAMES = "Insufficient frames captured - sign for at least 1 second"
ISSUE_TOO_BRIEF = "Motion too brief - perform sign more slowly"
ISSUE_ERRATIC = "Motion too erratic - try to sign more smoothly"


def extract_motion_features(sequence: MotionSequence) -> MotionFeatures:
    """
    Extract kinematic features from a motion sequence.

    Velocities are computed for every consecutive frame pair: the mean speed
    of the five fingertips, and the wrist speed, both in normalized units per
    second. Finger spread is the thumb-tip to pinky-tip distance.

    Args:
        sequence: Timestamp-ordered motion sequence

    Returns:
        MotionFeatures summary

    Raises:
        InsufficientFrames: if fewer than two frames are present
    """
    frames = sequence.frames
    if len(frames) < 2:
        raise InsufficientFrames(
            f"At least 2 frames are needed to measure motion, got {len(frames)}"
        )

    points = frames_to_array(frames)
    timestamps = np.array([frame.timestamp for frame in frames], dtype=np.float64)
    time_deltas = np.maximum(np.diff(timestamps) / 1000.0, MIN_TIME_DELTA_S)

    # Per-landmark displacement between consecutive frames: (pairs, 21)
    steps = np.linalg.norm(np.diff(points, axis=0), axis=2)

    tip_indices = [int(i) for i in FINGERTIPS]
    velocities = (steps[:, tip_indices] / time_deltas[:, None]).mean(axis=1)
    wrist_velocities = steps[:, int(HandLandmark.WRIST)] / time_deltas

    later = points[1:]
    finger_spreads = np.linalg.norm(
        later[:, int(HandLandmark.THUMB_TIP)] - later[:, int(HandLandmark.PINKY_TIP)],
        axis=1,
    )

    # Inverse-variance smoothness: steady motion -> 1, erratic motion -> 0
    velocity_variance = float(np.var(velocities))
    motion_smoothness = 1.0 / (1.0 + velocity_variance)

    return MotionFeatures(
        average_velocity=float(np.mean(velocities)),
        max_velocity=float(np.max(velocities)),
        motion_smoothness=motion_smoothness,
        average_finger_spread=float(np.mean(finger_spreads)),
        average_wrist_movement=float(np.mean(wrist_velocities)),
        frame_duration=(sequence.capture_end_time - sequence.capture_start_time) / 1000.0,
        frame_count=len(frames),
        dominant_hand=frames[0].handedness,
        average_confidence=float(np.mean([frame.confidence for frame in frames])),
    )


def calculate_quality_score(features: MotionFeatures) -> float:
    """Weighted capture quality in [0, 1]."""
    duration_score = min(1.0, features.frame_duration / FULL_DURATION_S)
    frame_count_score = min(1.0, features.frame_count / FULL_FRAME_COUNT)
    return (
        CONFIDENCE_WEIGHT * features.average_confidence
        + SMOOTHNESS_WEIGHT * features.motion_smoothness
        + DURATION_WEIGHT * duration_score
        + FRAME_COUNT_WEIGHT * frame_count_score
    )


def validate_motion_quality(features: MotionFeatures) -> QualityResult:
    """
    Check captured motion against the minimum quality thresholds.

    The quality score is returned even for rejected captures so the client
    can show how close the attempt was.

    Args:
        features: Features extracted from the capture

    Returns:
        QualityResult with validity, score and human-readable issues
    """
    issues: List[str] = []

    if features.average_confidence < MIN_CONFIDENCE:
        issues.append(ISSUE_LOW_CONFIDENCE)

    if features.frame_count < MIN_FRAME_COUNT:
        issues.append(ISSUE_FEW_FRAMES)

    if features.frame_duration < MIN_DURATION_S:
        issues.append(ISSUE_TOO_BRIEF)

    if features.motion_smoothness < MIN_SMOOTHNESS:
        issues.append(ISSUE_ERRATIC)

    result = QualityResult(
        is_valid=not issues,
        quality_score=calculate_quality_score(features),
        issues=tuple(issues),
        features=features,
    )
    if issues:
        logger.debug(f"Capture rejected with {len(issues)} quality issue(s)")
    return result
