"""
Hand landmark indices and geometry helpers.

Landmarks follow the MediaPipe Hands layout: 21 points per hand, wrist at 0,
four joints per finger from base to tip.
"""
import math
from enum import IntEnum
from typing import Dict, Sequence, Tuple

import numpy as np

from .types import HandFrame, Landmark


class HandLandmark(IntEnum):
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGERTIPS: Tuple[int, ...] = (
    HandLandmark.THUMB_TIP,
    HandLandmark.INDEX_FINGER_TIP,
    HandLandmark.MIDDLE_FINGER_TIP,
    HandLandmark.RING_FINGER_TIP,
    HandLandmark.PINKY_TIP,
)

# (base, middle joint, tip) used by the extension check. The thumb has no
# PIP, so its CMC/MCP pair plays that role.
FINGER_JOINTS: Dict[str, Tuple[int, int, int]] = {
    "thumb": (HandLandmark.THUMB_CMC, HandLandmark.THUMB_MCP, HandLandmark.THUMB_TIP),
    "index": (HandLandmark.INDEX_FINGER_MCP, HandLandmark.INDEX_FINGER_PIP, HandLandmark.INDEX_FINGER_TIP),
    "middle": (HandLandmark.MIDDLE_FINGER_MCP, HandLandmark.MIDDLE_FINGER_PIP, HandLandmark.MIDDLE_FINGER_TIP),
    "ring": (HandLandmark.RING_FINGER_MCP, HandLandmark.RING_FINGER_PIP, HandLandmark.RING_FINGER_TIP),
    "pinky": (HandLandmark.PINKY_MCP, HandLandmark.PINKY_PIP, HandLandmark.PINKY_TIP),
}

EXTENSION_RATIO = 1.3


def landmark_distance(a: Landmark, b: Landmark) -> float:
    """
    Euclidean 3D distance between two landmarks.

    Args:
        a: First landmark
        b: Second landmark

    Returns:
        Distance in normalized units
    """
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def is_finger_extended(base: Landmark, middle: Landmark, tip: Landmark) -> bool:
    """
    Check if a finger is extended.

    A straight finger puts its tip well beyond the middle joint, so the
    base-to-tip distance exceeds the base-to-middle distance by the
    extension ratio.
    """
    return landmark_distance(base, tip) > landmark_distance(base, middle) * EXTENSION_RATIO


def fingers_extended(frame: HandFrame) -> Dict[str, bool]:
    """Extension state for each finger in the frame."""
    lms = frame.landmarks
    return {
        name: is_finger_extended(lms[base], lms[middle], lms[tip])
        for name, (base, middle, tip) in FINGER_JOINTS.items()
    }


def frames_to_array(frames: Sequence[HandFrame]) -> np.ndarray:
    """Stack frame landmarks into a (frames, 21, 3) float array."""
    return np.array(
        [[(lm.x, lm.y, lm.z) for lm in frame.landmarks] for frame in frames],
        dtype=np.float64,
    ).reshape(len(frames), -1, 3)
