"""
Gesture analysis that turns a signing attempt into semantic descriptors.

The analysis is diagnostic: it feeds UX feedback and a coarse gesture
suggestion, never the verification decision.
"""
import random
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import Cfg
from .landmarks import HandLandmark, fingers_extended, landmark_distance
from .types import (
    BoundingBox,
    Clock,
    FingerPositions,
    GestureAnalysisResult,
    GesturePath,
    HandFrame,
    HandOrientation,
    KeyframeAnalysis,
    MotionSequence,
    MovementDirection,
    PathShape,
    VerificationChallenge,
    now_ms,
)

MAX_KEYFRAMES = 10
MOVEMENT_DEADZONE = 0.02
STATIONARY_PATH_DISTANCE = 0.1
HORIZONTAL_ASPECT = 2.0
VERTICAL_ASPECT = 0.5
# 5 finger states + orientation + movement direction
TRACKED_ATTRIBUTES = 7

# Challenge vocabulary: gesture -> instruction shown to the patient
VERIFICATION_GESTURES: Dict[str, str] = {
    "yes": "Make a fist and nod it up and down",
    "no": "Extend index finger and shake side to side",
    "hello": "Wave with an open hand",
    "thank_you": "Touch chin with flat hand and move forward",
    "my_name": "Point to yourself with index finger",
    "understand": "Touch forehead with extended index finger",
}


def analyze_finger_positions(frame: HandFrame) -> FingerPositions:
    """Finger extension state for a single frame."""
    state = fingers_extended(frame)
    return FingerPositions(
        thumb_extended=state["thumb"],
        index_extended=state["index"],
        middle_extended=state["middle"],
        ring_extended=state["ring"],
        pinky_extended=state["pinky"],
    )


def estimate_hand_orientation(frame: HandFrame) -> HandOrientation:
    """
    Estimate palm orientation from the wrist to middle-knuckle vector.

    Depth dominates: a knuckle much further from the camera than the wrist
    means the palm faces forward.
    """
    wrist = frame.landmarks[HandLandmark.WRIST]
    middle_mcp = frame.landmarks[HandLandmark.MIDDLE_FINGER_MCP]

    z_diff = middle_mcp.z - wrist.z
    y_diff = middle_mcp.y - wrist.y

    if abs(z_diff) > abs(y_diff):
        return "palm_forward" if z_diff > 0 else "palm_back"
    return "palm_down" if y_diff > 0 else "palm_up"


def calculate_movement_direction(prev: HandFrame, current: HandFrame) -> MovementDirection:
    """
    Dominant wrist movement between two frames.

    Args:
        prev: Earlier frame
        current: Later frame

    Returns:
        Direction along the axis with the largest displacement, or
        "stationary" when every axis stays inside the deadzone
    """
    prev_wrist = prev.landmarks[HandLandmark.WRIST]
    curr_wrist = current.landmarks[HandLandmark.WRIST]

    dx = curr_wrist.x - prev_wrist.x
    dy = curr_wrist.y - prev_wrist.y
    dz = curr_wrist.z - prev_wrist.z

    abs_dx, abs_dy, abs_dz = abs(dx), abs(dy), abs(dz)

    if abs_dx < MOVEMENT_DEADZONE and abs_dy < MOVEMENT_DEADZONE and abs_dz < MOVEMENT_DEADZONE:
        return "stationary"

    if abs_dx >= abs_dy and abs_dx >= abs_dz:
        return "right" if dx > 0 else "left"
    if abs_dy >= abs_dz:
        # image y grows downwards
        return "down" if dy > 0 else "up"
    return "forward" if dz > 0 else "back"


def calculate_gesture_path(frames: Sequence[HandFrame]) -> GesturePath:
    """Bounding box, length and shape of the wrist trajectory."""
    wrists = [frame.landmarks[HandLandmark.WRIST] for frame in frames]
    xs = [p.x for p in wrists]
    ys = [p.y for p in wrists]

    box = BoundingBox(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))

    total_distance = sum(
        landmark_distance(wrists[i], wrists[i - 1]) for i in range(1, len(wrists))
    )

    height = (box.max_y - box.min_y) or 0.001
    aspect_ratio = (box.max_x - box.min_x) / height

    path_shape: PathShape
    if total_distance < STATIONARY_PATH_DISTANCE:
        path_shape = "stationary"
    elif aspect_ratio > HORIZONTAL_ASPECT:
        path_shape = "horizontal"
    elif aspect_ratio < VERTICAL_ASPECT:
        path_shape = "vertical"
    else:
        path_shape = "circular"

    return GesturePath(bounding_box=box, total_distance=total_distance, path_shape=path_shape)


def calculate_complexity(keyframes: Sequence[KeyframeAnalysis]) -> float:
    """Share of tracked attributes that change between keyframes, in [0, 1]."""
    if not keyframes:
        return 0.0

    changes = 0
    for prev, curr in zip(keyframes, keyframes[1:]):
        changes += sum(
            before != after
            for before, after in zip(prev.finger_positions.as_tuple(),
                                     curr.finger_positions.as_tuple())
        )
        if prev.hand_orientation != curr.hand_orientation:
            changes += 1
        if prev.movement_direction != curr.movement_direction:
            changes += 1

    return min(1.0, changes / (len(keyframes) * TRACKED_ATTRIBUTES))


# ---------------------------------------------------------------------------
# Gesture suggestion rules
# ---------------------------------------------------------------------------

def _fist(fp: FingerPositions) -> bool:
    return not (fp.index_extended or fp.middle_extended or fp.ring_extended or fp.pinky_extended)


def _open_hand(fp: FingerPositions) -> bool:
    return fp.index_extended and fp.middle_extended and fp.ring_extended and fp.pinky_extended


def _moves(keyframes: Sequence[KeyframeAnalysis], *directions: str) -> bool:
    return any(k.movement_direction in directions for k in keyframes)


@dataclass(frozen=True)
class GestureRule:
    """A named predicate over the keyframe summary."""
    gesture: str
    matches: Callable[[Sequence[KeyframeAnalysis]], bool]


# Checked in order; the first matching rule wins
GESTURE_RULES: Tuple[GestureRule, ...] = (
    # fist nodding up and down
    GestureRule("yes", lambda kf: _fist(kf[0].finger_positions)
                and _fist(kf[-1].finger_positions)
                and _moves(kf, "up", "down")),
    # open hand waving side to side
    GestureRule("hello", lambda kf: _open_hand(kf[0].finger_positions)
                and _moves(kf, "left", "right")),
    # flat hand, palm up, moving away from the chin
    GestureRule("thank_you", lambda kf: _open_hand(kf[0].finger_positions)
                and kf[0].hand_orientation == "palm_up"
                and _moves(kf, "forward")),
)


def detect_known_gesture(keyframes: Sequence[KeyframeAnalysis],
                         rules: Sequence[GestureRule] = GESTURE_RULES) -> Optional[str]:
    """Best-effort match against the small gesture vocabulary."""
    if len(keyframes) < 2:
        return None
    for rule in rules:
        if rule.matches(keyframes):
            return rule.gesture
    return None


class GestureAnalyzer:
    """
    Derives keyframe descriptors and path summaries from motion sequences,
    and issues verification challenges.
    """

    def __init__(self, cfg: Optional[Cfg] = None, clock: Clock = now_ms,
                 rng: Optional[random.Random] = None,
                 rules: Sequence[GestureRule] = GESTURE_RULES):
        """Initialize the analyzer."""
        self.cfg = cfg or Cfg()
        self.clock = clock
        self.rng = rng or random.Random()
        self.rules = tuple(rules)

    def extract_keyframes(self, frames: Sequence[HandFrame]) -> List[KeyframeAnalysis]:
        """Sample up to MAX_KEYFRAMES evenly spaced frames and describe each."""
        keyframe_count = min(MAX_KEYFRAMES, len(frames))
        if keyframe_count == 0:
            return []
        interval = len(frames) // keyframe_count

        keyframes = []
        for i in range(keyframe_count):
            frame_index = min(i * interval, len(frames) - 1)
            frame = frames[frame_index]

            movement: Optional[MovementDirection] = None
            if i > 0:
                movement = calculate_movement_direction(frames[frame_index - interval], frame)

            keyframes.append(KeyframeAnalysis(
                frame_index=frame_index,
                timestamp=frame.timestamp,
                finger_positions=analyze_finger_positions(frame),
                hand_orientation=estimate_hand_orientation(frame),
                movement_direction=movement,
            ))
        return keyframes

    def analyze(self, sequence: MotionSequence) -> GestureAnalysisResult:
        """
        Analyze a motion sequence.

        Args:
            sequence: Validated motion sequence

        Returns:
            GestureAnalysisResult with keyframes, path, complexity and an
            advisory gesture suggestion
        """
        frames = sequence.frames
        keyframes = self.extract_keyframes(frames)

        return GestureAnalysisResult(
            keyframes=tuple(keyframes),
            gesture_path=calculate_gesture_path(frames),
            sign_duration=(sequence.capture_end_time - sequence.capture_start_time) / 1000.0,
            complexity=calculate_complexity(keyframes),
            handedness=frames[0].handedness,
            confidence=sum(frame.confidence for frame in frames) / len(frames),
            suggested_gesture=detect_known_gesture(keyframes, self.rules),
        )

    def generate_challenge(self) -> VerificationChallenge:
        """Pick a random gesture for the patient to perform."""
        gesture = self.rng.choice(list(VERIFICATION_GESTURES))
        return VerificationChallenge(
            challenge_id=str(uuid.uuid4()),
            gesture_type=gesture,
            instructions=VERIFICATION_GESTURES.get(gesture, "Perform the sign"),
            expires_at=self.clock() + self.cfg.challenge.ttl_ms,
        )
