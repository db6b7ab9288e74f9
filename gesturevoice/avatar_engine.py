"""3D avatar pose generation and gesture playback"""

import asyncio
import math
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog

from .models import AvatarBone, AvatarPose, GestureObservation, Vector3, now_ms
from .stages import AvatarPoseGenerator
from .vocabulary import UNKNOWN_GESTURE, GestureVocabulary, vocabulary as default_vocabulary

logger = structlog.get_logger(__name__)

FINGERS = ("Thumb", "Index", "Middle", "Ring", "Pinky")
FINGER_BASES = (1, 5, 9, 13, 17)
FINGER_TIPS = (4, 8, 12, 16, 20)

DEFAULT_POSITIONS: Dict[str, Tuple[float, float, float]] = {
    "Head": (0.0, 1.7, 0.0),
    "Neck": (0.0, 1.6, 0.0),
    "Chest": (0.0, 1.4, 0.0),
    "Spine": (0.0, 1.1, 0.0),
    "LeftShoulder": (-0.2, 1.5, 0.0),
    "LeftUpperArm": (-0.35, 1.45, 0.0),
    "LeftForearm": (-0.4, 1.2, 0.0),
    "LeftHand": (-0.42, 0.95, 0.0),
    "RightShoulder": (0.2, 1.5, 0.0),
    "RightUpperArm": (0.35, 1.45, 0.0),
    "RightForearm": (0.4, 1.2, 0.0),
    "RightHand": (0.42, 0.95, 0.0),
}
for _side, _sign in (("Left", -1), ("Right", 1)):
    for _i, _finger in enumerate(FINGERS):
        DEFAULT_POSITIONS[f"{_side}{_finger}"] = (_sign * (0.4 + 0.015 * _i), 0.88, 0.02)

BONE_NAMES = list(DEFAULT_POSITIONS.keys())

FACIAL_EXPRESSIONS = {
    "neutral": {"eyebrows": 0.0, "mouth": 0.0, "eyes": 1.0},
    "happy": {"eyebrows": 0.2, "mouth": 0.8, "eyes": 0.9},
    "questioning": {"eyebrows": 0.7, "mouth": 0.1, "eyes": 1.0},
    "concerned": {"eyebrows": -0.4, "mouth": -0.3, "eyes": 1.0},
    "excited": {"eyebrows": 0.6, "mouth": 1.0, "eyes": 1.1},
    "serious": {"eyebrows": -0.2, "mouth": -0.1, "eyes": 0.95},
}

Rotation = Tuple[float, float, float]


class PoseSpec(NamedTuple):
    """Bone rotations overriding the rest pose for one keyframe"""
    rotations: Dict[str, Rotation]
    expression: str = "neutral"
    duration_ms: float = 500.0


def _fingers(extension: Sequence[float], side: str = "Right") -> Dict[str, Rotation]:
    """Curl each finger by how far it is folded (1 = extended)"""
    return {
        f"{side}{finger}": (1.4 * (1.0 - value), 0.0, 0.0)
        for finger, value in zip(FINGERS, extension)
    }


def _raised_arm(hand: Rotation = (0.0, 0.0, 0.0), **extra: Rotation) -> Dict[str, Rotation]:
    rotations = {
        "RightUpperArm": (0.0, 0.0, -1.2),
        "RightForearm": (0.0, 0.0, -0.8),
        "RightHand": hand,
    }
    rotations.update(extra)
    return rotations


def _with_fingers(rotations: Dict[str, Rotation], extension: Sequence[float]) -> Dict[str, Rotation]:
    merged = dict(rotations)
    merged.update(_fingers(extension))
    return merged


OPEN = (1, 1, 1, 1, 1)
CLOSED = (0, 0, 0, 0, 0)

GESTURE_ANIMATIONS: Dict[str, List[PoseSpec]] = {
    "hello": [
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 0.3)), OPEN), "happy", 400),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, -0.3)), OPEN), "happy", 300),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 0.3)), OPEN), "happy", 300),
    ],
    "goodbye": [
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 0.4)), OPEN), "happy", 300),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, -0.4)), OPEN), "happy", 300),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 0.4)), OPEN), "happy", 300),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, -0.4)), OPEN), "neutral", 300),
    ],
    "thank_you": [
        PoseSpec(_with_fingers(_raised_arm((0.3, 0.0, 0.0), RightForearm=(0.0, 0.0, -1.4)), OPEN), "happy", 400),
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 0.0), RightForearm=(-0.6, 0.0, -0.9)), OPEN), "happy", 500),
    ],
    "please": [
        PoseSpec(_with_fingers({"RightUpperArm": (0.4, 0.0, -0.3), "RightForearm": (0.0, 0.0, -1.5)}, OPEN), "questioning", 400),
        PoseSpec(_with_fingers({"RightUpperArm": (0.4, 0.0, -0.3), "RightForearm": (0.3, 0.0, -1.5)}, OPEN), "questioning", 400),
    ],
    "yes": [
        PoseSpec(_with_fingers(_raised_arm((0.4, 0.0, 0.0)), CLOSED), "happy", 250),
        PoseSpec(_with_fingers(_raised_arm((-0.2, 0.0, 0.0)), CLOSED), "happy", 250),
    ],
    "no": [
        PoseSpec(_with_fingers(_raised_arm(), (1, 1, 1, 0, 0)), "serious", 250),
        PoseSpec(_with_fingers(_raised_arm(), (0.3, 0.3, 0.3, 0, 0)), "serious", 250),
    ],
    "help": [
        PoseSpec(_with_fingers({"RightUpperArm": (0.3, 0.0, -0.4), "RightForearm": (0.0, 0.0, -1.2),
                                "LeftUpperArm": (0.3, 0.0, 0.4), "LeftForearm": (0.0, 0.0, 1.2)},
                               (1, 0, 0, 0, 0)), "concerned", 400),
        PoseSpec(_with_fingers({"RightUpperArm": (0.5, 0.0, -0.6), "RightForearm": (0.0, 0.0, -1.4),
                                "LeftUpperArm": (0.5, 0.0, 0.6), "LeftForearm": (0.0, 0.0, 1.4)},
                               (1, 0, 0, 0, 0)), "concerned", 400),
    ],
    "stop": [
        PoseSpec(_with_fingers(_raised_arm((0.0, 0.0, 1.57)), OPEN), "serious", 300),
        PoseSpec(_with_fingers({"RightUpperArm": (0.3, 0.0, -0.5), "RightForearm": (0.0, 0.0, -1.0),
                                "RightHand": (0.0, 0.0, 1.57)}, OPEN), "serious", 300),
    ],
    "water": [
        PoseSpec(_with_fingers(_raised_arm(RightForearm=(0.0, 0.0, -1.5)), (0, 1, 1, 1, 0)), "neutral", 300),
        PoseSpec(_with_fingers(_raised_arm((0.2, 0.0, 0.0), RightForearm=(0.0, 0.0, -1.5)), (0, 1, 1, 1, 0)), "neutral", 300),
    ],
    "food": [
        PoseSpec(_with_fingers(_raised_arm(RightForearm=(0.0, 0.0, -1.6)), (0.5, 0.5, 0.5, 0.5, 0.5)), "happy", 300),
        PoseSpec(_with_fingers(_raised_arm((0.2, 0.0, 0.0), RightForearm=(0.0, 0.0, -1.6)), (0.5, 0.5, 0.5, 0.5, 0.5)), "happy", 300),
    ],
    "bathroom": [
        PoseSpec(_with_fingers({"RightUpperArm": (0.3, 0.0, -0.6), "RightHand": (0.0, 0.3, 0.0)}, CLOSED), "neutral", 250),
        PoseSpec(_with_fingers({"RightUpperArm": (0.3, 0.0, -0.6), "RightHand": (0.0, -0.3, 0.0)}, CLOSED), "neutral", 250),
    ],
    "sorry": [
        PoseSpec(_with_fingers({"RightUpperArm": (0.4, 0.0, -0.3), "RightForearm": (0.0, 0.0, -1.5)}, CLOSED), "concerned", 400),
        PoseSpec(_with_fingers({"RightUpperArm": (0.4, 0.0, -0.3), "RightForearm": (0.3, 0.0, -1.5)}, CLOSED), "concerned", 400),
    ],
    "i_love_you": [
        PoseSpec(_with_fingers(_raised_arm(), (1, 1, 0, 0, 1)), "happy", 800),
    ],
    "one": [PoseSpec(_with_fingers(_raised_arm(), (0, 1, 0, 0, 0)), "neutral", 600)],
    "two": [PoseSpec(_with_fingers(_raised_arm(), (0, 1, 1, 0, 0)), "neutral", 600)],
    "three": [PoseSpec(_with_fingers(_raised_arm(), (1, 1, 1, 0, 0)), "neutral", 600)],
    "four": [PoseSpec(_with_fingers(_raised_arm(), (0, 1, 1, 1, 1)), "neutral", 600)],
    "five": [PoseSpec(_with_fingers(_raised_arm(), OPEN), "neutral", 600)],
    "a": [PoseSpec(_with_fingers(_raised_arm(), (1, 0, 0, 0, 0)), "neutral", 500)],
    "b": [PoseSpec(_with_fingers(_raised_arm(), (0, 1, 1, 1, 1)), "neutral", 500)],
    "c": [PoseSpec(_with_fingers(_raised_arm((0.0, 0.4, 0.0)), (0.5, 0.5, 0.5, 0.5, 0.5)), "neutral", 500)],
}


def default_pose() -> AvatarPose:
    """Rest pose with neutral expression"""
    return AvatarPose(
        bones=[
            AvatarBone(name=name, position=Vector3(x=x, y=y, z=z))
            for name, (x, y, z) in DEFAULT_POSITIONS.items()
        ],
        facial_expression="neutral",
        duration_ms=500.0,
    )


def build_pose(spec: PoseSpec) -> AvatarPose:
    pose = default_pose()
    for bone in pose.bones:
        rotation = spec.rotations.get(bone.name)
        if rotation is not None:
            bone.rotation = Vector3(x=rotation[0], y=rotation[1], z=rotation[2])
    pose.facial_expression = spec.expression
    pose.duration_ms = spec.duration_ms
    return pose


class Avatar3DPoseGenerator(AvatarPoseGenerator):
    """Drives a 22-bone avatar from observations and gesture names"""
    
    def __init__(self, vocabulary: GestureVocabulary = None, time_scale: float = 1.0):
        self.vocabulary = vocabulary or default_vocabulary
        self.time_scale = time_scale
        self.current_pose = default_pose()
        self.sequences_played = 0
    
    async def initialize(self):
        missing = [name for name in GESTURE_ANIMATIONS if name not in self.vocabulary]
        if missing:
            raise RuntimeError(f"Animations reference unknown gestures: {missing}")
        logger.info("Avatar initialized", bones=len(BONE_NAMES), animations=len(GESTURE_ANIMATIONS))
    
    def animation_for(self, gesture: Optional[str]) -> List[PoseSpec]:
        """Keyframes for a gesture; vocabulary signs without a table entry use their handshape"""
        if not gesture or gesture == UNKNOWN_GESTURE:
            return []
        if gesture in GESTURE_ANIMATIONS:
            return GESTURE_ANIMATIONS[gesture]
        entry = self.vocabulary.get(gesture)
        if entry is None:
            return []
        return [
            PoseSpec(_with_fingers(_raised_arm(), OPEN), "neutral", 300),
            PoseSpec(_with_fingers(_raised_arm(), entry.handshape), "neutral", 600),
        ]
    
    async def generate_pose(self, observation: GestureObservation) -> AvatarPose:
        try:
            sequence = self.animation_for(observation.recognized_gesture)
            if sequence:
                pose = build_pose(sequence[len(sequence) // 2])
            elif len(observation.landmarks) >= 21:
                pose = self._pose_from_landmarks(observation.landmarks)
            else:
                pose = default_pose()
        except Exception as e:
            logger.error("Failed to generate avatar pose", error=str(e),
                         gesture=observation.recognized_gesture)
            pose = default_pose()
        
        pose.timestamp = now_ms()
        self.current_pose = pose
        return pose
    
    def _pose_from_landmarks(self, landmarks) -> AvatarPose:
        points = np.asarray(landmarks[:21], dtype=float)
        if points.shape != (21, 3) or not np.isfinite(points).all():
            raise ValueError("landmarks must be 21 finite 3-D points")
        
        pose = default_pose()
        bones = {bone.name: bone for bone in pose.bones}
        
        wrist = points[0]
        rest = DEFAULT_POSITIONS["RightHand"]
        # Image space (y down) onto avatar space (y up), centred on the rest pose
        bones["RightHand"].position = Vector3(
            x=rest[0] + (0.5 - wrist[0]) * 0.5,
            y=rest[1] + (0.5 - wrist[1]) * 0.5,
            z=float(wrist[2]),
        )
        
        for finger, base, tip in zip(FINGERS, FINGER_BASES, FINGER_TIPS):
            dx, dy = points[tip][0] - points[base][0], points[tip][1] - points[base][1]
            angle = math.atan2(dy, dx)
            bones[f"Right{finger}"].rotation = Vector3(x=math.sin(angle) * 0.5, y=0.0, z=math.cos(angle) * 0.5)
        
        return pose
    
    async def play_sequence(self, gesture: str) -> bool:
        sequence = self.animation_for(gesture)
        if not sequence:
            logger.warning("No animation for gesture", gesture=gesture)
            return False
        
        for spec in sequence:
            self.current_pose = build_pose(spec)
            await asyncio.sleep(spec.duration_ms / 1000 * self.time_scale)
        
        self.current_pose = default_pose()
        self.sequences_played += 1
        logger.debug("Gesture sequence played", gesture=gesture, keyframes=len(sequence))
        return True
    
    def sequence_duration_ms(self, gesture: str) -> float:
        return sum(spec.duration_ms for spec in self.animation_for(gesture))
    
    def get_avatar_model(self) -> Dict[str, Any]:
        return {
            "skeleton": {
                "bones": BONE_NAMES,
                "bone_count": len(BONE_NAMES),
            },
            "current_pose": self.current_pose.model_dump(),
            "available_gestures": [name for name in self.vocabulary.names() if self.animation_for(name)],
            "facial_expressions": FACIAL_EXPRESSIONS,
        }
    
    async def dispose(self):
        self.current_pose = default_pose()
        logger.info("Avatar disposed", sequences_played=self.sequences_played)
