"""Simulated gesture perception"""

import asyncio
import random
from typing import List, Optional

import structlog

from .models import GestureObservation, Point3D
from .stages import GestureRecognizer
from .vocabulary import GestureVocabulary, vocabulary as default_vocabulary

logger = structlog.get_logger(__name__)

# Signs the simulated camera pipeline can report
SIMULATED_GESTURES = [
    "hello", "goodbye", "thank_you", "please", "yes", "no", "help", "stop",
    "water", "food", "sorry", "i_love_you",
    "one", "two", "three", "four", "five",
    "a", "b", "c",
]

FINGER_SPREAD = (-0.08, -0.035, 0.0, 0.035, 0.07)  # thumb .. pinky, relative x
FINGER_LENGTH = (0.12, 0.16, 0.18, 0.17, 0.13)


class SimulatedGestureRecognizer(GestureRecognizer):
    """Stands in for a hand-landmark model.

    Each frame has a fixed chance of containing a hand; when it does, a
    random sign is reported with landmarks shaped like that sign's
    handshape and a jittered confidence.
    """
    
    def __init__(
        self,
        detection_rate: float = 0.3,
        latency: float = 0.0,
        vocabulary: GestureVocabulary = None,
        rng: random.Random = None,
        gestures: List[str] = None,
    ):
        self.detection_rate = detection_rate
        self.latency = latency
        self.vocabulary = vocabulary or default_vocabulary
        self.rng = rng or random.Random()
        self.gestures = [g for g in (gestures or SIMULATED_GESTURES) if g in self.vocabulary]
        self.frames_processed = 0
    
    async def initialize(self):
        if not self.gestures:
            raise RuntimeError("No simulated gestures available in the vocabulary")
        logger.info("Gesture recognizer initialized",
                    gestures=len(self.gestures), detection_rate=self.detection_rate)
    
    async def recognize(self, frame: str) -> Optional[GestureObservation]:
        if self.latency:
            await asyncio.sleep(self.latency)
        self.frames_processed += 1
        
        if self.rng.random() >= self.detection_rate:
            return None
        
        gesture = self.rng.choice(self.gestures)
        entry = self.vocabulary.get(gesture)
        confidence = entry.confidence + self.rng.uniform(-0.1, 0.1)
        confidence = min(1.0, max(0.1, confidence))
        
        return GestureObservation(
            landmarks=self.generate_landmarks(entry.handshape),
            recognized_gesture=gesture,
            confidence=round(confidence, 3),
        )
    
    def generate_landmarks(self, handshape) -> List[Point3D]:
        """21 image-space points: wrist then four joints per finger"""
        wrist_x = 0.5 + self.rng.uniform(-0.05, 0.05)
        wrist_y = 0.75 + self.rng.uniform(-0.05, 0.05)
        points: List[Point3D] = [(wrist_x, wrist_y, 0.0)]
        
        for spread, length, extension in zip(FINGER_SPREAD, FINGER_LENGTH, handshape):
            # Folded fingers curl back below the wrist line
            reach = length * (extension * 1.5 - 0.5)
            for joint in range(1, 5):
                fraction = joint / 4
                points.append((
                    wrist_x + spread * (1 + fraction),
                    wrist_y - 0.05 - reach * fraction,
                    -0.01 * joint * (1 - extension),
                ))
        return points
    
    async def dispose(self):
        logger.info("Gesture recognizer disposed", frames_processed=self.frames_processed)
