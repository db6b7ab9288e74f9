"""Sign <-> text translation engine"""

import string
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np
import structlog

from .models import (
    AnimationKeyframe,
    GestureObservation,
    SignAnimation,
    SignToTextResult,
    TextToSignResult,
)
from .vocabulary import (
    OPEN_HAND,
    UNKNOWN_GESTURE,
    GestureVocabulary,
    keyword_map,
    vocabulary as default_vocabulary,
)

logger = structlog.get_logger(__name__)

HAND_POINTS = 21
WRIST = 0
FINGERTIPS = (4, 8, 12, 16, 20)  # thumb, index, middle, ring, pinky

EXACT_MATCH_CONFIDENCE = 0.9
PARTIAL_MATCH_CONFIDENCE = 0.6
FINGERSPELL_CONFIDENCE = 0.4

LETTER_DURATION_MS = 800
GESTURE_KEYFRAME_MS = 300

# Hand paths (relative to the signing space origin) for signs with distinctive motion
MOTION_PATHS = {
    "hello": [(0.0, 0.5, 0.0), (0.2, 0.55, 0.0), (-0.2, 0.55, 0.0), (0.0, 0.5, 0.0)],
    "goodbye": [(0.1, 0.4, 0.1), (0.3, 0.4, 0.1), (0.1, 0.4, 0.1)],
    "thank_you": [(0.0, 0.6, 0.1), (0.0, 0.45, 0.4)],
    "yes": [(0.1, 0.3, 0.2), (0.1, 0.2, 0.2), (0.1, 0.3, 0.2), (0.1, 0.2, 0.2)],
    "no": [(0.1, 0.35, 0.2), (0.1, 0.35, 0.25)],
}
DEFAULT_PATH = [(0.0, 0.1, 0.1), (0.0, 0.35, 0.2), (0.0, 0.35, 0.2)]


class GestureClassifier(ABC):
    """Maps one hand's landmarks to a gesture label"""
    
    @abstractmethod
    def classify(self, points: np.ndarray) -> Tuple[str, float]:
        """Label and confidence for a (21, 3) landmark array"""


class HeuristicShapeClassifier(GestureClassifier):
    """Rule-based classifier over fingertip heights.

    Image coordinates: a smaller y is higher on screen, so a finger is
    "up" when its tip sits above the wrist.
    """
    
    def __init__(self, pinch_distance: float = 0.05):
        self.pinch_distance = pinch_distance
    
    def classify(self, points: np.ndarray) -> Tuple[str, float]:
        wrist = points[WRIST]
        tips = points[list(FINGERTIPS)]
        up = tips[:, 1] < wrist[1]
        
        if up.all():
            return "hello", 0.8
        if up[0] and not up[1:].any():
            return "yes", 0.85
        if up[1] and not up[0] and not up[2:].any():
            return "help", 0.7
        
        thumb, index = tips[0], tips[1]
        if abs(thumb[0] - index[0]) < self.pinch_distance and abs(thumb[1] - index[1]) < self.pinch_distance:
            return "thank_you", 0.75
        
        return UNKNOWN_GESTURE, 0.3


class TranslationEngine:
    """Converts between gesture observations and text"""
    
    def __init__(
        self,
        vocabulary: GestureVocabulary = None,
        classifier: GestureClassifier = None,
        window_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.vocabulary = vocabulary or default_vocabulary
        self.classifier = classifier or HeuristicShapeClassifier()
        self.window_seconds = window_seconds
        self.clock = clock
        self.keywords = keyword_map()
        self._sequence: Deque[Tuple[str, float]] = deque()
    
    # Sign -> text
    
    def sign_to_text(self, observation: GestureObservation) -> Optional[SignToTextResult]:
        """Classify the first hand and translate the latest gesture"""
        if len(observation.landmarks) < HAND_POINTS:
            return None
        
        points = np.asarray(observation.landmarks[:HAND_POINTS], dtype=float)
        gesture, confidence = self.classifier.classify(points)
        self._remember(gesture)
        
        text = self.vocabulary.phrase_for(gesture)
        if text is None:
            logger.debug("No phrase for gesture", gesture=gesture)
            return None
        
        return SignToTextResult(
            text=text,
            confidence=min(confidence, observation.confidence),
            gesture=gesture,
        )
    
    def _remember(self, gesture: str):
        now = self.clock()
        self._sequence.append((gesture, now))
        self._prune(now)
    
    def _prune(self, now: float):
        cutoff = now - self.window_seconds
        while self._sequence and self._sequence[0][1] < cutoff:
            self._sequence.popleft()
    
    def gesture_sequence(self) -> List[str]:
        """Gestures seen within the sequence window, oldest first"""
        self._prune(self.clock())
        return [gesture for gesture, _ in self._sequence]
    
    def reset(self):
        self._sequence.clear()
    
    # Text -> sign
    
    def text_to_sign(self, text: str) -> Optional[TextToSignResult]:
        """Describe and animate text token by token"""
        tokens = (text or "").lower().split()
        if not tokens:
            return None
        
        descriptions = []
        animations = []
        scores = []
        matched_any = False
        
        for raw in tokens:
            # Punctuation is ignored for matching only
            token = raw.strip(string.punctuation)
            gesture = self.keywords.get(token) if token else None
            score = EXACT_MATCH_CONFIDENCE
            if gesture is None and token:
                gesture = self._partial_match(token)
                score = PARTIAL_MATCH_CONFIDENCE
            token = token or raw
            
            if gesture is not None:
                matched_any = True
                descriptions.append(f"{token}: {self.vocabulary.describe(gesture)}")
                animations.append(self.gesture_animation(gesture))
            else:
                score = FINGERSPELL_CONFIDENCE
                descriptions.append(f'fingerspell "{token}"')
                animations.append(self.fingerspelling_animation(token))
            scores.append(score)
        
        if matched_any:
            sign_description = ", then ".join(descriptions)
        else:
            sign_description = f'Fingerspell: "{text.strip()}"'
        
        confidence = float(np.clip(np.mean(scores), 0.0, 1.0))
        return TextToSignResult(
            sign_description=sign_description,
            animations=animations,
            confidence=confidence,
        )
    
    def _partial_match(self, token: str) -> Optional[str]:
        for keyword, gesture in self.keywords.items():
            if keyword in token or token in keyword:
                return gesture
        return None
    
    def gesture_animation(self, gesture: str) -> SignAnimation:
        entry = self.vocabulary.get(gesture)
        handshape = list(entry.handshape) if entry else list(OPEN_HAND)
        path = MOTION_PATHS.get(gesture, DEFAULT_PATH)
        
        keyframes = [
            AnimationKeyframe(
                time_ms=i * GESTURE_KEYFRAME_MS,
                hand_position=position,
                finger_positions=list(OPEN_HAND) if i == 0 and gesture not in MOTION_PATHS else handshape,
                description=f"{gesture} keyframe {i + 1}",
            )
            for i, position in enumerate(path)
        ]
        return SignAnimation(
            gesture=gesture,
            duration_ms=len(path) * GESTURE_KEYFRAME_MS,
            keyframes=keyframes,
            description=self.vocabulary.describe(gesture),
        )
    
    def fingerspelling_animation(self, word: str) -> SignAnimation:
        letters = [char for char in word if char.isalnum()]
        keyframes = []
        for i, letter in enumerate(letters):
            entry = self.vocabulary.get(letter)
            keyframes.append(AnimationKeyframe(
                time_ms=i * LETTER_DURATION_MS,
                hand_position=(0.2, 0.4, 0.2),
                finger_positions=list(entry.handshape) if entry else list(OPEN_HAND),
                description=f"Spell letter: {letter.upper()}",
            ))
        return SignAnimation(
            gesture=f"fingerspell_{word}",
            duration_ms=len(letters) * LETTER_DURATION_MS,
            keyframes=keyframes,
            description=f'Fingerspell "{word}"',
        )
    
    # Descriptions used by the voice -> sign chain
    
    def sentence_for_gesture(self, gesture: Optional[str]) -> str:
        """Sentence to speak for a recognized gesture"""
        return self.vocabulary.sentence_for(gesture)
    
    def fingerspelling_description(self, text: str) -> str:
        words = text.split()
        if len(words) <= 3:
            return f'Spell out: "{text}" using fingerspelling'
        return (
            f'Sign language representation: "{" ".join(words[:6])}" '
            "- Use combination of gestures and fingerspelling"
        )
