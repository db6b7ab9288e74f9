"""Tests for the simulated gesture recognizer"""

import random

import numpy as np
import pytest

from gesturevoice.gesture_recognizer import SIMULATED_GESTURES, SimulatedGestureRecognizer
from gesturevoice.translation_engine import HeuristicShapeClassifier
from gesturevoice.vocabulary import OPEN_HAND


@pytest.mark.asyncio
async def test_detection():
    recognizer = SimulatedGestureRecognizer(detection_rate=1.0, rng=random.Random(7))
    await recognizer.initialize()
    
    observation = await recognizer.recognize("frame")
    assert observation.recognized_gesture in SIMULATED_GESTURES
    assert len(observation.landmarks) == 21
    assert 0.1 <= observation.confidence <= 1.0


@pytest.mark.asyncio
async def test_no_hand_in_frame():
    recognizer = SimulatedGestureRecognizer(detection_rate=0.0)
    assert await recognizer.recognize("frame") is None
    assert recognizer.frames_processed == 1


def test_open_hand_landmarks_classify_as_hello():
    recognizer = SimulatedGestureRecognizer(rng=random.Random(1))
    points = np.asarray(recognizer.generate_landmarks(OPEN_HAND), dtype=float)
    assert HeuristicShapeClassifier().classify(points)[0] == "hello"


@pytest.mark.asyncio
async def test_initialize_requires_gestures():
    recognizer = SimulatedGestureRecognizer(gestures=["not_a_sign"])
    with pytest.raises(RuntimeError):
        await recognizer.initialize()
