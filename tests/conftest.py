"""Shared fixtures for the GestureVoice tests"""

import base64
import io
import os

# Settings are read at import time
os.environ.setdefault("TTS_ENGINE", "silent")
os.environ.setdefault("SPEECH_LATENCY_SECONDS", "0")
os.environ.setdefault("AVATAR_TIME_SCALE", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pytest
import soundfile as sf

from gesturevoice.avatar_engine import Avatar3DPoseGenerator
from gesturevoice.keyword_extractor import KeywordGestureMapper
from gesturevoice.models import AudioClip, GestureObservation, SpeechObservation
from gesturevoice.session_coordinator import SessionCoordinator
from gesturevoice.speech_recognizer import audio_format_problem
from gesturevoice.speech_synthesizer import SilentSpeechSynthesizer
from gesturevoice.stages import GestureRecognizer, SpeechRecognizer
from gesturevoice.errors import AudioFormatError

CONNECTION_ID = "conn-1"


class RecordingEmitter:
    """Collects outbound events in order"""
    
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
    
    async def __call__(self, event: str, payload: Dict[str, Any]):
        self.events.append((event, payload))
    
    def names(self) -> List[str]:
        return [event for event, _ in self.events]
    
    def payloads(self, name: str) -> List[Dict[str, Any]]:
        return [payload for event, payload in self.events if event == name]
    
    def clear(self):
        self.events.clear()


class ScriptedGestureRecognizer(GestureRecognizer):
    """Returns queued observations; can be held open with a gate"""
    
    def __init__(self):
        self.results: List[Optional[GestureObservation]] = []
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None
    
    async def recognize(self, frame: str) -> Optional[GestureObservation]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else None


class ScriptedSpeechRecognizer(SpeechRecognizer):
    """Validates like the real recognizer, then returns a fixed transcript"""
    
    def __init__(self, text: str = "hello"):
        self.text = text
        self.calls = 0
    
    def validate_audio_format(self, clip: AudioClip) -> bool:
        return audio_format_problem(clip) is None
    
    async def recognize(self, clip: AudioClip) -> Optional[SpeechObservation]:
        problem = audio_format_problem(clip)
        if problem:
            raise AudioFormatError(problem)
        self.calls += 1
        return SpeechObservation(text=self.text, confidence=0.9, session_id=clip.session_id)


def wav_bytes(sample_rate: int = 16000, seconds: float = 1.0) -> bytes:
    buffer = io.BytesIO()
    sf.write(buffer, np.zeros(int(sample_rate * seconds), dtype=np.float32), sample_rate,
             format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def build_hand(up=(True, True, True, True, True), pinch=False):
    """21 landmarks; a finger is raised when its tip sits above the wrist"""
    points = [(0.5, 0.8, 0.0)]
    for finger in range(5):
        x = 0.3 + 0.1 * finger
        tip_y = 0.5 if up[finger] else 0.95
        for joint in range(1, 5):
            px = 0.45 if pinch and finger in (0, 1) and joint == 4 else x
            points.append((px, 0.8 + (tip_y - 0.8) * joint / 4, 0.0))
    return points


@pytest.fixture
def make_hand():
    return build_hand


@pytest.fixture
def make_wav():
    return wav_bytes


@pytest.fixture
def audio_payload():
    def _payload(sample_rate: int = 16000, seconds: float = 1.0, declared_rate: int = None):
        return {
            "audioData": base64.b64encode(wav_bytes(sample_rate, seconds)).decode("ascii"),
            "duration": seconds,
            "sampleRate": declared_rate or sample_rate,
        }
    return _payload


@pytest.fixture
def observation():
    def _observation(gesture: Optional[str], confidence: float, landmarks=None):
        return GestureObservation(
            landmarks=landmarks or [],
            recognized_gesture=gesture,
            confidence=confidence,
        )
    return _observation


@pytest.fixture
def gesture_recognizer():
    return ScriptedGestureRecognizer()


@pytest.fixture
def speech_recognizer():
    return ScriptedSpeechRecognizer()


@pytest.fixture
def synthesizer():
    return SilentSpeechSynthesizer()


@pytest.fixture
def avatar():
    return Avatar3DPoseGenerator(time_scale=0)


@pytest.fixture
def coordinator(gesture_recognizer, speech_recognizer, synthesizer, avatar):
    return SessionCoordinator(
        gesture_recognizer=gesture_recognizer,
        speech_recognizer=speech_recognizer,
        speech_synthesizer=synthesizer,
        avatar=avatar,
        text_mapper=KeywordGestureMapper(),
        health_check_interval=60.0,
    )


@pytest.fixture
async def emitter(coordinator):
    """A connected session's recorder, with system-ready already consumed"""
    recorder = RecordingEmitter()
    await coordinator.connect(CONNECTION_ID, recorder)
    recorder.clear()
    yield recorder
    await coordinator.shutdown()
