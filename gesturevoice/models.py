"""Data models for the GestureVoice bridge"""

import base64
import binascii
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import AudioFormatError

Point3D = Tuple[float, float, float]


def now_ms() -> float:
    """Wall clock in milliseconds"""
    return time.time() * 1000


class ModalityType(str, Enum):
    """Source modality of a translation"""
    SIGN = "sign"
    VOICE = "voice"


class GestureObservation(BaseModel):
    """Output of gesture perception for one frame"""
    landmarks: List[Point3D] = Field(default_factory=list)
    recognized_gesture: Optional[str] = None
    gesture_description: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: float = Field(default_factory=now_ms)
    session_id: str = ""


class SpeechObservation(BaseModel):
    """Output of speech perception for one clip"""
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    language: str = "en"
    timestamp: float = Field(default_factory=now_ms)
    session_id: str = ""


class AudioClip(BaseModel):
    """Raw audio submitted for recognition"""
    audio: bytes
    duration: float  # seconds
    sample_rate: int
    timestamp: float = Field(default_factory=now_ms)
    session_id: str = ""


class TranslationResult(BaseModel):
    """Translated text between modalities"""
    model_config = ConfigDict(frozen=True)
    
    original_type: ModalityType
    translated_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: float = Field(default_factory=now_ms)
    session_id: str = ""


class Vector3(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class AvatarBone(BaseModel):
    """Transform of one avatar skeleton bone"""
    name: str
    position: Vector3 = Field(default_factory=Vector3)
    rotation: Vector3 = Field(default_factory=Vector3)


class AvatarPose(BaseModel):
    """Skeletal pose plus facial expression"""
    timestamp: float = Field(default_factory=now_ms)
    bones: List[AvatarBone] = Field(default_factory=list)
    facial_expression: str = "neutral"
    duration_ms: float = 500.0


class AnimationKeyframe(BaseModel):
    """One hand keyframe of a sign animation"""
    time_ms: float
    hand_position: Point3D = (0.0, 0.0, 0.0)
    finger_positions: List[float] = Field(default_factory=lambda: [1.0] * 5)
    description: str = ""


class SignAnimation(BaseModel):
    """Animation fragment for one signed token"""
    gesture: str
    duration_ms: float
    keyframes: List[AnimationKeyframe] = Field(default_factory=list)
    description: str = ""


class TextToSignResult(BaseModel):
    sign_description: str
    animations: List[SignAnimation] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)


class SignToTextResult(BaseModel):
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    gesture: str


class VoiceProfile(BaseModel):
    """A synthesized-voice option"""
    name: str
    language: str
    description: str = ""


class SynthesizedAudio(BaseModel):
    """Audio produced by a speech synthesizer"""
    audio: bytes  # WAV container
    sample_rate: int
    duration_ms: float
    text: str
    voice: str
    audio_format: str = "wav"
    
    def to_base64(self) -> str:
        return base64.b64encode(self.audio).decode("ascii")


# Inbound event payloads. Browser clients send camelCase keys, so both
# spellings are accepted.

class InboundPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoFramePayload(InboundPayload):
    frame: str = Field(min_length=1)
    timestamp: Optional[float] = None
    session_id: Optional[str] = None


class AudioDataPayload(InboundPayload):
    audio_data: str = Field(min_length=1)  # base64, optionally a data: URL
    duration: float
    sample_rate: int
    timestamp: Optional[float] = None
    session_id: Optional[str] = None
    
    def to_clip(self, session_id: str = "") -> AudioClip:
        """Decode the base64 payload into an AudioClip"""
        encoded = self.audio_data
        if encoded.startswith("data:"):
            encoded = encoded.split(",", 1)[-1]
        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AudioFormatError(f"Audio data is not valid base64: {e}") from e
        
        return AudioClip(
            audio=audio,
            duration=self.duration,
            sample_rate=self.sample_rate,
            timestamp=self.timestamp if self.timestamp is not None else now_ms(),
            session_id=session_id,
        )


class PlayGesturePayload(InboundPayload):
    gesture: str = Field(min_length=1)
    
    @field_validator("gesture")
    @classmethod
    def normalize_gesture(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("gesture must not be blank")
        return value


class SpeakTextPayload(InboundPayload):
    text: str = Field(min_length=1, max_length=1000)
    voice: Optional[str] = None
    speed: Optional[float] = Field(default=None, gt=0.0, le=4.0)
    language: Optional[str] = None
    
    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class TranslationRequestPayload(InboundPayload):
    text: str = Field(min_length=1)
    target_type: ModalityType


class AvatarCustomizationPayload(InboundPayload):
    settings: Dict[str, Any] = Field(default_factory=dict)
