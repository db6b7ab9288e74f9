"""Capability interfaces for perception and generation stages

The coordinator only talks to these abstractions; concrete adapters
(simulated recognizers, eSpeak synthesis, the 3D avatar) are chosen at
startup in ``main``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import (
    AudioClip,
    AvatarPose,
    GestureObservation,
    SpeechObservation,
    SynthesizedAudio,
    VoiceProfile,
)


class PipelineStage(ABC):
    """Lifecycle shared by every stage"""
    
    name: str = "stage"
    
    async def initialize(self) -> None:
        """Prepare the stage; raising here aborts startup"""
    
    async def dispose(self) -> None:
        """Release resources held by the stage"""


class GestureRecognizer(PipelineStage):
    name = "gesture_recognizer"
    
    @abstractmethod
    async def recognize(self, frame: str) -> Optional[GestureObservation]:
        """Observation for one encoded frame, or None when no hand is present"""


class SpeechRecognizer(PipelineStage):
    name = "speech_recognizer"
    
    @abstractmethod
    def validate_audio_format(self, clip: AudioClip) -> bool:
        """Whether the clip's container and metadata are acceptable"""
    
    @abstractmethod
    async def recognize(self, clip: AudioClip) -> Optional[SpeechObservation]:
        """Transcript for a clip.

        Raises ``AudioFormatError`` when the clip fails validation and
        returns None when nothing intelligible was heard.
        """


class SpeechSynthesizer(PipelineStage):
    name = "speech_synthesizer"
    
    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        language: Optional[str] = None,
    ) -> SynthesizedAudio:
        """Render text to audio"""
    
    @abstractmethod
    def available_voices(self) -> List[VoiceProfile]:
        """Voices this synthesizer offers"""


class AvatarPoseGenerator(PipelineStage):
    name = "avatar_generator"
    
    @abstractmethod
    async def generate_pose(self, observation: GestureObservation) -> AvatarPose:
        """Pose for an observation; must fall back to a neutral pose instead of raising"""
    
    @abstractmethod
    async def play_sequence(self, gesture: str) -> bool:
        """Play the keyframes for a gesture; False when the gesture has none"""
    
    @abstractmethod
    def get_avatar_model(self) -> Dict[str, Any]:
        """Descriptor sent to clients on connect"""


class GestureTextMapper(PipelineStage):
    name = "text_mapper"
    
    @abstractmethod
    def map_text(self, text: str) -> Optional[str]:
        """Gesture name mentioned by free text, if any"""
