"""Simulated speech perception with real audio format validation"""

import asyncio
import io
import random
from typing import List, Optional

import soundfile as sf
import structlog

from .errors import AudioFormatError
from .models import AudioClip, SpeechObservation
from .stages import SpeechRecognizer

logger = structlog.get_logger(__name__)

SUPPORTED_SAMPLE_RATES = (16000, 22050, 44100, 48000)
MIN_DURATION_SECONDS = 0.1
MAX_DURATION_SECONDS = 30.0

SIMULATED_TRANSCRIPTS = [
    "Hello, how are you today?",
    "Thank you very much",
    "Can you help me please?",
    "I need some water",
    "Good morning everyone",
    "Nice to meet you",
    "What time is it?",
    "I love learning sign language",
    "Please repeat that",
    "Goodbye, see you later",
]


def audio_format_problem(clip: AudioClip) -> Optional[str]:
    """Reason the clip is unacceptable, or None"""
    if not clip.audio:
        return "empty audio payload"
    if not MIN_DURATION_SECONDS <= clip.duration <= MAX_DURATION_SECONDS:
        return f"duration {clip.duration}s outside {MIN_DURATION_SECONDS}-{MAX_DURATION_SECONDS}s"
    if clip.sample_rate not in SUPPORTED_SAMPLE_RATES:
        return f"unsupported sample rate {clip.sample_rate}"
    
    if clip.audio[:4] == b"RIFF":
        try:
            info = sf.info(io.BytesIO(clip.audio))
        except RuntimeError as e:
            return f"unreadable WAV container: {e}"
        if info.samplerate != clip.sample_rate:
            return f"container sample rate {info.samplerate} does not match {clip.sample_rate}"
    return None


class SimulatedSpeechRecognizer(SpeechRecognizer):
    """Validates clips and returns canned transcripts"""
    
    def __init__(
        self,
        latency: float = 0.8,
        rng: random.Random = None,
        transcripts: List[str] = None,
        language: str = "en",
    ):
        self.latency = latency
        self.rng = rng or random.Random()
        self.transcripts = transcripts or SIMULATED_TRANSCRIPTS
        self.language = language
        self.clips_processed = 0
    
    async def initialize(self):
        logger.info("Speech recognizer initialized",
                    transcripts=len(self.transcripts), language=self.language)
    
    def validate_audio_format(self, clip: AudioClip) -> bool:
        problem = audio_format_problem(clip)
        if problem:
            logger.warning("Invalid audio format", reason=problem)
        return problem is None
    
    async def recognize(self, clip: AudioClip) -> Optional[SpeechObservation]:
        problem = audio_format_problem(clip)
        if problem:
            raise AudioFormatError(problem)
        
        if self.latency:
            await asyncio.sleep(self.latency)
        self.clips_processed += 1
        
        text = self.rng.choice(self.transcripts)
        return SpeechObservation(
            text=text,
            confidence=round(self.rng.uniform(0.85, 0.95), 3),
            language=self.language,
            session_id=clip.session_id,
        )
    
    async def dispose(self):
        logger.info("Speech recognizer disposed", clips_processed=self.clips_processed)
