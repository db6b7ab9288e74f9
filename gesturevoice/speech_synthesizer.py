"""Speech synthesis backends"""

import asyncio
import io
import os
import shutil
import tempfile
from typing import Dict, List, Optional

import numpy as np
import soundfile as sf
import structlog

from .models import SynthesizedAudio, VoiceProfile
from .stages import SpeechSynthesizer

logger = structlog.get_logger(__name__)

# Friendly voice names mapped onto eSpeak voice variants
VOICE_ALIASES: Dict[str, VoiceProfile] = {
    "samantha": VoiceProfile(name="Samantha", language="en-US", description="US English female voice"),
    "alex": VoiceProfile(name="Alex", language="en-US", description="US English male voice"),
    "victoria": VoiceProfile(name="Victoria", language="en-US", description="US English female voice, softer"),
    "daniel": VoiceProfile(name="Daniel", language="en-GB", description="British English male voice"),
    "serena": VoiceProfile(name="Serena", language="en-GB", description="British English female voice"),
    "jorge": VoiceProfile(name="Jorge", language="es-ES", description="Spanish male voice"),
    "monica": VoiceProfile(name="Monica", language="es-ES", description="Spanish female voice"),
}

ESPEAK_VOICES = {
    "samantha": "en-us+f3",
    "alex": "en-us",
    "victoria": "en-us+f2",
    "daniel": "en-gb",
    "serena": "en-gb+f3",
    "jorge": "es",
    "monica": "es+f3",
}

BASE_WORDS_PER_MINUTE = 175


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """16-bit PCM WAV bytes for a mono or multi-channel sample array"""
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


class SilentSpeechSynthesizer(SpeechSynthesizer):
    """Produces silent WAV audio timed like speech.

    Used on headless hosts without a synthesizer installed; clients still
    receive a well-formed clip of plausible length.
    """
    
    def __init__(self, sample_rate: int = 22050, default_voice: str = "en", default_speed: float = 1.0):
        self.sample_rate = sample_rate
        self.default_voice = default_voice
        self.default_speed = default_speed
        self.syntheses = 0
    
    async def initialize(self):
        logger.info("Silent speech synthesizer initialized", sample_rate=self.sample_rate)
    
    async def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        language: Optional[str] = None,
    ) -> SynthesizedAudio:
        speed = speed or self.default_speed
        words = max(1, len(text.split()))
        seconds = max(0.3, words * 60.0 / (BASE_WORDS_PER_MINUTE * speed))
        samples = np.zeros(int(seconds * self.sample_rate), dtype=np.float32)
        self.syntheses += 1
        
        return SynthesizedAudio(
            audio=encode_wav(samples, self.sample_rate),
            sample_rate=self.sample_rate,
            duration_ms=len(samples) / self.sample_rate * 1000,
            text=text,
            voice=voice or self.default_voice,
        )
    
    def available_voices(self) -> List[VoiceProfile]:
        return list(VOICE_ALIASES.values())


class ESpeakSpeechSynthesizer(SpeechSynthesizer):
    """eSpeak NG formant synthesis through a subprocess"""
    
    def __init__(
        self,
        default_voice: str = "en",
        default_speed: float = 1.0,
        playback_command: Optional[str] = None,
    ):
        self.default_voice = default_voice
        self.default_speed = default_speed
        self.playback_command = playback_command
        self.command: Optional[str] = None
        self.installed_voices: Dict[str, str] = {}  # language code -> voice name
        self._lock = asyncio.Lock()
        self.syntheses = 0
    
    @staticmethod
    def is_available() -> bool:
        return bool(shutil.which("espeak-ng") or shutil.which("espeak"))
    
    async def initialize(self):
        for command in ("espeak-ng", "espeak"):
            if await self._probe(command):
                self.command = command
                break
        
        if self.command is None:
            raise RuntimeError("Neither espeak-ng nor espeak available")
        
        await self._load_voices()
        logger.info("eSpeak synthesizer initialized",
                    command=self.command, voices=len(self.installed_voices))
    
    async def _probe(self, command: str) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                command, "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            await process.communicate()
        except OSError:
            return False
        return process.returncode == 0
    
    async def _load_voices(self):
        process = await asyncio.create_subprocess_exec(
            self.command, "--voices",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, _ = await process.communicate()
        if process.returncode != 0:
            logger.warning("Could not list eSpeak voices", command=self.command)
            return
        
        for line in stdout.decode(errors="replace").strip().split("\n")[1:]:  # skip header
            parts = line.split()
            if len(parts) >= 4:
                self.installed_voices[parts[1].lower()] = parts[3]
    
    def _resolve_voice(self, voice: Optional[str]) -> str:
        voice = (voice or self.default_voice).lower()
        espeak_voice = ESPEAK_VOICES.get(voice, voice)
        language = espeak_voice.split("+")[0]
        if self.installed_voices and language not in self.installed_voices:
            return self.default_voice
        return espeak_voice
    
    async def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        language: Optional[str] = None,
    ) -> SynthesizedAudio:
        espeak_voice = self._resolve_voice(voice or language)
        speed = speed or self.default_speed
        
        async with self._lock:
            with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as temp_file:
                temp_path = temp_file.name
            
            try:
                process = await asyncio.create_subprocess_exec(
                    self.command,
                    "-v", espeak_voice,
                    "-w", temp_path,
                    "-s", str(int(BASE_WORDS_PER_MINUTE * speed)),
                    text,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE
                )
                _, stderr = await process.communicate()
                
                if process.returncode != 0:
                    raise RuntimeError(
                        f"eSpeak exited with {process.returncode}: {stderr.decode(errors='replace').strip()}"
                    )
                
                samples, sample_rate = sf.read(temp_path, dtype="float32")
                
                if self.playback_command:
                    await self._play(temp_path)
            finally:
                try:
                    os.unlink(temp_path)
                except OSError:
                    logger.warning("Could not remove temporary audio file", path=temp_path)
        
        self.syntheses += 1
        return SynthesizedAudio(
            audio=encode_wav(samples, sample_rate),
            sample_rate=sample_rate,
            duration_ms=len(samples) / sample_rate * 1000,
            text=text,
            voice=voice or self.default_voice,
        )
    
    async def _play(self, path: str):
        """Play locally for on-device deployments; failures only log"""
        try:
            process = await asyncio.create_subprocess_exec(
                self.playback_command, path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
            _, stderr = await process.communicate()
            if process.returncode != 0:
                logger.warning("Local playback failed",
                               command=self.playback_command,
                               stderr=stderr.decode(errors="replace").strip())
        except OSError as e:
            logger.warning("Local playback unavailable", command=self.playback_command, error=str(e))
    
    def available_voices(self) -> List[VoiceProfile]:
        if not self.installed_voices:
            return list(VOICE_ALIASES.values())
        return [
            profile for alias, profile in VOICE_ALIASES.items()
            if ESPEAK_VOICES[alias].split("+")[0] in self.installed_voices
        ]
    
    async def dispose(self):
        logger.info("eSpeak synthesizer disposed", syntheses=self.syntheses)


def create_speech_synthesizer(
    engine: str = "auto",
    default_voice: str = "en",
    default_speed: float = 1.0,
    playback_command: Optional[str] = None,
) -> SpeechSynthesizer:
    """Pick a synthesis backend by name"""
    engine = engine.lower()
    if engine == "auto":
        engine = "espeak" if ESpeakSpeechSynthesizer.is_available() else "silent"
        if engine == "silent":
            logger.warning("eSpeak not installed, falling back to silent synthesis")
    
    if engine == "espeak":
        return ESpeakSpeechSynthesizer(default_voice, default_speed, playback_command)
    if engine == "silent":
        return SilentSpeechSynthesizer(default_voice=default_voice, default_speed=default_speed)
    raise ValueError(f"Unknown TTS engine: {engine}")
