"""Voice HTTP endpoints"""

import io
from typing import Optional

import soundfile as sf
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
import structlog

from ..config import settings
from ..errors import AudioFormatError
from ..models import AudioClip

logger = structlog.get_logger(__name__)
router = APIRouter()


class TextToSpeechRequest(BaseModel):
    text: str
    voice: Optional[str] = None
    speed: Optional[float] = Field(default=None, gt=0.0, le=4.0)
    language: Optional[str] = None


@router.post("/text-to-speech")
async def text_to_speech(request: Request, body: TextToSpeechRequest):
    """Synthesize text and return a WAV file"""
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Text is required")
    if len(text) > settings.tts_max_text_length:
        raise HTTPException(
            status_code=400,
            detail=f"Text too long (max {settings.tts_max_text_length} characters)"
        )
    
    synthesizer = request.app.state.coordinator.speech_synthesizer
    try:
        audio = await synthesizer.synthesize(text, voice=body.voice, speed=body.speed, language=body.language)
    except Exception as e:
        logger.error("Text to speech failed", error=str(e), text_length=len(text))
        raise HTTPException(status_code=500, detail="Failed to generate speech")
    
    return Response(
        content=audio.audio,
        media_type="audio/wav",
        headers={
            "X-Audio-Duration-Ms": f"{audio.duration_ms:.0f}",
            "X-Voice": audio.voice,
        },
    )


@router.post("/speech-to-text")
async def speech_to_text(request: Request, audio: UploadFile = File(...)):
    """Transcribe an uploaded audio file"""
    content = await audio.read()
    if not content:
        raise HTTPException(status_code=400, detail="No audio provided")
    
    try:
        info = sf.info(io.BytesIO(content))
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=f"Unreadable audio file: {e}")
    
    clip = AudioClip(audio=content, duration=info.duration, sample_rate=info.samplerate)
    recognizer = request.app.state.coordinator.speech_recognizer
    
    try:
        observation = await recognizer.recognize(clip)
    except AudioFormatError as e:
        raise HTTPException(status_code=400, detail=f"Invalid audio format: {e}")
    except Exception as e:
        logger.error("Speech to text failed", error=str(e), filename=audio.filename)
        raise HTTPException(status_code=500, detail="Failed to process voice input")
    
    if observation is None:
        return {"transcribed": False, "text": "", "confidence": 0.0}
    return {
        "transcribed": True,
        "text": observation.text,
        "confidence": observation.confidence,
        "language": observation.language,
        "duration": info.duration,
        "sample_rate": info.samplerate,
    }


@router.get("/voices")
async def list_voices(request: Request):
    synthesizer = request.app.state.coordinator.speech_synthesizer
    voices = [voice.model_dump() for voice in synthesizer.available_voices()]
    return {"voices": voices, "total": len(voices)}
