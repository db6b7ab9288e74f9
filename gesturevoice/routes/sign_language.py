"""Sign language HTTP endpoints"""

import base64
from typing import List

import numpy as np
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field
import structlog

from ..models import GestureObservation, Point3D, now_ms
from ..translation_engine import HAND_POINTS

logger = structlog.get_logger(__name__)
router = APIRouter()

MAX_IMAGE_BYTES = 10 * 1024 * 1024


class TranslateRequest(BaseModel):
    landmarks: List[Point3D] = Field(min_length=1)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


@router.get("/gestures")
async def list_gestures(request: Request):
    """Signs the bridge can recognize and animate"""
    vocabulary = request.app.state.coordinator.vocabulary
    gestures = vocabulary.supported_gestures()
    return {"gestures": gestures, "total": len(gestures)}


@router.post("/detect")
async def detect_gesture(request: Request, image: UploadFile = File(...)):
    """One-shot recognition of an uploaded frame"""
    content = await image.read()
    if not content:
        raise HTTPException(status_code=400, detail="No image provided")
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Image too large")
    
    coordinator = request.app.state.coordinator
    frame = base64.b64encode(content).decode("ascii")
    
    try:
        observation = await coordinator.gesture_recognizer.recognize(frame)
    except Exception as e:
        logger.error("Sign detection failed", error=str(e), filename=image.filename)
        raise HTTPException(status_code=500, detail="Failed to process sign language")
    
    if observation is None:
        return {"detected": False, "landmarks": [], "confidence": 0.0, "gesture": None, "timestamp": now_ms()}
    
    gesture = None
    if len(observation.landmarks) >= HAND_POINTS:
        points = observation.landmarks[:HAND_POINTS]
        name, confidence = coordinator.translation_engine.classifier.classify(np.asarray(points, dtype=float))
        gesture = {
            "name": name,
            "confidence": confidence,
            "description": coordinator.vocabulary.describe(name),
        }
    
    return {
        "detected": True,
        "landmarks": observation.landmarks,
        "confidence": observation.confidence,
        "gesture": gesture,
        "timestamp": observation.timestamp,
    }


@router.post("/translate")
async def translate_landmarks(request: Request, body: TranslateRequest):
    """Translate one hand's landmarks to text"""
    engine = request.app.state.coordinator.translation_engine
    observation = GestureObservation(landmarks=body.landmarks, confidence=body.confidence)
    result = engine.sign_to_text(observation)
    
    if result is None:
        return {"translated": False, "text": None, "confidence": 0.0, "gesture": None}
    return {"translated": True, **result.model_dump()}


@router.get("/config")
async def sign_language_config(request: Request):
    coordinator = request.app.state.coordinator
    return {
        "confidence_threshold": coordinator.confidence_threshold,
        "sequence_window_seconds": coordinator.translation_engine.window_seconds,
        "recent_gestures": coordinator.translation_engine.gesture_sequence(),
        "landmark_points_per_hand": HAND_POINTS,
    }
