"""
GestureVoice Bridge
Real-time sign language <-> voice translation over WebSocket, with a 3D avatar
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import structlog

from .avatar_engine import Avatar3DPoseGenerator
from .config import settings
from .gesture_recognizer import SimulatedGestureRecognizer
from .keyword_extractor import KeywordGestureMapper
from .middleware.metrics import MetricsMiddleware
from .routes import health, sign_language, voice
from .session_coordinator import SessionCoordinator
from .speech_recognizer import SimulatedSpeechRecognizer
from .speech_synthesizer import create_speech_synthesizer
from .translation_engine import TranslationEngine
from .utils.logging import setup_logging
from .vocabulary import vocabulary
from .websocket.handlers import WebSocketHandler
from .websocket.manager import ConnectionManager

# Setup structured logging
setup_logging()
logger = structlog.get_logger(__name__)


def build_coordinator() -> SessionCoordinator:
    """Wire the configured stages into a coordinator"""
    return SessionCoordinator(
        gesture_recognizer=SimulatedGestureRecognizer(
            detection_rate=settings.gesture_detection_rate,
            latency=settings.gesture_latency_seconds,
        ),
        speech_recognizer=SimulatedSpeechRecognizer(
            latency=settings.speech_latency_seconds,
            language=settings.tts_default_language,
        ),
        speech_synthesizer=create_speech_synthesizer(
            settings.tts_engine,
            default_voice=settings.tts_default_voice,
            default_speed=settings.tts_default_speed,
            playback_command=settings.tts_playback_command,
        ),
        avatar=Avatar3DPoseGenerator(time_scale=settings.avatar_time_scale),
        text_mapper=KeywordGestureMapper(),
        translation_engine=TranslationEngine(
            vocabulary,
            window_seconds=settings.gesture_sequence_window_seconds,
        ),
        confidence_threshold=settings.gesture_confidence_threshold,
        health_check_interval=settings.health_check_interval_seconds,
        stage_timeout=settings.stage_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("🚀 Starting GestureVoice bridge", port=settings.port)
    
    app.state.coordinator = build_coordinator()
    app.state.connection_manager = ConnectionManager()
    app.state.ws_handler = WebSocketHandler(app.state.coordinator, app.state.connection_manager)
    
    # Any stage failing to initialize aborts startup
    await app.state.coordinator.initialize()
    
    logger.info("✅ GestureVoice bridge startup complete",
                gestures=len(vocabulary),
                synthesizer=type(app.state.coordinator.speech_synthesizer).__name__)
    
    yield
    
    # Shutdown
    logger.info("🛑 Shutting down GestureVoice bridge")
    app.state.coordinator.stop_accepting()
    await app.state.ws_handler.drain()
    await app.state.coordinator.shutdown()
    await app.state.connection_manager.disconnect_all()
    logger.info("✅ GestureVoice bridge shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="GestureVoice Bridge",
    description="Real-time sign language and voice translation with a 3D avatar",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(MetricsMiddleware)

# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(sign_language.router, prefix="/api/sign-language", tags=["sign-language"])
app.include_router(voice.router, prefix="/api/voice", tags=["voice"])


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time translation"""
    connection_id = str(uuid.uuid4())
    
    try:
        await app.state.connection_manager.connect(websocket, connection_id)
        await app.state.ws_handler.handle_connection(websocket, connection_id)
    except Exception as e:
        logger.error("WebSocket connection error", error=str(e), connection_id=connection_id)
    finally:
        await app.state.connection_manager.disconnect(connection_id)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Global HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code,
            "path": request.url.path
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "path": request.url.path
        }
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "GestureVoice Bridge",
        "version": "1.0.0",
        "status": "running",
        "websocket": "/ws",
        "docs": "/docs" if settings.debug else "disabled"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gesturevoice.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
