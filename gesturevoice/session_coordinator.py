"""Session coordinator: routes client events through the perception and generation stages"""

import asyncio
import time
from contextlib import nullcontext
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

import structlog
from pydantic import ValidationError

from .errors import (
    DISPATCH_CODES,
    ERROR_MESSAGES,
    DispatchError,
    ErrorCode,
    InputValidationError,
    StageTimeoutError,
)
from .middleware.metrics import (
    observe_stage_duration,
    record_dispatch_error,
    record_dropped_event,
    record_event,
    record_session_closed,
    record_session_opened,
)
from .models import (
    AudioDataPayload,
    AvatarCustomizationPayload,
    GestureObservation,
    ModalityType,
    PlayGesturePayload,
    SpeakTextPayload,
    SynthesizedAudio,
    TranslationRequestPayload,
    TranslationResult,
    VideoFramePayload,
    now_ms,
)
from .session_registry import Emitter, Session, SessionRegistry, StageCategory
from .stages import (
    AvatarPoseGenerator,
    GestureRecognizer,
    GestureTextMapper,
    PipelineStage,
    SpeechRecognizer,
    SpeechSynthesizer,
)
from .translation_engine import TranslationEngine
from .vocabulary import UNKNOWN_GESTURE, GestureVocabulary, vocabulary as default_vocabulary

logger = structlog.get_logger(__name__)

VOICE_TO_SIGN_MATCH_CONFIDENCE = 0.85
VOICE_TO_SIGN_FALLBACK_CONFIDENCE = 0.6
TEXT_TO_VOICE_CONFIDENCE = 0.9
TEXT_TO_SIGN_FALLBACK_CONFIDENCE = 0.7

Handler = Callable[[Session, Any], Awaitable[None]]


class SessionCoordinator:
    """Owns every session and turns inbound events into outbound ones.

    Each inbound event runs through exactly one dispatch path. Gesture and
    speech paths are gated by a per-session busy flag so a slow stage sheds
    load instead of queueing it. Any failure on a path becomes exactly one
    ``error`` event for the originating connection; nothing propagates to
    the transport or to other sessions.
    """
    
    def __init__(
        self,
        gesture_recognizer: GestureRecognizer,
        speech_recognizer: SpeechRecognizer,
        speech_synthesizer: SpeechSynthesizer,
        avatar: AvatarPoseGenerator,
        text_mapper: GestureTextMapper,
        translation_engine: TranslationEngine = None,
        vocabulary: GestureVocabulary = None,
        confidence_threshold: float = 0.7,
        health_check_interval: float = 10.0,
        stage_timeout: Optional[float] = None,
        registry: SessionRegistry = None,
    ):
        self.gesture_recognizer = gesture_recognizer
        self.speech_recognizer = speech_recognizer
        self.speech_synthesizer = speech_synthesizer
        self.avatar = avatar
        self.text_mapper = text_mapper
        self.vocabulary = vocabulary or default_vocabulary
        self.translation_engine = translation_engine or TranslationEngine(self.vocabulary)
        self.confidence_threshold = confidence_threshold
        self.health_check_interval = health_check_interval
        self.stage_timeout = stage_timeout
        self.registry = registry or SessionRegistry()
        
        self._tasks: Set[asyncio.Task] = set()
        self._initialized = False
        self._accepting = True
        self._disposed = False
        
        self._routes: Dict[str, Tuple[Handler, Optional[StageCategory]]] = {
            "video-frame": (self._handle_video_frame, StageCategory.GESTURE),
            "audio-data": (self._handle_audio_data, StageCategory.SPEECH),
            "play-gesture": (self._handle_play_gesture, None),
            "speak-text": (self._handle_speak_text, None),
            "request-translation": (self._handle_request_translation, None),
            "customize-avatar": (self._handle_customize_avatar, None),
        }
    
    @property
    def stages(self) -> List[PipelineStage]:
        return [
            self.gesture_recognizer,
            self.speech_recognizer,
            self.speech_synthesizer,
            self.avatar,
            self.text_mapper,
        ]
    
    @property
    def accepting(self) -> bool:
        return self._accepting
    
    @property
    def is_ready(self) -> bool:
        return self._initialized and self._accepting
    
    # Lifecycle
    
    async def initialize(self):
        """Initialize all stages concurrently; any failure propagates"""
        logger.info("Initializing pipeline stages", stages=[stage.name for stage in self.stages])
        await asyncio.gather(*(stage.initialize() for stage in self.stages))
        self._initialized = True
        logger.info("✅ Pipeline stages ready")
    
    def stop_accepting(self):
        """Refuse new connections and events; in-flight work keeps running"""
        self._accepting = False
    
    async def shutdown(self):
        """Stop accepting work, drop sessions, cancel timers, dispose stages once"""
        if self._disposed:
            return
        self._disposed = True
        self._accepting = False
        
        for _ in range(len(self.registry)):
            record_session_closed()
        self.registry.clear()
        
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        
        results = await asyncio.gather(
            *(stage.dispose() for stage in self.stages),
            return_exceptions=True
        )
        for stage, result in zip(self.stages, results):
            if isinstance(result, BaseException):
                logger.error("Stage disposal failed", stage=stage.name, error=str(result))
        
        logger.info("Session coordinator shut down")
    
    # Connection events
    
    async def connect(self, connection_id: str, emitter: Emitter) -> Optional[Session]:
        """Register a session, greet it and start its liveness ticks"""
        if not self._accepting:
            logger.warning("Rejecting connection during shutdown", connection_id=connection_id)
            return None
        
        if connection_id in self.registry:
            await self.disconnect(connection_id)
        
        session = Session(connection_id, emitter)
        self.registry.insert(session)
        record_session_opened()
        logger.info("Client connected", connection_id=connection_id, session_id=session.session_id)
        
        await self._emit(session, "system-ready", {
            "avatar_model": self.avatar.get_avatar_model(),
            "supported_gestures": self.vocabulary.supported_gestures(),
            "available_voices": [voice.model_dump() for voice in self.speech_synthesizer.available_voices()],
            "session_id": session.session_id,
            "timestamp": now_ms(),
        })
        
        self._spawn(self._liveness_loop(session))
        return session
    
    async def disconnect(self, connection_id: str):
        """Forget a session; in-flight work for it finishes silently"""
        session = self.registry.remove(connection_id)
        if session is None:
            return
        record_session_closed()
        logger.info("Client disconnected",
                    connection_id=connection_id,
                    session_id=session.session_id,
                    duration_seconds=round(time.time() - session.created_at, 1))
    
    async def dispatch(self, connection_id: str, event: str, payload: Any = None):
        """Run one inbound event to completion"""
        if not self._accepting:
            return
        
        session = self.registry.get(connection_id)
        if session is None:
            logger.debug("Event for unknown connection", connection_id=connection_id, event_name=event)
            return
        
        route = self._routes.get(event)
        if route is None:
            record_event("unknown")
            logger.warning("Unknown event type", event_name=event, connection_id=connection_id)
            await self._emit_error(session, ErrorCode.UNKNOWN_EVENT, f"Unknown event type: {event}")
            return
        
        record_event(event)
        handler, category = route
        
        guard = nullcontext()
        if category is not None:
            guard = session.claim_stage(category)
            if guard is None:
                record_dropped_event(category.value)
                logger.debug("Stage busy, dropping event", event_name=event, connection_id=connection_id)
                return
        
        with guard:
            session.touch()
            try:
                await handler(session, payload if payload is not None else {})
            except Exception as e:
                await self._report_failure(session, event, e)
    
    # Dispatch paths
    
    async def _handle_video_frame(self, session: Session, payload: Any):
        frame = VideoFramePayload.model_validate(payload)
        observation = await self._perceive(
            StageCategory.GESTURE,
            self.gesture_recognizer.recognize(frame.frame)
        )
        if observation is None:
            return
        
        update = {"session_id": session.session_id}
        gesture = observation.recognized_gesture
        if gesture and gesture != UNKNOWN_GESTURE:
            update["gesture_description"] = self.vocabulary.describe(gesture)
        observation = observation.model_copy(update=update)
        
        logger.info("Sign detected",
                    connection_id=session.connection_id,
                    gesture=gesture,
                    confidence=observation.confidence)
        await self._emit(session, "sign-detected", observation.model_dump(mode="json"))
        
        pose = await self.avatar.generate_pose(observation)
        await self._emit(session, "avatar-pose-update", pose.model_dump(mode="json"))
        
        if self._should_voice(observation):
            await self._sign_to_voice(session, observation)
    
    def _should_voice(self, observation: GestureObservation) -> bool:
        gesture = observation.recognized_gesture
        return (
            bool(gesture)
            and gesture != UNKNOWN_GESTURE
            and observation.confidence > self.confidence_threshold
        )
    
    async def _sign_to_voice(self, session: Session, observation: GestureObservation):
        gesture = observation.recognized_gesture
        try:
            voice_text = self.translation_engine.sentence_for_gesture(gesture)
            audio = await self.speech_synthesizer.synthesize(voice_text)
        except Exception as e:
            raise DispatchError(ErrorCode.AUTO_SIGN_TO_VOICE_ERROR) from e
        
        result = TranslationResult(
            original_type=ModalityType.SIGN,
            translated_text=voice_text,
            confidence=observation.confidence,
            session_id=session.session_id,
        )
        await self._emit(session, "translation-result", result.model_dump(mode="json"))
        await self._emit(session, "auto-voice-played", {
            "gesture": gesture,
            "voice_text": voice_text,
            "confidence": observation.confidence,
            **self._audio_fields(audio),
            "timestamp": now_ms(),
        })
    
    async def _handle_audio_data(self, session: Session, payload: Any):
        clip = AudioDataPayload.model_validate(payload).to_clip(session.session_id)
        observation = await self._perceive(
            StageCategory.SPEECH,
            self.speech_recognizer.recognize(clip)
        )
        if observation is None or not observation.text.strip():
            return
        
        logger.info("Speech recognized",
                    connection_id=session.connection_id,
                    text=observation.text,
                    confidence=observation.confidence)
        await self._emit(session, "text-recognized", {
            "text": observation.text,
            "confidence": observation.confidence,
            "language": observation.language,
            "session_id": session.session_id,
            "timestamp": observation.timestamp,
        })
        
        await self._voice_to_sign(session, observation.text)
    
    async def _voice_to_sign(self, session: Session, text: str):
        try:
            gesture = self.text_mapper.map_text(text)
            if gesture:
                await self.avatar.play_sequence(gesture)
                translated, confidence = f"Sign gesture: {gesture}", VOICE_TO_SIGN_MATCH_CONFIDENCE
            else:
                translated = self.translation_engine.fingerspelling_description(text)
                confidence = VOICE_TO_SIGN_FALLBACK_CONFIDENCE
        except Exception as e:
            raise DispatchError(ErrorCode.AUTO_VOICE_TO_SIGN_ERROR) from e
        
        result = TranslationResult(
            original_type=ModalityType.VOICE,
            translated_text=translated,
            confidence=confidence,
            session_id=session.session_id,
        )
        await self._emit(session, "translation-result", result.model_dump(mode="json"))
        
        if gesture:
            await self._emit(session, "avatar-gesture", self._avatar_gesture(gesture, text))
        else:
            await self._emit(session, "sign-description", {
                "original_text": text,
                "sign_description": translated,
                "timestamp": now_ms(),
            })
    
    async def _handle_play_gesture(self, session: Session, payload: Any):
        request = PlayGesturePayload.model_validate(payload)
        await self.avatar.play_sequence(request.gesture)
        
        voice_text = self.translation_engine.sentence_for_gesture(request.gesture)
        audio = await self.speech_synthesizer.synthesize(voice_text)
        
        await self._emit(session, "gesture-played", {
            "gesture": request.gesture,
            "voice_text": voice_text,
            "avatar_animation": True,
            **self._audio_fields(audio),
            "timestamp": now_ms(),
        })
    
    async def _handle_speak_text(self, session: Session, payload: Any):
        request = SpeakTextPayload.model_validate(payload)
        audio = await self.speech_synthesizer.synthesize(
            request.text,
            voice=request.voice,
            speed=request.speed,
            language=request.language,
        )
        await self._emit(session, "speech-generated", self._speech_generated(request.text, audio))
    
    async def _handle_request_translation(self, session: Session, payload: Any):
        request = TranslationRequestPayload.model_validate(payload)
        
        if request.target_type == ModalityType.VOICE:
            result = TranslationResult(
                original_type=ModalityType.SIGN,
                translated_text=request.text,
                confidence=TEXT_TO_VOICE_CONFIDENCE,
                session_id=session.session_id,
            )
            await self._emit(session, "translation-result", result.model_dump(mode="json"))
            audio = await self.speech_synthesizer.synthesize(request.text)
            await self._emit(session, "speech-generated", self._speech_generated(request.text, audio))
            return
        
        sign = self.translation_engine.text_to_sign(request.text)
        if sign is not None:
            translated, confidence = sign.sign_description, sign.confidence
        else:
            translated = f"Sign representation: {request.text}"
            confidence = TEXT_TO_SIGN_FALLBACK_CONFIDENCE
        
        gesture = self.text_mapper.map_text(request.text)
        if gesture:
            await self.avatar.play_sequence(gesture)
            await self._emit(session, "avatar-gesture", self._avatar_gesture(gesture, request.text))
        
        result = TranslationResult(
            original_type=ModalityType.VOICE,
            translated_text=translated,
            confidence=confidence,
            session_id=session.session_id,
        )
        await self._emit(session, "translation-result", result.model_dump(mode="json"))
    
    async def _handle_customize_avatar(self, session: Session, payload: Any):
        request = AvatarCustomizationPayload.model_validate(payload)
        session.avatar_settings.update(request.settings)
        await self._emit(session, "avatar-customized", {
            "avatar_model": self.avatar.get_avatar_model(),
            "settings": dict(session.avatar_settings),
            "timestamp": now_ms(),
        })
    
    # Helpers
    
    async def _perceive(self, category: StageCategory, awaitable: Awaitable):
        """Await a gated perception call, applying the optional timeout"""
        start = time.perf_counter()
        try:
            if self.stage_timeout is None:
                return await awaitable
            try:
                return await asyncio.wait_for(awaitable, self.stage_timeout)
            except asyncio.TimeoutError as e:
                raise StageTimeoutError(f"{category.value} exceeded {self.stage_timeout}s") from e
        finally:
            observe_stage_duration(category.value, time.perf_counter() - start)
    
    def _avatar_gesture(self, gesture: str, text: str) -> Dict[str, Any]:
        return {
            "gesture": gesture,
            "original_text": text,
            "gesture_description": self.vocabulary.describe(gesture),
            "timestamp": now_ms(),
        }
    
    @staticmethod
    def _audio_fields(audio: SynthesizedAudio) -> Dict[str, Any]:
        return {
            "audio_data": audio.to_base64(),
            "audio_format": audio.audio_format,
            "duration_ms": audio.duration_ms,
        }
    
    def _speech_generated(self, text: str, audio: SynthesizedAudio) -> Dict[str, Any]:
        return {
            "text": text,
            "voice": audio.voice,
            **self._audio_fields(audio),
            "auto_played": True,
            "timestamp": now_ms(),
        }
    
    async def _report_failure(self, session: Session, event: str, exc: Exception):
        codes = DISPATCH_CODES[event]
        log = logger.bind(event_name=event, connection_id=session.connection_id)
        
        if isinstance(exc, (ValidationError, InputValidationError)):
            code = codes.invalid
            detail = exc.errors()[0]["msg"] if isinstance(exc, ValidationError) else str(exc)
            message = f"{ERROR_MESSAGES[code]}: {detail}"
            log.warning("Rejected invalid event", code=code.value, error=detail)
        elif isinstance(exc, StageTimeoutError) and codes.timeout is not None:
            code = codes.timeout
            message = ERROR_MESSAGES[code]
            log.error("Stage timed out", code=code.value, error=str(exc))
        elif isinstance(exc, DispatchError):
            code = exc.code
            message = exc.message
            log.error("Chained step failed", code=code.value, exc_info=exc)
        else:
            code = codes.failure
            message = ERROR_MESSAGES[code]
            log.error("Event processing failed", code=code.value, exc_info=exc)
        
        await self._emit_error(session, code, message)
    
    async def _emit_error(self, session: Session, code: ErrorCode, message: str):
        record_dispatch_error(code.value)
        await self._emit(session, "error", {"message": message, "code": code.value})
    
    async def _emit(self, session: Session, event: str, payload: Dict[str, Any]) -> bool:
        """Send to a live session; a no-op once the session is gone"""
        if self.registry.get(session.connection_id) is not session:
            logger.debug("Skipping event for closed session", event_name=event, connection_id=session.connection_id)
            return False
        try:
            await session.emitter(event, payload)
        except Exception as e:
            logger.warning("Failed to emit event", event_name=event, connection_id=session.connection_id, error=str(e))
            return False
        return True
    
    async def _liveness_loop(self, session: Session):
        while True:
            await asyncio.sleep(self.health_check_interval)
            if self.registry.get(session.connection_id) is not session:
                break
            await self._emit(session, "health-check", {
                "timestamp": now_ms(),
                "connected_clients": len(self.registry),
                "processing_status": session.processing_status(),
                "system_status": "operational",
            })
    
    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
    
    def get_system_health(self) -> Dict[str, Any]:
        return {
            "status": "operational" if self.is_ready else ("starting" if self._accepting else "stopped"),
            "connected_clients": len(self.registry),
            "stages": {stage.name: type(stage).__name__ for stage in self.stages},
            "sessions": [
                {
                    "connection_id": session.connection_id,
                    "session_id": session.session_id,
                    "last_activity": session.last_activity,
                    "processing_status": session.processing_status(),
                }
                for session in self.registry.snapshot()
            ],
        }
