"""Configuration settings for the GestureVoice bridge"""

from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""
    
    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False
    
    # CORS
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    
    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    
    # Session coordination
    health_check_interval_seconds: float = Field(default=10.0, gt=0)
    gesture_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    gesture_sequence_window_seconds: float = Field(default=3.0, gt=0)
    stage_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    
    # Gesture perception
    gesture_detection_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    gesture_latency_seconds: float = Field(default=0.0, ge=0.0)
    
    # Speech perception
    speech_latency_seconds: float = Field(default=0.8, ge=0.0)
    
    # Avatar
    avatar_time_scale: float = Field(default=1.0, ge=0.0)
    
    # Speech synthesis
    tts_engine: str = "auto"  # auto, espeak, silent
    tts_default_voice: str = "en"
    tts_default_language: str = "en"
    tts_default_speed: float = Field(default=1.0, gt=0)
    tts_playback_command: Optional[str] = None  # e.g. "aplay" for on-device playback
    tts_max_text_length: int = 1000
    
    # WebSocket
    ws_max_message_size: int = 10 * 1024 * 1024  # 10MB
    
    # Monitoring
    metrics_enabled: bool = True
    
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
