"""Error codes and exceptions raised along the dispatch paths"""

from enum import Enum
from typing import NamedTuple, Optional


class ErrorCode(str, Enum):
    """Machine-readable codes carried by outbound ``error`` events"""
    
    # video-frame
    VIDEO_FRAME_INVALID = "VIDEO_FRAME_INVALID"
    SIGN_PROCESSING_ERROR = "SIGN_PROCESSING_ERROR"
    SIGN_PROCESSING_TIMEOUT = "SIGN_PROCESSING_TIMEOUT"
    AUTO_SIGN_TO_VOICE_ERROR = "AUTO_SIGN_TO_VOICE_ERROR"
    
    # audio-data
    AUDIO_FORMAT_ERROR = "AUDIO_FORMAT_ERROR"
    VOICE_PROCESSING_ERROR = "VOICE_PROCESSING_ERROR"
    VOICE_PROCESSING_TIMEOUT = "VOICE_PROCESSING_TIMEOUT"
    AUTO_VOICE_TO_SIGN_ERROR = "AUTO_VOICE_TO_SIGN_ERROR"
    
    # play-gesture
    PLAY_GESTURE_INVALID = "PLAY_GESTURE_INVALID"
    GESTURE_ANIMATION_ERROR = "GESTURE_ANIMATION_ERROR"
    
    # speak-text
    SPEAK_TEXT_INVALID = "SPEAK_TEXT_INVALID"
    TTS_ERROR = "TTS_ERROR"
    
    # request-translation
    TRANSLATION_REQUEST_INVALID = "TRANSLATION_REQUEST_INVALID"
    TRANSLATION_ERROR = "TRANSLATION_ERROR"
    
    # customize-avatar
    AVATAR_CUSTOMIZATION_INVALID = "AVATAR_CUSTOMIZATION_INVALID"
    AVATAR_CUSTOMIZATION_ERROR = "AVATAR_CUSTOMIZATION_ERROR"
    
    # transport
    UNKNOWN_EVENT = "UNKNOWN_EVENT"
    INVALID_MESSAGE = "INVALID_MESSAGE"


ERROR_MESSAGES = {
    ErrorCode.VIDEO_FRAME_INVALID: "Invalid video frame",
    ErrorCode.SIGN_PROCESSING_ERROR: "Failed to process sign language",
    ErrorCode.SIGN_PROCESSING_TIMEOUT: "Sign language processing timed out",
    ErrorCode.AUTO_SIGN_TO_VOICE_ERROR: "Failed to convert sign to voice",
    ErrorCode.AUDIO_FORMAT_ERROR: "Invalid audio format",
    ErrorCode.VOICE_PROCESSING_ERROR: "Failed to process voice input",
    ErrorCode.VOICE_PROCESSING_TIMEOUT: "Voice processing timed out",
    ErrorCode.AUTO_VOICE_TO_SIGN_ERROR: "Failed to convert voice to sign",
    ErrorCode.PLAY_GESTURE_INVALID: "Invalid gesture request",
    ErrorCode.GESTURE_ANIMATION_ERROR: "Failed to play gesture animation",
    ErrorCode.SPEAK_TEXT_INVALID: "Invalid text-to-speech request",
    ErrorCode.TTS_ERROR: "Failed to generate speech",
    ErrorCode.TRANSLATION_REQUEST_INVALID: "Invalid translation request",
    ErrorCode.TRANSLATION_ERROR: "Translation failed",
    ErrorCode.AVATAR_CUSTOMIZATION_INVALID: "Invalid avatar settings",
    ErrorCode.AVATAR_CUSTOMIZATION_ERROR: "Failed to customize avatar",
    ErrorCode.UNKNOWN_EVENT: "Unknown event type",
    ErrorCode.INVALID_MESSAGE: "Invalid JSON format",
}


class DispatchCodes(NamedTuple):
    """Codes reported by one inbound event's dispatch path"""
    invalid: ErrorCode
    failure: ErrorCode
    timeout: Optional[ErrorCode] = None


DISPATCH_CODES = {
    "video-frame": DispatchCodes(
        ErrorCode.VIDEO_FRAME_INVALID,
        ErrorCode.SIGN_PROCESSING_ERROR,
        ErrorCode.SIGN_PROCESSING_TIMEOUT,
    ),
    "audio-data": DispatchCodes(
        ErrorCode.AUDIO_FORMAT_ERROR,
        ErrorCode.VOICE_PROCESSING_ERROR,
        ErrorCode.VOICE_PROCESSING_TIMEOUT,
    ),
    "play-gesture": DispatchCodes(ErrorCode.PLAY_GESTURE_INVALID, ErrorCode.GESTURE_ANIMATION_ERROR),
    "speak-text": DispatchCodes(ErrorCode.SPEAK_TEXT_INVALID, ErrorCode.TTS_ERROR),
    "request-translation": DispatchCodes(
        ErrorCode.TRANSLATION_REQUEST_INVALID,
        ErrorCode.TRANSLATION_ERROR,
    ),
    "customize-avatar": DispatchCodes(
        ErrorCode.AVATAR_CUSTOMIZATION_INVALID,
        ErrorCode.AVATAR_CUSTOMIZATION_ERROR,
    ),
}


class InputValidationError(ValueError):
    """Inbound payload failed validation"""


class AudioFormatError(InputValidationError):
    """Audio clip rejected by format validation"""


class StageTimeoutError(Exception):
    """A perception stage did not answer within the configured timeout"""


class DispatchError(Exception):
    """A chained step failed; carries the code to report for it"""
    
    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code.value)
        super().__init__(self.message)
