"""Free text to gesture keyword extraction"""

from typing import Optional

import structlog

from .stages import GestureTextMapper
from .vocabulary import FINGERSPELLING_LETTERS, KEYWORD_GESTURES, NUMBER_WORDS

logger = structlog.get_logger(__name__)


def extract_gesture_from_text(text: Optional[str]) -> Optional[str]:
    """Return the first gesture whose keyword occurs in ``text``.

    Matching is case-insensitive substring search over the keyword table
    in its declared order, then number words or their digits in ascending
    order, then an explicit ``letter x`` or a lone letter.
    """
    if not text:
        return None
    
    lowered = text.lower().strip()
    if not lowered:
        return None
    
    for keywords, gesture in KEYWORD_GESTURES:
        for keyword in keywords:
            if keyword in lowered:
                return gesture
    
    for word, digits in NUMBER_WORDS:
        if word in lowered or digits in lowered:
            return word
    
    for letter in FINGERSPELLING_LETTERS:
        if f"letter {letter}" in lowered or lowered == letter:
            return letter
    
    return None


class KeywordGestureMapper(GestureTextMapper):
    """Gesture text mapper backed by the keyword table"""
    
    def map_text(self, text: str) -> Optional[str]:
        gesture = extract_gesture_from_text(text)
        logger.debug("Mapped text to gesture", text=text, gesture=gesture)
        return gesture
