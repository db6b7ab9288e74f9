"""Gesture vocabulary and the word-to-gesture keyword table"""

from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_GESTURE = "unknown"
UNKNOWN_DESCRIPTION = "Unknown gesture"
UNRECOGNIZED_SENTENCE = "I detected a gesture, but I'm not sure what it means."

OPEN_HAND = [1.0, 1.0, 1.0, 1.0, 1.0]
FIST = [0.0, 0.0, 0.0, 0.0, 0.0]


class GestureEntry(BaseModel):
    """One sign in the vocabulary"""
    model_config = ConfigDict(frozen=True)
    
    name: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    category: str
    phrase: str    # short text used by sign-to-text
    sentence: str  # spoken text used by sign-to-voice
    handshape: Tuple[float, float, float, float, float] = tuple(OPEN_HAND)


def _entry(name, category, description, confidence, phrase, sentence, handshape=OPEN_HAND):
    return GestureEntry(
        name=name,
        category=category,
        description=description,
        confidence=confidence,
        phrase=phrase,
        sentence=sentence,
        handshape=tuple(handshape),
    )


_ENTRIES = [
    # Greetings
    _entry("hello", "greetings", "Open hand wave near the forehead", 0.9,
           "Hello", "Hello there! Nice to meet you."),
    _entry("goodbye", "greetings", "Open hand waving side to side", 0.85,
           "Goodbye", "Goodbye! Have a great day!"),
    _entry("good_morning", "greetings", "Flat hand rising from the chin, then arm rising like the sun", 0.8,
           "Good morning", "Good morning! How are you today?"),
    _entry("good_afternoon", "greetings", "Flat hand from the chin, then forearm held level", 0.8,
           "Good afternoon", "Good afternoon!"),
    _entry("good_evening", "greetings", "Flat hand from the chin, then hand dipping below the other arm", 0.8,
           "Good evening", "Good evening!"),
    _entry("good_night", "greetings", "Flat hand from the chin, then bent hand over the other arm", 0.8,
           "Good night", "Good night! Sleep well."),
    
    # Courtesy
    _entry("thank_you", "courtesy", "Flat hand moving forward from the chin", 0.8,
           "Thank you", "Thank you so much!"),
    _entry("please", "courtesy", "Flat hand circling on the chest", 0.75,
           "Please", "Please, if you don't mind."),
    _entry("sorry", "courtesy", "Fist circling on the chest", 0.8,
           "Sorry", "I'm sorry.", FIST),
    _entry("excuse_me", "courtesy", "Fingertips brushing across the other palm", 0.75,
           "Excuse me", "Excuse me."),
    
    # Responses
    _entry("yes", "responses", "Fist nodding up and down", 0.85,
           "Yes", "Yes, absolutely!", FIST),
    _entry("no", "responses", "Index and middle fingers closing onto the thumb", 0.8,
           "No", "No, thank you.", [1.0, 1.0, 1.0, 0.0, 0.0]),
    
    # Actions
    _entry("help", "actions", "Thumbs-up fist lifted by the other palm", 0.7,
           "Help", "I need help, please.", [1.0, 0.0, 0.0, 0.0, 0.0]),
    _entry("stop", "actions", "Edge of the flat hand chopping onto the other palm", 0.9,
           "Stop", "Please stop."),
    
    # Needs
    _entry("water", "needs", "W handshape tapping the chin", 0.8,
           "Water", "I would like some water, please.", [0.0, 1.0, 1.0, 1.0, 0.0]),
    _entry("food", "needs", "Bunched fingertips tapping the lips", 0.8,
           "Food", "I'm hungry. Can I have some food?", [0.5, 0.5, 0.5, 0.5, 0.5]),
    _entry("bathroom", "needs", "T handshape shaking side to side", 0.8,
           "Bathroom", "Where is the bathroom?", FIST),
    
    # Emotions
    _entry("happy", "emotions", "Flat hand brushing upward on the chest", 0.8,
           "Happy", "I'm happy!"),
    _entry("sad", "emotions", "Open hands sliding down in front of the face", 0.8,
           "Sad", "I'm feeling sad."),
    _entry("tired", "emotions", "Bent hands drooping at the shoulders", 0.8,
           "Tired", "I'm tired."),
    _entry("pain", "emotions", "Index fingers twisting toward each other", 0.8,
           "Pain", "I'm in pain.", [0.0, 1.0, 0.0, 0.0, 0.0]),
    
    # Relationships
    _entry("i_love_you", "relationships", "Thumb, index and pinky extended", 0.9,
           "I love you", "I love you too!", [1.0, 1.0, 0.0, 0.0, 1.0]),
    _entry("family", "relationships", "F handshapes circling outward", 0.75,
           "Family", "This is my family.", [0.0, 0.0, 1.0, 1.0, 1.0]),
    _entry("friend", "relationships", "Hooked index fingers linking twice", 0.75,
           "Friend", "You are my friend.", [0.0, 0.5, 0.0, 0.0, 0.0]),
    
    # Places
    _entry("home", "places", "Bunched fingertips touching the mouth then the cheek", 0.75,
           "Home", "I want to go home.", [0.5, 0.5, 0.5, 0.5, 0.5]),
    _entry("work", "places", "Fist tapping the back of the other fist", 0.75,
           "Work", "I'm going to work.", FIST),
    _entry("school", "places", "Flat hand clapping twice on the other palm", 0.75,
           "School", "I'm going to school."),
    
    # Time
    _entry("time", "time", "Index finger tapping the back of the wrist", 0.75,
           "Time", "What time is it?", [0.0, 1.0, 0.0, 0.0, 0.0]),
    _entry("today", "time", "Y hands dropping together", 0.75,
           "Today", "Today.", [1.0, 0.0, 0.0, 0.0, 1.0]),
    _entry("tomorrow", "time", "Thumb moving forward from the cheek", 0.75,
           "Tomorrow", "See you tomorrow.", [1.0, 0.0, 0.0, 0.0, 0.0]),
    _entry("yesterday", "time", "Thumb moving backward along the cheek", 0.75,
           "Yesterday", "That was yesterday.", [1.0, 0.0, 0.0, 0.0, 0.0]),
    
    # Comprehension
    _entry("understand", "comprehension", "Index finger flicking up beside the forehead", 0.75,
           "I understand", "I understand.", [0.0, 1.0, 0.0, 0.0, 0.0]),
    _entry("confused", "comprehension", "Claw hand circling at the forehead", 0.75,
           "Confused", "I'm confused.", [0.5, 0.5, 0.5, 0.5, 0.5]),
    _entry("repeat", "comprehension", "Bent hand flipping onto the other palm", 0.75,
           "Please repeat", "Could you repeat that, please?"),
    _entry("dont_understand", "comprehension", "Index finger flicking up then head shaking", 0.75,
           "I don't understand", "I don't understand.", [0.0, 1.0, 0.0, 0.0, 0.0]),
    _entry("slow_down", "comprehension", "Flat hand sliding slowly up the back of the other hand", 0.75,
           "Slow down", "Please slow down."),
    
    # Numbers
    _entry("zero", "numbers", "O handshape", 0.9, "Zero", "Zero.", [0.5, 0.5, 0.5, 0.5, 0.5]),
    _entry("one", "numbers", "Index finger up", 0.95, "One", "One.", [0.0, 1.0, 0.0, 0.0, 0.0]),
    _entry("two", "numbers", "Index and middle fingers up", 0.95, "Two", "Two.", [0.0, 1.0, 1.0, 0.0, 0.0]),
    _entry("three", "numbers", "Thumb, index and middle fingers up", 0.9, "Three", "Three.", [1.0, 1.0, 1.0, 0.0, 0.0]),
    _entry("four", "numbers", "Four fingers up, thumb tucked", 0.9, "Four", "Four.", [0.0, 1.0, 1.0, 1.0, 1.0]),
    _entry("five", "numbers", "All five fingers spread", 0.95, "Five", "Five."),
    _entry("six", "numbers", "Thumb touching the pinky", 0.85, "Six", "Six.", [0.5, 1.0, 1.0, 1.0, 0.5]),
    _entry("seven", "numbers", "Thumb touching the ring finger", 0.85, "Seven", "Seven.", [0.5, 1.0, 1.0, 0.5, 1.0]),
    _entry("eight", "numbers", "Thumb touching the middle finger", 0.85, "Eight", "Eight.", [0.5, 1.0, 0.5, 1.0, 1.0]),
    _entry("nine", "numbers", "Thumb touching the index finger", 0.85, "Nine", "Nine.", [0.5, 0.5, 1.0, 1.0, 1.0]),
    _entry("ten", "numbers", "Thumbs-up fist shaking", 0.85, "Ten", "Ten.", [1.0, 0.0, 0.0, 0.0, 0.0]),
    
    # Letters
    _entry("a", "letters", "Fist with the thumb alongside", 0.8, "A", "The letter A", [1.0, 0.0, 0.0, 0.0, 0.0]),
    _entry("b", "letters", "Flat hand, thumb folded across the palm", 0.85, "B", "The letter B", [0.0, 1.0, 1.0, 1.0, 1.0]),
    _entry("c", "letters", "Hand curved into a C", 0.8, "C", "The letter C", [0.5, 0.5, 0.5, 0.5, 0.5]),
    _entry("d", "letters", "Index up, other fingers touching the thumb", 0.8, "D", "The letter D", [0.5, 1.0, 0.5, 0.5, 0.5]),
    _entry("e", "letters", "Fingertips curled down onto the thumb", 0.8, "E", "The letter E", [0.0, 0.3, 0.3, 0.3, 0.3]),
]


# Ordered: the first keyword found in the text wins.
KEYWORD_GESTURES: List[Tuple[Tuple[str, ...], str]] = [
    # Greetings
    (("hello", "hi", "hey"), "hello"),
    (("goodbye", "bye", "see you"), "goodbye"),
    (("good morning",), "good_morning"),
    (("good afternoon",), "good_afternoon"),
    (("good evening",), "good_evening"),
    (("good night",), "good_night"),
    # Courtesy
    (("thank you", "thanks", "thank"), "thank_you"),
    (("please",), "please"),
    (("sorry",), "sorry"),
    (("excuse me",), "excuse_me"),
    # Responses
    (("yes", "yeah", "okay", "ok"), "yes"),
    (("no", "nope", "not"), "no"),
    # Actions
    (("help",), "help"),
    (("stop", "wait"), "stop"),
    # Needs
    (("water", "drink", "thirsty"), "water"),
    (("food", "eat", "hungry"), "food"),
    (("bathroom", "restroom", "toilet"), "bathroom"),
    # Emotions
    (("happy",), "happy"),
    (("sad",), "sad"),
    (("tired",), "tired"),
    (("pain", "hurt"), "pain"),
    # Relationships
    (("love you", "love"), "i_love_you"),
    (("family",), "family"),
    (("friend",), "friend"),
    # Places
    (("home",), "home"),
    (("work",), "work"),
    (("school",), "school"),
    # Time
    (("time",), "time"),
    (("today",), "today"),
    (("tomorrow",), "tomorrow"),
    (("yesterday",), "yesterday"),
    # Comprehension
    (("understand",), "understand"),
    (("confused",), "confused"),
    (("repeat",), "repeat"),
    (("dont understand", "don't understand"), "dont_understand"),
    (("slow down", "slower"), "slow_down"),
]

NUMBER_WORDS: List[Tuple[str, str]] = [
    ("zero", "0"), ("one", "1"), ("two", "2"), ("three", "3"), ("four", "4"),
    ("five", "5"), ("six", "6"), ("seven", "7"), ("eight", "8"), ("nine", "9"),
    ("ten", "10"),
]

FINGERSPELLING_LETTERS: List[str] = ["a", "b", "c", "d", "e"]


def keyword_map() -> Dict[str, str]:
    """Flattened keyword -> gesture name, in table order"""
    flat: Dict[str, str] = {}
    for keywords, gesture in KEYWORD_GESTURES:
        for keyword in keywords:
            flat.setdefault(keyword, gesture)
    return flat


def readable_name(name: str) -> str:
    return name.replace("_", " ").strip()


class GestureVocabulary:
    """Read-only catalogue of the signs the bridge knows"""
    
    def __init__(self, entries: List[GestureEntry] = None):
        entries = _ENTRIES if entries is None else entries
        self._entries: Dict[str, GestureEntry] = {entry.name: entry for entry in entries}
    
    def __contains__(self, name: object) -> bool:
        return name in self._entries
    
    def __iter__(self) -> Iterator[GestureEntry]:
        return iter(self._entries.values())
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def get(self, name: Optional[str]) -> Optional[GestureEntry]:
        if not name:
            return None
        return self._entries.get(name)
    
    def names(self) -> List[str]:
        return list(self._entries.keys())
    
    def describe(self, name: Optional[str]) -> str:
        """Human description, or 'Unknown gesture' on a miss"""
        entry = self.get(name)
        return entry.description if entry else UNKNOWN_DESCRIPTION
    
    def phrase_for(self, name: Optional[str]) -> Optional[str]:
        entry = self.get(name)
        return entry.phrase if entry else None
    
    def sentence_for(self, name: Optional[str]) -> str:
        """Spoken sentence for a gesture, with a readable fallback"""
        entry = self.get(name)
        if entry:
            return entry.sentence
        if not name or name == UNKNOWN_GESTURE:
            return UNRECOGNIZED_SENTENCE
        return f"I see the gesture: {readable_name(name)}"
    
    def supported_gestures(self) -> List[Dict[str, object]]:
        return [
            {
                "name": entry.name,
                "description": entry.description,
                "category": entry.category,
                "confidence": entry.confidence,
            }
            for entry in self._entries.values()
        ]


vocabulary = GestureVocabulary()
