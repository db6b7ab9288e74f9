"""Tests for the gesture vocabulary"""

from gesturevoice.avatar_engine import GESTURE_ANIMATIONS
from gesturevoice.gesture_recognizer import SIMULATED_GESTURES
from gesturevoice.vocabulary import (
    FINGERSPELLING_LETTERS,
    KEYWORD_GESTURES,
    NUMBER_WORDS,
    UNKNOWN_DESCRIPTION,
    UNRECOGNIZED_SENTENCE,
    keyword_map,
    vocabulary,
)


def test_keyword_targets_are_vocabulary_gestures():
    for _, gesture in KEYWORD_GESTURES:
        assert gesture in vocabulary, gesture
    for word, _ in NUMBER_WORDS:
        assert word in vocabulary, word
    for letter in FINGERSPELLING_LETTERS:
        assert letter in vocabulary, letter


def test_animation_and_simulation_tables_reference_vocabulary():
    assert set(GESTURE_ANIMATIONS) <= set(vocabulary.names())
    assert set(SIMULATED_GESTURES) <= set(vocabulary.names())


def test_describe_falls_back_for_unknown_names():
    assert vocabulary.describe("hello") == "Open hand wave near the forehead"
    assert vocabulary.describe("high_five") == UNKNOWN_DESCRIPTION
    assert vocabulary.describe(None) == UNKNOWN_DESCRIPTION


def test_sentences_and_phrases():
    assert vocabulary.sentence_for("thank_you") == "Thank you so much!"
    assert vocabulary.sentence_for("high_five") == "I see the gesture: high five"
    assert vocabulary.sentence_for("unknown") == UNRECOGNIZED_SENTENCE
    assert vocabulary.phrase_for("good_morning") == "Good morning"
    assert vocabulary.phrase_for("unknown") is None


def test_keyword_map_keeps_first_mapping():
    flat = keyword_map()
    assert flat["hi"] == "hello"
    assert flat["thanks"] == "thank_you"
    assert flat["don't understand"] == "dont_understand"
    assert list(flat)[0] == "hello"


def test_supported_gestures_listing():
    listing = vocabulary.supported_gestures()
    assert len(listing) == len(vocabulary)
    assert {"name", "description", "category", "confidence"} <= set(listing[0])
