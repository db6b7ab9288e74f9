"""Tests for the translation engine"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from gesturevoice.models import GestureObservation
from gesturevoice.translation_engine import (
    FINGERSPELL_CONFIDENCE,
    LETTER_DURATION_MS,
    HeuristicShapeClassifier,
    TranslationEngine,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0
    
    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return TranslationEngine(window_seconds=3.0, clock=clock)


def _observe(landmarks, confidence=0.95):
    return GestureObservation(landmarks=landmarks, confidence=confidence)


class TestSignToText:
    
    def test_open_hand_is_hello(self, engine, make_hand):
        result = engine.sign_to_text(_observe(make_hand()))
        assert result.text == "Hello"
        assert result.gesture == "hello"
        assert result.confidence == pytest.approx(0.8)
    
    def test_confidence_is_minimum_of_classifier_and_observation(self, engine, make_hand):
        result = engine.sign_to_text(_observe(make_hand((True, False, False, False, False)), confidence=0.5))
        assert result.text == "Yes"
        assert result.confidence == pytest.approx(0.5)
    
    def test_index_only_is_help(self, engine, make_hand):
        result = engine.sign_to_text(_observe(make_hand((False, True, False, False, False))))
        assert result.text == "Help"
        assert result.confidence == pytest.approx(0.7)
    
    def test_pinch_is_thank_you(self, engine, make_hand):
        result = engine.sign_to_text(_observe(make_hand((False,) * 5, pinch=True)))
        assert result.text == "Thank you"
    
    def test_unrecognized_shape_has_no_result(self, engine, make_hand):
        assert engine.sign_to_text(_observe(make_hand((False,) * 5))) is None
        assert engine.gesture_sequence() == ["unknown"]
    
    def test_too_few_landmarks(self, engine):
        assert engine.sign_to_text(_observe([(0.1, 0.2, 0.0)] * 20)) is None
        assert engine.sign_to_text(_observe([])) is None
        assert engine.gesture_sequence() == []
    
    def test_sequence_window_prunes_old_gestures(self, engine, clock, make_hand):
        engine.sign_to_text(_observe(make_hand((True, False, False, False, False))))
        clock.now = 1.0
        engine.sign_to_text(_observe(make_hand((False, True, False, False, False))))
        assert engine.gesture_sequence() == ["yes", "help"]
        
        clock.now = 5.0
        engine.sign_to_text(_observe(make_hand()))
        assert engine.gesture_sequence() == ["hello"]
    
    def test_custom_classifier(self, clock, make_hand):
        classifier = MagicMock()
        classifier.classify.return_value = ("stop", 0.99)
        engine = TranslationEngine(classifier=classifier, clock=clock)
        
        result = engine.sign_to_text(_observe(make_hand(), confidence=0.9))
        assert result.text == "Stop"
        assert result.confidence == pytest.approx(0.9)
        points = classifier.classify.call_args[0][0]
        assert points.shape == (21, 3)


class TestTextToSign:
    
    def test_known_word(self, engine):
        result = engine.text_to_sign("hello")
        assert result.confidence >= 0.9
        assert len(result.animations) == 1
        assert result.animations[0].gesture == "hello"
        assert "Open hand wave" in result.sign_description
    
    def test_unknown_word_is_fingerspelled(self, engine):
        result = engine.text_to_sign("xyzzyqq")
        assert result.confidence == pytest.approx(FINGERSPELL_CONFIDENCE)
        assert result.sign_description == 'Fingerspell: "xyzzyqq"'
        keyframes = result.animations[0].keyframes
        assert len(keyframes) == 7
        assert [k.time_ms for k in keyframes[:2]] == [0, LETTER_DURATION_MS]
        assert keyframes[0].description == "Spell letter: X"
    
    def test_mixed_text_averages_and_joins(self, engine):
        result = engine.text_to_sign("hello xyzzyqq")
        assert result.confidence == pytest.approx((0.9 + 0.4) / 2)
        assert ", then " in result.sign_description
        assert len(result.animations) == 2
    
    def test_partial_match(self, engine):
        result = engine.text_to_sign("helpful")
        assert result.confidence == pytest.approx(0.6)
        assert result.animations[0].gesture == "help"
    
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_text(self, engine, text):
        assert engine.text_to_sign(text) is None
    
    def test_punctuation_only_is_fingerspelled(self, engine):
        result = engine.text_to_sign("!!!")
        assert result is not None
        assert result.confidence == pytest.approx(FINGERSPELL_CONFIDENCE)
    
    def test_punctuation_is_ignored_when_matching(self, engine):
        result = engine.text_to_sign("Hello, friend!")
        assert [a.gesture for a in result.animations] == ["hello", "friend"]
        assert result.confidence == pytest.approx(0.9)
    
    def test_non_ascii_text_is_fingerspelled(self, engine):
        result = engine.text_to_sign("こんにちは")
        assert result.sign_description == 'Fingerspell: "こんにちは"'
        assert len(result.animations[0].keyframes) == 5
    
    def test_accented_letters_are_kept(self, engine):
        result = engine.text_to_sign("café")
        assert result.animations[0].gesture == "fingerspell_café"
        assert result.animations[0].keyframes[-1].description == "Spell letter: É"


class TestDescriptions:
    
    def test_short_text_is_spelled(self, engine):
        assert engine.fingerspelling_description("purple cars") == 'Spell out: "purple cars" using fingerspelling'
    
    def test_long_text_uses_first_six_words(self, engine):
        description = engine.fingerspelling_description("one two three four five six seven eight")
        assert description.startswith('Sign language representation: "one two three four five six"')
        assert "seven" not in description
    
    def test_sentence_for_gesture(self, engine):
        assert engine.sentence_for_gesture("hello") == "Hello there! Nice to meet you."


def test_heuristic_classifier_thresholds(make_hand):
    classifier = HeuristicShapeClassifier()
    assert classifier.classify(np.asarray(make_hand(), dtype=float)) == ("hello", 0.8)
    assert classifier.classify(np.asarray(make_hand((False,) * 5), dtype=float)) == ("unknown", 0.3)
