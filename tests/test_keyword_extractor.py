"""Tests for free-text gesture extraction"""

import pytest

from gesturevoice.keyword_extractor import KeywordGestureMapper, extract_gesture_from_text


@pytest.mark.parametrize("text, expected", [
    ("Thank you so much", "thank_you"),
    ("HELLO there", "hello"),
    ("I need a drink", "water"),
    ("good morning", "good_morning"),
    ("see you later", "goodbye"),
])
def test_keywords_match_case_insensitively(text, expected):
    assert extract_gesture_from_text(text) == expected


def test_courtesy_outranks_responses():
    # "please" is checked before "yes"
    assert extract_gesture_from_text("yes please") == "please"


def test_numbers_match_words_and_digits():
    assert extract_gesture_from_text("give me 3") == "three"
    assert extract_gesture_from_text("seven") == "seven"
    assert extract_gesture_from_text("ten") == "ten"


def test_digits_match_as_substrings_in_ascending_order():
    assert extract_gesture_from_text("room 12") == "one"
    assert extract_gesture_from_text("10") == "zero"
    assert extract_gesture_from_text("call 555 9") == "five"


def test_letters_need_explicit_form():
    assert extract_gesture_from_text("letter b") == "b"
    assert extract_gesture_from_text(" C ") == "c"


@pytest.mark.parametrize("text", ["purple cars", "", "   ", None])
def test_no_match(text):
    assert extract_gesture_from_text(text) is None


def test_mapper_delegates():
    assert KeywordGestureMapper().map_text("thanks a lot") == "thank_you"
