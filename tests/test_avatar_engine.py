"""Tests for the 3D avatar pose generator"""

import math

import pytest

from gesturevoice.avatar_engine import BONE_NAMES, Avatar3DPoseGenerator, default_pose
from gesturevoice.models import GestureObservation


@pytest.fixture
def generator():
    return Avatar3DPoseGenerator(time_scale=0)


def _bones(pose):
    return {bone.name: bone for bone in pose.bones}


def test_skeleton_has_22_bones():
    assert len(BONE_NAMES) == 22
    assert len(default_pose().bones) == 22


@pytest.mark.asyncio
async def test_known_gesture_uses_its_animation(generator):
    pose = await generator.generate_pose(GestureObservation(recognized_gesture="hello", confidence=0.9))
    assert pose.facial_expression == "happy"
    assert _bones(pose)["RightUpperArm"].rotation.z == pytest.approx(-1.2)


@pytest.mark.asyncio
async def test_unknown_gesture_follows_landmarks(generator, make_hand):
    observation = GestureObservation(landmarks=make_hand(), recognized_gesture="unknown", confidence=0.4)
    pose = await generator.generate_pose(observation)
    
    index = _bones(pose)["RightIndex"].rotation
    # Raised finger: tip straight above base in image space
    angle = math.atan2(0.5 - 0.725, 0.0)
    assert index.x == pytest.approx(math.sin(angle) * 0.5)
    assert index.z == pytest.approx(math.cos(angle) * 0.5, abs=1e-9)
    assert pose.facial_expression == "neutral"


@pytest.mark.asyncio
async def test_bad_landmarks_fall_back_to_rest_pose(generator):
    landmarks = [(float("nan"), 0.0, 0.0)] * 21
    pose = await generator.generate_pose(GestureObservation(landmarks=landmarks, confidence=0.5))
    assert [bone.rotation for bone in pose.bones] == [bone.rotation for bone in default_pose().bones]


@pytest.mark.asyncio
async def test_no_landmarks_gives_rest_pose(generator):
    pose = await generator.generate_pose(GestureObservation(confidence=0.5))
    assert pose.facial_expression == "neutral"
    assert len(pose.bones) == 22


@pytest.mark.asyncio
async def test_play_sequence(generator):
    assert await generator.play_sequence("hello") is True
    assert await generator.play_sequence("family") is True  # handshape-only sign
    assert await generator.play_sequence("high_five") is False
    assert generator.sequences_played == 2
    assert generator.current_pose.facial_expression == "neutral"


def test_sequence_duration(generator):
    assert generator.sequence_duration_ms("hello") == 1000
    assert generator.sequence_duration_ms("high_five") == 0


@pytest.mark.asyncio
async def test_avatar_model(generator):
    await generator.initialize()
    model = generator.get_avatar_model()
    assert model["skeleton"]["bone_count"] == 22
    assert "hello" in model["available_gestures"]
    assert "neutral" in model["facial_expressions"]
    assert len(model["current_pose"]["bones"]) == 22
