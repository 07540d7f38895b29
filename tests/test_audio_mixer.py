"""Tests for the audio mixer."""

import pytest

from conftest import FakeRunner, input_paths
from storyboard_producer.core.exceptions import ValidationError
from storyboard_producer.workflow.audio_mixer import AudioMixer


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "stitched.mp4"
    path.write_bytes(b"video")
    return path


def test_mix_filter(video_file, music_file, tmp_path):
    runner = FakeRunner()
    output = tmp_path / "final.mp4"

    result = AudioMixer(runner).mix(video_file, music_file, output, volume=0.3)

    assert result == str(output)
    stage, args = runner.calls[0]
    assert stage == "audio_mix"
    assert input_paths(args) == [video_file, music_file]
    assert args[args.index("-filter_complex") + 1] == (
        "[1:a]volume=0.3[bg];[0:a][bg]amix=inputs=2:duration=first:dropout_transition=0[aout]"
    )
    assert args[args.index("-c:v") + 1] == "copy"
    assert args[args.index("-c:a") + 1] == "aac"
    assert "-shortest" not in args


def test_mix_into_silent_video(video_file, music_file, tmp_path):
    runner = FakeRunner(has_audio=False)

    AudioMixer(runner).mix(video_file, music_file, tmp_path / "final.mp4", volume=1.0)

    _, args = runner.calls[0]
    assert args[args.index("-filter_complex") + 1] == "[1:a]volume=1.0[aout]"
    assert "-shortest" in args


@pytest.mark.parametrize("volume", [0.0, 1.0])
def test_volume_boundaries(video_file, music_file, tmp_path, volume):
    runner = FakeRunner()

    AudioMixer(runner).mix(video_file, music_file, tmp_path / "final.mp4", volume=volume)

    assert runner.stages == ["audio_mix"]


@pytest.mark.parametrize("volume", [-0.01, 1.01])
def test_volume_out_of_range(video_file, music_file, tmp_path, volume):
    runner = FakeRunner()

    with pytest.raises(ValidationError):
        AudioMixer(runner).mix(video_file, music_file, tmp_path / "final.mp4", volume=volume)

    assert runner.calls == []


def test_missing_audio(video_file, tmp_path):
    with pytest.raises(ValidationError, match="Background music file not found"):
        AudioMixer(FakeRunner()).mix(video_file, tmp_path / "nope.mp3", tmp_path / "final.mp4")


def test_missing_video(music_file, tmp_path):
    with pytest.raises(ValidationError, match="Video file not found"):
        AudioMixer(FakeRunner()).mix(tmp_path / "nope.mp4", music_file, tmp_path / "final.mp4")
