"""Tests for the command line entry point."""

import pytest

from storyboard_producer import cli
from storyboard_producer.core.config import TransitionKind
from storyboard_producer.core.exceptions import AllScenesFailedError
from storyboard_producer.workflow.models import SceneTiming, StoryboardResult


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No config files or API key leak in from the environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


class StubProducer:
    outcome = None
    storyboards = []

    def __init__(self, config):
        self.config = config

    async def generate_storyboard(self, storyboard):
        StubProducer.storyboards.append(storyboard)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


@pytest.fixture
def stub_producer(monkeypatch):
    StubProducer.storyboards = []
    StubProducer.outcome = StoryboardResult(
        video_path="out.mp4",
        total_time=12.5,
        scene_times=[SceneTiming(index=0, elapsed=6.0), SceneTiming(index=1, elapsed=6.5)],
        success_count=2,
        failure_count=0,
    )
    monkeypatch.setattr(cli, "StoryboardProducer", StubProducer)
    return StubProducer


def test_arguments_map_to_storyboard():
    args = cli.parse_args([
        "-s", "Walking", "--scene", "Running",
        "--style", "noir",
        "--character", "Detective",
        "-r", "a.png", "-r", "b.png",
        "--aspect-ratio", "9:16",
        "--transition", "fade",
        "--transition-duration", "1.0",
        "--no-audio",
        "--music", "score.mp3",
        "--music-volume", "0.25",
        "-o", "story.mp4",
    ])

    storyboard = cli.build_storyboard(args)

    assert storyboard.scenes == ["Walking", "Running"]
    assert storyboard.style == "noir"
    assert storyboard.character_description == "Detective"
    assert storyboard.reference_images == ["a.png", "b.png"]
    assert storyboard.aspect_ratio == "9:16"
    assert storyboard.transition is TransitionKind.FADE
    assert storyboard.transition_duration == 1.0
    assert storyboard.audio.generate_audio is False
    assert storyboard.audio.background_music == "score.mp3"
    assert storyboard.audio.music_volume == 0.25
    assert storyboard.output_path == "story.mp4"


def test_flags_override_storyboard_file(tmp_path):
    path = tmp_path / "story.yaml"
    path.write_text("scenes: [one, two]\nstyle: watercolor\ntransition: cut\naudio:\n  music_volume: 0.1\n")

    storyboard = cli.build_storyboard(cli.parse_args(["--storyboard", str(path), "--style", "noir"]))

    assert storyboard.scenes == ["one", "two"]
    assert storyboard.style == "noir"
    assert storyboard.transition is TransitionKind.CUT
    assert storyboard.audio.music_volume == 0.1


def test_api_key_precedence(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")

    assert cli.build_config(cli.parse_args(["-s", "x"])).generation.api_key == "from-env"
    assert cli.build_config(cli.parse_args(["-s", "x", "--api-key", "flag"])).generation.api_key == "flag"


def test_requires_scenes(capsys):
    assert cli.main([]) == 1
    assert "--scene or --storyboard" in capsys.readouterr().out


def test_requires_api_key(capsys, stub_producer):
    assert cli.main(["-s", "Walking"]) == 1
    assert "no API key" in capsys.readouterr().out
    assert stub_producer.storyboards == []


def test_successful_run(capsys, stub_producer):
    assert cli.main(["-s", "Walking", "-s", "Running", "--api-key", "k"]) == 0

    output = capsys.readouterr().out
    assert "Video saved: out.mp4" in output
    assert "2 succeeded, 0 failed" in output
    assert stub_producer.storyboards[0].scenes == ["Walking", "Running"]


def test_all_scenes_failed_run(capsys, stub_producer):
    stub_producer.outcome = AllScenesFailedError(failures={0: "blocked", 1: "timed out"})

    assert cli.main(["-s", "Walking", "-s", "Running", "--api-key", "k"]) == 1

    output = capsys.readouterr().out
    assert "All scenes failed to generate" in output
    assert "Scene 2: timed out" in output
