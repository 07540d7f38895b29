"""Shared pytest fixtures and fakes."""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
from PIL import Image

from storyboard_producer.api.base import GenerationStatus, VideoGenerationResult
from storyboard_producer.core.config import Config, GenerationConfig, OutputConfig
from storyboard_producer.core.exceptions import AssemblyError
from storyboard_producer.workflow import StoryboardProducer


class FakeProvider:
    """In-memory generation service that records every call."""

    provider_name = "fake"

    def __init__(
        self,
        fail_on: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
    ):
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.requests = []
        self.reference_counts: List[int] = []
        self.downloads: List[Path] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def generate_video(self, request):
        return await self._generate(request, [])

    async def generate_video_with_references(self, request, references):
        return await self._generate(request, references)

    async def _generate(self, request, references):
        self.requests.append(request)
        self.reference_counts.append(len(references))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = max([d for marker, d in self.delays.items() if marker in request.prompt] or [0])
            await asyncio.sleep(delay)
        finally:
            self.in_flight -= 1

        if any(marker in request.prompt for marker in self.fail_on):
            return VideoGenerationResult(
                status=GenerationStatus.FAILED,
                prompt=request.prompt,
                error_message="Content policy violation",
            )
        return VideoGenerationResult(
            status=GenerationStatus.COMPLETED,
            video_url=f"https://videos.example.test/{len(self.requests)}.mp4",
            prompt=request.prompt,
        )

    async def download_video(self, result, output_path):
        output_path = Path(output_path)
        output_path.write_text(result.prompt)
        self.downloads.append(output_path)
        result.video_path = str(output_path)
        return str(output_path)

    async def close(self):
        self.closed = True


class FakeRunner:
    """Stands in for FFmpegRunner; records command lines and writes outputs."""

    def __init__(
        self,
        durations: Optional[Dict[str, float]] = None,
        default_duration: float = 8.0,
        available: bool = True,
        probe_available: bool = True,
        has_audio: bool = True,
        fail_stage: Optional[str] = None,
    ):
        self.ffmpeg_path = "ffmpeg"
        self.ffprobe_path = "ffprobe"
        self.durations = durations or {}
        self.default_duration = default_duration
        self.available = available
        self.probe_available = probe_available
        self.has_audio = has_audio
        self.fail_stage = fail_stage
        self.calls = []
        self.manifests: List[str] = []
        self.manifest_paths: List[Path] = []
        self.probed: List[Path] = []

    @property
    def stages(self) -> List[str]:
        return [stage for stage, _ in self.calls]

    def is_available(self) -> bool:
        return self.available

    def is_probe_available(self) -> bool:
        return self.probe_available

    def probe_duration(self, path) -> float:
        path = Path(path)
        self.probed.append(path)
        return self.durations.get(path.name, self.default_duration)

    def has_audio_stream(self, path) -> bool:
        return self.has_audio

    def run(self, args, stage):
        args = list(args)
        self.calls.append((stage, args))
        if stage == "concat":
            manifest = Path(args[args.index("-i") + 1])
            self.manifest_paths.append(manifest)
            self.manifests.append(manifest.read_text())
        if stage == self.fail_stage:
            raise AssemblyError(f"ffmpeg failed during {stage}", tool="ffmpeg", stage=stage)
        Path(args[-1]).write_bytes(b"assembled")


def input_paths(args: List[str]) -> List[Path]:
    """Every path passed with -i, in order."""
    return [Path(args[i + 1]) for i, arg in enumerate(args) if arg == "-i"]


def scene_index(path: Path) -> int:
    """Scene index encoded in a downloaded clip name (scene-<index>-<hex>.mp4)."""
    return int(Path(path).name.split("-")[1])


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def run_root(tmp_path):
    """Parent directory for per-run temporary directories."""
    path = tmp_path / "runs"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, run_root):
    return Config(
        generation=GenerationConfig(api_key="test-key", poll_interval=0),
        output=OutputConfig(
            base_path=str(tmp_path / "output"),
            temp_dir=str(run_root),
            save_metadata=False,
        ),
    )


@pytest.fixture
def make_producer(config, fake_provider, fake_runner):
    """Build a producer wired to the fakes, overriding any of them."""

    def factory(provider=None, runner=None, config_override=None):
        return StoryboardProducer(
            config=config_override or config,
            provider=provider or fake_provider,
            runner=runner or fake_runner,
        )

    return factory


@pytest.fixture
def make_image(tmp_path):
    """Write a small PNG and return its path."""

    def factory(name: str = "ref.png", color: str = "red") -> Path:
        path = tmp_path / name
        Image.new("RGB", (16, 16), color=color).save(path)
        return path

    return factory


@pytest.fixture
def music_file(tmp_path):
    path = tmp_path / "music.mp3"
    path.write_bytes(b"ID3 fake music")
    return path
