"""Pytest configuration and fixtures for live companion tests."""

import asyncio
import pytest
import tempfile
import logging
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np
import wave

from livecompanion.audio.media import MediaSource
from livecompanion.models.conversation import CompanionReply, Mood
from livecompanion.models.events import MediaEventKind


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no real audio or network")
    config.addinivalue_line("markers", "integration: tests wiring several components on a live event loop")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.get_write_available.return_value = 4096
        mock_stream.write.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def sine_wave():
    """Generate float sine waves in [-1, 1]."""
    def generate(freq: float = 1000.0, duration_seconds: float = 0.1,
                 sample_rate: int = 16000, amplitude: float = 0.5) -> np.ndarray:
        samples = int(round(duration_seconds * sample_rate))
        t = np.arange(samples) / sample_rate
        return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)

    return generate


@pytest.fixture
def sample_wav_file(temp_data_dir, sine_wave):
    """Create a 16-bit stereo WAV file holding a 1 kHz tone."""
    file_path = Path(temp_data_dir) / "tone.wav"
    mono = (sine_wave(1000.0, 0.5) * 32767).astype(np.int16)
    stereo = np.repeat(mono, 2)

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(2)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(16000)
        wf.writeframes(stereo.tobytes())

    return str(file_path)


class FakeMediaSource(MediaSource):
    """Media source with a fixed analysis window and manual playback control."""

    def __init__(self, window: np.ndarray, sample_rate: int = 16000):
        super().__init__(sample_rate)
        self.window = np.asarray(window, dtype=np.float32)
        self.playing = False

    @property
    def is_playing(self) -> bool:
        return self.playing

    def read_window(self, num_samples: int) -> np.ndarray:
        return self.window[-num_samples:]

    def play(self) -> None:
        self.playing = True
        self.publish(MediaEventKind.PLAY)

    def pause(self) -> None:
        self.playing = False
        self.publish(MediaEventKind.PAUSE)

    def end(self) -> None:
        self.playing = False
        self.publish(MediaEventKind.ENDED)


class _ManualHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualFrameScheduler:
    """Frame scheduler driven explicitly by the test."""

    frame_interval = 1.0 / 60

    def __init__(self):
        self.pending: List[_ManualHandle] = []
        self.requests = 0
        self.time = 0.0

    def request_frame(self, callback) -> _ManualHandle:
        handle = _ManualHandle(callback)
        self.pending.append(handle)
        self.requests += 1
        return handle

    def cancel_frame(self, handle: Optional[_ManualHandle]) -> None:
        if handle is not None:
            handle.cancel()

    @property
    def live_handles(self) -> List[_ManualHandle]:
        return [handle for handle in self.pending if not handle.cancelled]

    def advance(self, frames: int = 1) -> None:
        """Fire the callbacks due on the next frame(s)."""
        for _ in range(frames):
            due, self.pending = self.pending, []
            self.time += self.frame_interval
            for handle in due:
                if not handle.cancelled:
                    handle.callback(self.time)


@pytest.fixture
def frame_scheduler():
    return ManualFrameScheduler()


@pytest.fixture
def make_source():
    """Factory for manually controlled media sources."""
    return FakeMediaSource


@pytest.fixture
def fake_source(sine_wave):
    """A paused source whose analysis window holds a 1 kHz tone."""
    return FakeMediaSource(sine_wave(1000.0, 256 / 16000))


class ScriptedReplyGenerator:
    """Reply generator returning scripted replies, optionally gated or failing."""

    def __init__(self, replies: Optional[List[CompanionReply]] = None,
                 error: Optional[Exception] = None,
                 gate: Optional[asyncio.Event] = None):
        self.replies = list(replies or [])
        self.error = error
        self.gate = gate
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> CompanionReply:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return CompanionReply(text="Sounds great!", mood=Mood.HAPPY)


@pytest.fixture
def make_generator():
    """Factory for scripted reply generators."""
    return ScriptedReplyGenerator


class StaticPromptEngine:
    """Prompt engine that answers every prompt with the same text."""

    def __init__(self, response: str = "You've got this!"):
        self.response = response
        self.prompts: List[str] = []

    async def send_prompt(self, prompt: str, **kwargs) -> str:
        self.prompts.append(prompt)
        return self.response


@pytest.fixture
def prompt_engine():
    return StaticPromptEngine()
