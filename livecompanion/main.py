"""Main application entry point for the live companion."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from livecompanion.audio.analyzer import AudioAnalyzer
from livecompanion.audio.audio_pub import AudioSamplePublisher
from livecompanion.audio.frame_clock import FrameScheduler
from livecompanion.audio.media import WavFileSource
from livecompanion.conversation.chatgpt_engine import ChatGPTReplyEngine
from livecompanion.conversation.engine import ConversationEngine
from livecompanion.conversation.persona_generator import PersonaReplyGenerator
from livecompanion.health.connectivity import ConnectivityMonitor
from livecompanion.health.monitor import HealthMonitor
from livecompanion.services.session_coordinator import SessionCoordinator
from livecompanion.ui.status_screen import StatusScreen

from .config import LiveCompanionConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = LiveCompanionConfig(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.session: Optional[SessionCoordinator] = None
        self.screen: Optional[StatusScreen] = None

    def init(self, persona: Optional[str] = None):
        # Initialize services
        logger.info("Initializing services...")

        persona = persona or self.config.get('companion.persona', 'bella')
        fft_size = self.config.get('audio.fft_size', 256)
        smoothing = self.config.get('audio.smoothing_time_constant', 0.8)
        frame_rate = self.config.get('audio.frame_rate', 60)

        logger.info(f"Audio settings: fft_size={fft_size}, smoothing={smoothing}, {frame_rate} fps")

        self.connectivity = ConnectivityMonitor()
        engine = ChatGPTReplyEngine(
            api_key=self.config.get_chatgpt_api_key(),
            model=self.config.get('chatgpt.model', 'gpt-4o-mini'),
            temperature=self.config.get('chatgpt.temperature', 0.8),
            max_tokens=self.config.get('chatgpt.max_tokens', 300),
            timeout_seconds=self.config.get('chatgpt.timeout_seconds', 30),
        )
        generator = PersonaReplyGenerator(
            engine,
            persona=persona,
            context_window=self.config.get('companion.context_window', 6),
        )
        conversation = ConversationEngine(generator, persona=persona)
        generator.history = lambda: conversation.message_history

        # The session chains its own sample handler onto this one
        self.sample_publisher = AudioSamplePublisher()
        analyzer = AudioAnalyzer(
            callback=self.sample_publisher.publish_audio_sample,
            scheduler=FrameScheduler(frame_rate),
            fft_size=fft_size,
            smoothing_time_constant=smoothing,
            monitor_output=self.config.get('audio.monitor_output', False),
        )
        health = HealthMonitor(
            slow_response_ms=self.config.get('health.slow_response_ms', 5000),
            error_rate_threshold=self.config.get('health.error_rate_threshold', 0.2),
        )

        self.screen = StatusScreen()
        self.session = SessionCoordinator(
            conversation,
            analyzer=analyzer,
            health=health,
            connectivity_topic=self.connectivity.topic,
            speaking_threshold=self.config.get('audio.speaking_threshold', 0.05),
            on_view_change=self.screen.update,
        )

    def run(self, media_file: Optional[str], messages: List[str]):
        try:
            asyncio.run(self._run(media_file, messages))
        except Exception as e:
            logger.error(f"Error in run: {e}")
        finally:
            self.cleanup()

    async def _run(self, media_file: Optional[str], messages: List[str]):
        probe_url = self.config.get('connectivity.probe_url')
        probe_task = None
        if probe_url:
            probe_task = asyncio.create_task(self.connectivity.run(
                probe_url, self.config.get('connectivity.probe_interval_seconds', 10)))

        self.screen.start()
        try:
            source = WavFileSource(media_file) if media_file else None
            self.session.start(source)
            if source is not None:
                source.play()

            for message in messages:
                await self.session.send(message)

            if source is not None:
                await source.wait_until_ended()
        finally:
            if probe_task:
                probe_task.cancel()
                try:
                    await probe_task
                except asyncio.CancelledError:
                    pass
            self.screen.stop()

        summary = self.session.analytics.get_session_summary()
        logger.info(f"Session summary: {summary}")

    def cleanup(self):
        if self.session:
            self.session.dispose()
        if self.screen:
            self.screen.stop()


def setup_logging(config, level: str = "INFO") -> None:

    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'data/logs/livecompanion.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    # Log startup
    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("Live companion starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for the live companion."""
    parser = argparse.ArgumentParser(
        description="Live companion - audio-reactive study companion session",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: livecompanion.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config)"
    )

    parser.add_argument(
        "--persona",
        type=str,
        choices=["bella", "luna", "aria"],
        help="Companion to chat with (default: from config)"
    )

    parser.add_argument(
        "--audio",
        type=str,
        help="WAV file to play through the audio analyzer"
    )

    parser.add_argument(
        "--say",
        action="append",
        default=[],
        help="Message to send to the companion (repeatable)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Live Companion v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init(args.persona)
        server.run(args.audio or server.config.get('audio.media_file'), args.say)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
