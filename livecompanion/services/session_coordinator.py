"""Session coordinator composing audio, conversation and health into one view."""

import asyncio
import logging
from typing import Callable, Optional

from pubsub import pub

from ..audio.analyzer import AudioAnalyzer
from ..audio.media import MediaSource
from ..conversation.engine import ConversationEngine
from ..conversation.personas import quick_actions
from ..errors import InitializationError
from ..health.connectivity import CONNECTIVITY_TOPIC
from ..health.monitor import HealthMonitor
from ..models.audio import AnalyzerState, AudioSample
from ..models.conversation import TurnResult
from ..models.events import ConnectivityEvent
from ..models.health import HealthReport
from ..models.session import AvatarReactivity, SessionView
from .analytics import SessionAnalytics

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """Binds one analyzer, one conversation and one health monitor together.

    Audio binding and conversation initialization are independent: a
    failed audio bind leaves the session in silent mode, and releasing the
    audio leaves the conversation untouched.
    """

    def __init__(self,
                 conversation: ConversationEngine,
                 analyzer: Optional[AudioAnalyzer] = None,
                 health: Optional[HealthMonitor] = None,
                 analytics: Optional[SessionAnalytics] = None,
                 connectivity_topic: str = CONNECTIVITY_TOPIC,
                 speaking_threshold: float = 0.05,
                 on_view_change: Optional[Callable[[SessionView], None]] = None):
        """Initialize session coordinator.

        Args:
            conversation: Conversation engine owned by this session
            analyzer: Audio analyzer (a default one is created if None)
            health: Health monitor (a default one is created if None)
            analytics: Session analytics (a default one is created if None)
            connectivity_topic: Pub/sub topic carrying ConnectivityEvents
            speaking_threshold: Volume above which the avatar counts as speaking
            on_view_change: Called with a fresh SessionView after every change
        """
        self.conversation = conversation
        self.analyzer = analyzer or AudioAnalyzer()
        self.health = health or HealthMonitor()
        self.analytics = analytics or SessionAnalytics(conversation.persona.value)
        self.connectivity_topic = connectivity_topic
        self.speaking_threshold = speaking_threshold
        self.on_view_change = on_view_change

        self._avatar = AvatarReactivity()
        self._silent_mode = False
        self._disposed = False

        # Chain onto any callbacks already installed by the caller
        self._downstream_sample_callback = self.analyzer.sample_callback
        self.analyzer.sample_callback = self._on_audio_sample
        self._downstream_turn_callback = self.conversation.on_turn_complete
        self.conversation.on_turn_complete = self._on_turn_complete
        self._downstream_health_callback = self.health.on_change
        self.health.on_change = self._on_health_change

        pub.subscribe(self._on_connectivity, connectivity_topic)
        logger.info(f"SessionCoordinator initialized for {conversation.persona.value}")

    # ── Lifecycle ───────────────────────────────────────────────────────

    def start(self, media_source: Optional[MediaSource] = None) -> SessionView:
        """Initialize the conversation and, if given, bind the media source."""
        self.conversation.initialize()
        self.health.update_telemetry(self.conversation.telemetry)
        if media_source is not None:
            self.bind_media(media_source)
        self._notify()
        return self.view

    def bind_media(self, media_source: MediaSource) -> bool:
        """Attach audio reactivity to a media source.

        Returns:
            False if the audio subsystem is unavailable and the session runs silent
        """
        if self.analyzer.state is AnalyzerState.CLOSED:
            self._replace_closed_analyzer()
        try:
            self.analyzer.bind(media_source)
        except InitializationError as e:
            self._silent_mode = True
            logger.warning(f"Running without audio reactivity: {e}")
            return False
        self._silent_mode = False
        return True

    def _replace_closed_analyzer(self) -> None:
        closed = self.analyzer
        self.analyzer = AudioAnalyzer(
            callback=self._on_audio_sample,
            scheduler=closed.scheduler,
            fft_size=closed.fft_size,
            smoothing_time_constant=closed.smoothing_time_constant,
            monitor_output=closed.monitor_output,
        )
        logger.info("Replaced released audio analyzer")

    def release_audio(self) -> None:
        """Tear down audio analysis only; the conversation keeps running."""
        self.analyzer.close()
        self._avatar = AvatarReactivity()
        self._notify()

    def dispose(self) -> None:
        """Tear down audio and conversation and stop listening for events."""
        if self._disposed:
            return
        self._disposed = True
        try:
            self.analyzer.close()
        finally:
            self.conversation.dispose()
            try:
                pub.unsubscribe(self._on_connectivity, self.connectivity_topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
        logger.info("Session disposed")

    def __enter__(self) -> "SessionCoordinator":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()

    # ── Conversation ────────────────────────────────────────────────────

    async def send(self, message: str, context: Optional[str] = None) -> Optional[TurnResult]:
        """Send a user message through the conversation engine."""
        turn = asyncio.ensure_future(self.conversation.send(message, context))
        # Let the engine append the user message before publishing the view
        await asyncio.sleep(0)
        self._notify()
        result = await turn
        # Discarded or dropped turns never reach _on_turn_complete
        self._notify()
        return result

    async def send_quick_action(self, action_id: str) -> Optional[TurnResult]:
        """Send the canned message behind one of the companion's quick actions."""
        for action in quick_actions(self.conversation.persona):
            if action.id == action_id:
                return await self.send(action.message)
        raise KeyError(f"Unknown quick action: {action_id}")

    def reset(self) -> None:
        """Start the conversation over with a fresh greeting and clean telemetry."""
        self.conversation.reset()
        self.analytics.reset()
        self.health.update_telemetry(self.conversation.telemetry)
        self._notify()

    # ── Connectivity ────────────────────────────────────────────────────

    def set_online(self, is_online: bool) -> None:
        self.health.set_online(is_online)

    def _on_connectivity(self, event: ConnectivityEvent) -> None:
        self.set_online(event.is_online)

    # ── Collaborator callbacks ──────────────────────────────────────────

    def _on_audio_sample(self, sample: AudioSample) -> None:
        self._avatar = AvatarReactivity.from_sample(sample, self.speaking_threshold)
        if self._downstream_sample_callback:
            self._downstream_sample_callback(sample)
        self._notify()

    def _on_turn_complete(self, result: TurnResult) -> None:
        self.analytics.track_turn(result)
        if self._downstream_turn_callback:
            self._downstream_turn_callback(result)
        # Health changes notify through _on_health_change; always refresh the view for the new messages
        self.health.update_telemetry(self.conversation.telemetry)
        self._notify()

    def _on_health_change(self, report: HealthReport) -> None:
        if self._downstream_health_callback:
            self._downstream_health_callback(report)
        self._notify()

    # ── View ────────────────────────────────────────────────────────────

    @property
    def is_silent(self) -> bool:
        return self._silent_mode

    @property
    def view(self) -> SessionView:
        return SessionView(
            persona=self.conversation.persona.value,
            audio_state=self.analyzer.state,
            volume_level=self.analyzer.volume_level,
            dominant_frequency_hz=self.analyzer.dominant_frequency_hz,
            avatar=self._avatar,
            emotional_state=self.conversation.emotional_state,
            messages=self.conversation.message_history,
            is_generating=self.conversation.is_generating,
            telemetry=self.conversation.telemetry,
            health=self.health.report(),
        )

    def _notify(self) -> None:
        if not self.on_view_change or self._disposed:
            return
        try:
            self.on_view_change(self.view)
        except Exception as e:
            logger.error(f"Session view callback error: {e}")
