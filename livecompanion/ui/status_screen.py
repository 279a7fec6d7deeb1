"""Terminal companion status screen rendered from a SessionView."""

import logging
from typing import Optional

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.health import HealthStatus
from ..models.session import SessionView

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    HealthStatus.HEALTHY: "bold green",
    HealthStatus.SLOW: "bold yellow",
    HealthStatus.ERROR: "bold red",
    HealthStatus.OFFLINE: "bold red",
}


class StatusScreen:
    """Renders companion status, avatar reactivity and recent messages."""

    def __init__(self, console: Optional[Console] = None, max_messages: int = 8):
        self.console = console or Console()
        self.max_messages = max_messages
        self.live: Optional[Live] = None

    def create_layout(self) -> Layout:
        """Create the main UI layout."""
        layout = Layout()
        layout.split_column(
            Layout(name="status", size=9),
            Layout(name="messages", ratio=1),
        )
        layout["status"].split_row(
            Layout(name="health_panel", ratio=1),
            Layout(name="audio_panel", ratio=1),
        )
        return layout

    def render_health(self, view: SessionView) -> Panel:
        health = view.health
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Status", Text(health.label, style=STATUS_STYLES[health.status]))
        table.add_row("Network", "Connected" if health.is_online else "Disconnected")
        latency = f"{health.response_time_ms / 1000:.1f}s" if health.response_time_ms > 0 else "Ready"
        table.add_row("Response", latency)
        table.add_row("Messages", str(health.total_messages))
        table.add_row("Errors", "No errors" if health.error_count == 0 else f"{health.error_count} errors")
        table.add_row("Mood", f"Feeling {view.emotional_state.value}")

        return Panel(table, title="Companion Status", border_style="blue")

    def render_audio(self, view: SessionView) -> Panel:
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        volume_bar = "#" * int(view.volume_level * 20)
        table.add_row("Analyzer", view.audio_state.value)
        table.add_row("Volume", f"{volume_bar:<20} {view.volume_level:.3f}")
        table.add_row("Frequency", f"{view.dominant_frequency_hz:.0f} Hz")
        table.add_row("Avatar", "Speaking" if view.avatar.is_speaking else "Idle")
        table.add_row("Scale", f"{view.avatar.scale:.2f}")

        return Panel(table, title="Audio Monitor", border_style="green")

    def render_messages(self, view: SessionView) -> Panel:
        lines = []
        for message in view.messages[-self.max_messages:]:
            speaker = "You" if message.is_user else view.persona.capitalize()
            style = "bold white" if message.is_user else "magenta"
            mood = f" ({message.mood.value})" if message.mood else ""
            lines.append(Text.assemble((f"{speaker}{mood}: ", style), message.content))
        if view.is_generating:
            lines.append(Text("Typing...", style="yellow italic"))
        return Panel(Group(*lines), title="Conversation", border_style="magenta")

    def render(self, view: SessionView) -> Layout:
        layout = self.create_layout()
        layout["health_panel"].update(self.render_health(view))
        layout["audio_panel"].update(self.render_audio(view))
        layout["messages"].update(self.render_messages(view))
        return layout

    def start(self) -> None:
        if self.live is None:
            self.live = Live(console=self.console, refresh_per_second=10, transient=False)
            self.live.start()

    def update(self, view: SessionView) -> None:
        """Session view callback: redraw the live display."""
        if self.live is None:
            return
        self.live.update(self.render(view))

    def stop(self) -> None:
        if self.live is not None:
            self.live.stop()
            self.live = None
