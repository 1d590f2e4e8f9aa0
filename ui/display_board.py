"""QueueTicket terminal display board"""

import threading
from typing import Optional

from rich import box
from rich.align import Align
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qticket.services.display_reader import DEFAULT_POLL_INTERVAL, DisplayReader, DisplayView

console = Console()


def render_view(view: DisplayView) -> Panel:
    """Calling banner, counters and the viewer's own status"""
    if view.calling == 0:
        banner = Text(view.banner, style="bold grey50")
    else:
        banner = Text(str(view.calling), style="bold green")

    stats = Table(box=box.ROUNDED, show_header=False)
    stats.add_column("Metric", style="cyan", width=18)
    stats.add_column("Value", style="green", width=12)
    stats.add_row("Last issued", str(view.next_issued))
    stats.add_row("Waiting", str(view.outstanding))
    stats.add_row("Last updated", view.last_updated.strftime("%H:%M:%S"))

    parts = [Align.center(Text("Now calling", style="bold white")), Align.center(banner), stats]

    if view.viewer is not None:
        viewer = view.viewer
        style = "bold green" if viewer.called else "bold blue"
        line = f"Your number {viewer.number}: {viewer.message}"
        if viewer.wait_text:
            line += f" (waited {viewer.wait_text})"
        parts.append(Text(line, style=style))

    return Panel(Group(*parts), title=view.queue_name, border_style="blue", box=box.DOUBLE)


class DisplayBoard:
    """Live panel refreshed by the display reader's polling loop"""

    def __init__(self, reader: DisplayReader, interval: float = DEFAULT_POLL_INTERVAL):
        self.reader = reader
        self.interval = interval
        self.stop_event = threading.Event()
        self._live: Optional[Live] = None

    def _update(self, view: DisplayView) -> None:
        if self._live is not None:
            self._live.update(render_view(view))

    def run(self) -> None:
        """Block until Ctrl+C or stop()"""
        with Live(console=console, refresh_per_second=4) as live:
            self._live = live
            try:
                self.reader.run(self._update, self.stop_event, self.interval)
            except KeyboardInterrupt:
                console.print("[bold yellow]Display stopped[/bold yellow]")
            finally:
                self._live = None

    def stop(self) -> None:
        self.stop_event.set()
