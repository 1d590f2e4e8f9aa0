"""QueueTicket distributor console - issue and call numbers from a terminal"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from qticket.auth.display_link import build_display_url
from qticket.auth.handshake import AuthHandshake
from qticket.services.distributor import DistributorController, Notice
from qticket.services.queue_state_store import QueueStateStore
from qticket.storage.base import KeyValueStorage
from qticket.utils.exceptions import AuthenticationError, ValidationError

console = Console()

LEVEL_STYLES = {
    "success": "bold green",
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
}


class DistributorConsole:
    """Login, then a menu over the distributor controller"""

    def __init__(self, storage: KeyValueStorage, display_base_url: str):
        self.storage = storage
        self.display_base_url = display_base_url
        self.handshake = AuthHandshake(storage)
        self.controller: Optional[DistributorController] = None

    def login(self, queue_name: str) -> bool:
        password = Prompt.ask("Password", password=True)
        try:
            result = self.handshake.login(queue_name, password)
        except (ValidationError, AuthenticationError) as e:
            console.print(f"[bold red]✗ {e}[/bold red]")
            return False

        if result.created:
            console.print(f"[bold green]✓ Queue '{result.queue_name}' created[/bold green]")
        else:
            console.print(f"[bold green]✓ Logged in to '{result.queue_name}'[/bold green]")
        self.controller = DistributorController(
            result.queue_name,
            QueueStateStore(self.storage, result.queue_name, self.handshake.clock),
            self.handshake.credentials,
            self.handshake.sessions,
        )
        return True

    def show_status(self) -> None:
        c = self.controller
        table = Table(title=c.queue_name, box=box.ROUNDED, show_header=False)
        table.add_column("Metric", style="cyan", width=18)
        table.add_column("Value", style="green", width=10)
        table.add_row("Last issued", str(c.next_issued))
        table.add_row("Calling", str(c.calling))
        table.add_row("Waiting", str(c.outstanding))
        console.print(table)

    def show_notice(self, notice: Notice) -> None:
        console.print(f"[{LEVEL_STYLES.get(notice.level, 'white')}]{notice.message}[/]")
        if notice.ticket is not None and not notice.ticket.served:
            url = build_display_url(self.display_base_url, self.controller.queue_name, notice.ticket.number)
            console.print(f"Display link: {url}")

    def run(self, queue_name: str) -> None:
        if not self.login(queue_name):
            return

        menu_text = """
[1] New Queue
[2] Call Next
[3] Reset All
[4] Delete Queue
[Q] Quit
"""
        while True:
            self.show_status()
            console.print(Panel(menu_text, title="Menu", border_style="cyan"))
            choice = Prompt.ask("Select", choices=["1", "2", "3", "4", "q", "Q"], default="1").lower()

            if choice == "1":
                self.show_notice(self.controller.issue_next())
            elif choice == "2":
                self.show_notice(self.controller.call_next())
            elif choice == "3":
                self.show_notice(self.controller.reset_all(lambda prompt: Confirm.ask(prompt)))
            elif choice == "4":
                notice = self.controller.delete_queue(lambda prompt: Confirm.ask(prompt))
                self.show_notice(notice)
                if notice.redirect:
                    return
            else:
                return
            self.controller.reload()
