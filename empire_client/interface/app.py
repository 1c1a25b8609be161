"""Textual TUI for following one game.

Shows the turn summary playback and event history, the queued orders and
the turn countdown, and maps a few keys to controller actions.
"""

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header

from ..client.controller import GameController
from ..errors import ReconciliationError, SubmissionError
from .event_log import CountdownDisplay, OrdersPanel, TurnEventLog

logger = logging.getLogger(__name__)


class EmpireClientApp(App):
    """Empire client application."""

    ENABLE_COMMAND_PALETTE = False

    CSS = """
    #main_row {
        height: 1fr;
    }

    TurnEventLog {
        width: 2fr;
        border: solid cyan;
    }

    OrdersPanel {
        width: 1fr;
        border: solid blue;
    }

    CountdownDisplay {
        height: 1;
        text-align: right;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=True),
        Binding("space", "skip_reveal", "Skip", show=True),
        Binding("s", "submit_turn", "Submit", show=True),
        Binding("c", "clear_orders", "Clear orders", show=True),
        Binding("r", "refresh", "Refresh", show=True),
    ]

    def __init__(self, controller: GameController, *args, **kwargs):
        """Initialize the TUI app.

        Args:
            controller: Session to display; its callbacks are bound on mount
        """
        super().__init__(*args, **kwargs)
        self.controller = controller
        self.event_log: TurnEventLog | None = None
        self.orders_panel: OrdersPanel | None = None
        self.countdown_display: CountdownDisplay | None = None

    def compose(self) -> ComposeResult:
        """Create child widgets."""
        yield Header()
        self.countdown_display = CountdownDisplay()
        yield self.countdown_display
        with Horizontal(id="main_row"):
            self.event_log = TurnEventLog()
            yield self.event_log
            self.orders_panel = OrdersPanel()
            yield self.orders_panel
        yield Footer()

    def on_mount(self) -> None:
        """Bind controller callbacks and load the game."""
        self.controller.on_render = self.event_log.show_reveal_item
        self.controller.on_history = self.event_log.show_history
        self.controller.countdown.on_tick = self.countdown_display.update_countdown
        self.controller.ledger.add_listener(lambda change: self.refresh_orders())
        self.run_worker(self._load(), exclusive=True)

    def refresh_orders(self) -> None:
        self.orders_panel.update_orders(self.controller.ledger, self.controller.submitted)

    async def _load(self) -> None:
        try:
            await self.controller.load()
        except ReconciliationError as e:
            self.event_log.show_error(f"Could not load game: {e}")
            return
        self.sub_title = f"Turn {self.controller.snapshot.turn_number} - {self.controller.lifecycle}"
        self.refresh_orders()

    async def _refresh(self) -> None:
        try:
            await self.controller.refresh()
        except ReconciliationError as e:
            self.event_log.show_error(f"Refresh failed: {e}")
            return
        self.sub_title = f"Turn {self.controller.snapshot.turn_number} - {self.controller.lifecycle}"
        self.refresh_orders()

    async def _submit(self) -> None:
        try:
            await self.controller.submit_turn()
        except SubmissionError as e:
            self.event_log.show_error(str(e))
            return
        self.refresh_orders()

    def action_skip_reveal(self) -> None:
        self.controller.skip_reveal()

    def action_submit_turn(self) -> None:
        self.run_worker(self._submit(), exclusive=True)

    def action_clear_orders(self) -> None:
        result = self.controller.clear_orders()
        if not result.ok:
            self.event_log.show_error(result.message)

    def action_refresh(self) -> None:
        self.run_worker(self._refresh(), exclusive=True)

    def on_unmount(self) -> None:
        self.controller.close()
