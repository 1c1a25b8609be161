"""Textual widgets for turn playback, order list and deadline."""

from rich.markup import escape
from textual.widgets import RichLog, Static

from ..engine.ledger import OrderLedger
from ..engine.reveal_builder import describe_entry
from ..models.combat_log import CombatLogEntry
from ..models.reveal import RevealItem, RevealKind
from ..models.snapshot import Snapshot


def format_reveal_item(item: RevealItem, revealed: bool = False) -> str:
    """Rich markup for one reveal item.

    Args:
        item: Item to format
        revealed: Rendered by a skip rather than in timed playback; shown dimmed

    Returns:
        Markup string
    """
    text = escape(item.content)
    if item.kind == RevealKind.HEADER:
        markup = f"[bold cyan]{text}[/bold cyan]"
    elif item.kind == RevealKind.SEPARATOR:
        markup = f"[bold yellow]══ {text} ══[/bold yellow]"
    elif item.kind == RevealKind.DETAIL:
        markup = f"    [dim]{text}[/dim]"
    else:
        markup = f"  {text}"
    if revealed and item.kind != RevealKind.DETAIL:
        markup = f"[dim]{markup}[/dim]"
    return markup


class TurnEventLog(RichLog):
    """Scrolling log showing turn summaries and the event history."""

    def __init__(self, *args, **kwargs):
        """Initialize event log."""
        super().__init__(*args, highlight=False, markup=True, wrap=True, **kwargs)
        self.border_title = "Events"
        self.rendered_count = 0
        self.revealed_count = 0
        self.history_size = 0

    def show_reveal_item(self, item: RevealItem, revealed: bool = False) -> None:
        """Append one reveal item from the sequencer.

        Args:
            item: Item to display
            revealed: True when the item was drained by a skip
        """
        self.write(format_reveal_item(item, revealed))
        self.rendered_count += 1
        if revealed:
            self.revealed_count += 1

    def show_history(self, entries: list[CombatLogEntry], snapshot: Snapshot) -> None:
        """Redraw the log from all recorded events, newest turn first."""
        self.clear()
        self.history_size = 0
        visible = [e for e in entries if e.log_type != "turn_start"]
        for turn in sorted({e.turn_number for e in visible}, reverse=True):
            self.write(f"[bold]Turn {turn}[/bold]")
            for entry in visible:
                if entry.turn_number == turn:
                    self.write(f"  {escape(describe_entry(entry, snapshot.player_name))}")
                    self.history_size += 1

    def show_error(self, message: str) -> None:
        self.write(f"[red]{escape(message)}[/red]")


class CountdownDisplay(Static):
    """Time left until the turn deadline."""

    def __init__(self, **kwargs):
        super().__init__("--:--", **kwargs)
        self.current_text = "--:--"

    def update_countdown(self, seconds_left: int, formatted: str) -> None:
        self.current_text = formatted
        if seconds_left <= 60:
            self.update(f"[bold red]{formatted}[/bold red]")
        else:
            self.update(formatted)


class OrdersPanel(Static):
    """Queued orders and speculative credits."""

    def __init__(self, *args, **kwargs):
        """Initialize orders panel."""
        super().__init__(*args, **kwargs)
        self.border_title = "Orders"
        self.current_text = ""

    def update_orders(self, ledger: OrderLedger, submitted: bool = False) -> None:
        """Render the ledger contents.

        Args:
            ledger: Current Order Ledger
            submitted: Mark the orders as sent and awaiting resolution
        """
        lines = [f"Credits: {ledger.speculative_credits} (of {ledger.server_credits})"]
        for i, move in enumerate(ledger.moves):
            lines.append(
                f"  move {i}: mech {move.mech_id} "
                f"({move.from_x}, {move.from_y}) -> ({move.to_x}, {move.to_y})"
            )
        for i, build in enumerate(ledger.builds):
            lines.append(
                f"  build {i}: {build.subtype} {build.kind} on planet {build.planet_id} "
                f"({build.cost} cr)"
            )
        if ledger.is_empty:
            lines.append("  No orders queued")
        if submitted:
            lines.append("[italic]Submitted, waiting for other players...[/italic]")
        self.current_text = "\n".join(lines)
        self.update(self.current_text)
