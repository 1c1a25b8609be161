"""Client engine components.

The Reconciler depends on the storage package, which itself uses the
ledger, so it is imported from `empire_client.engine.reconciler` directly.
"""

from .countdown import TurnCountdown, format_countdown
from .ledger import ChangeKind, LedgerChange, LedgerResult, OrderLedger
from .movement import check_move
from .reveal_builder import build_reveal_queue, describe_entry
from .sequencer import RevealSequencer

__all__ = [
    "TurnCountdown",
    "format_countdown",
    "ChangeKind",
    "LedgerChange",
    "LedgerResult",
    "OrderLedger",
    "check_move",
    "build_reveal_queue",
    "describe_entry",
    "RevealSequencer",
]
