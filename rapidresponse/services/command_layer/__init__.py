"""Command Layer: maps user actions onto the registries.

Every protocol uses the same check-then-create-or-update routine:
if an emergency of the relevant kind is active the action goes into its
checklist, otherwise the emergency is activated first.

Commands:
- begin_response - open or join a response, auto-start the code timer
- start_cpr - record CPR, start the cycle timer or count a round
- give_medication - record a dose, restart the medication timer
- mark_action_complete / complete_action - checklist ticks
- stop_timer / reset_timer / advance_timer - timer control
- resolve_emergency / transfer_emergency - terminal transitions
"""

from .commands import EmergencyCommands, TimerRole
from .config import TimerSettings, PROTOCOL_CHECKLISTS, checklist_for
from .context import EmergencyContext

__all__ = [
    "EmergencyCommands",
    "TimerRole",
    "TimerSettings",
    "PROTOCOL_CHECKLISTS",
    "checklist_for",
    "EmergencyContext",
]
