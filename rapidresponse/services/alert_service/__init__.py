"""Alert Service: critical, urgent and warning alerts for the team.

Append-only with dismiss-by-id and clear-all. Interval prompts raised by
the command layer (pulse check due, medication due) land here.
"""

from .alerts import AlertRegistry

__all__ = ["AlertRegistry"]
