"""Session Registry: roster of active and finished emergencies.

Owns the Emergency collection exclusively. Timers are associated with an
emergency by identifier elsewhere; this registry never looks at them.
"""

from .registry import SessionRegistry

__all__ = ["SessionRegistry"]
