"""Clock and identifier helpers shared by the registries."""
import uuid
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default wall clock (timezone-aware UTC)."""
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Create an opaque identifier, e.g. ``emergency_3f9a1c0b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
