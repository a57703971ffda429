"""Admission control — per-session device ceiling."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from streamgate.models.gateway import Session

DEVICE_LIMIT_REACHED = "DeviceLimitReached"


class AdmissionDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    limit: int

    def __bool__(self) -> bool:
        return self.allowed


def admit(session: Session, max_devices: int) -> AdmissionDecision:
    """Allow a new stream iff the session is below ``max_devices``.

    Pure check; counting the admitted device is left to the session store.
    """
    if session.active_devices < max_devices:
        return AdmissionDecision(allowed=True, limit=max_devices)
    return AdmissionDecision(allowed=False, reason=DEVICE_LIMIT_REACHED, limit=max_devices)
