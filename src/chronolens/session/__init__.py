"""Session state machine, its data model and typed actions."""

from chronolens.session.machine import SessionStateMachine
from chronolens.session.models import BUSY_PHASES, Configuration, Phase, Session

__all__ = [
    "BUSY_PHASES",
    "Configuration",
    "Phase",
    "Session",
    "SessionStateMachine",
]
