"""Typed user actions dispatched into the session state machine.

The presentation layer never mutates the session directly; every user
gesture becomes one of these values and is handed to
``SessionStateMachine.dispatch``.
"""

from dataclasses import dataclass, field

from chronolens.core.images import EncodedImage
from chronolens.core.presets import Era, ImageStyle, Resolution


@dataclass(frozen=True)
class Action:
    """Base class for all actions."""


# Navigation


@dataclass(frozen=True)
class Start(Action):
    pass


@dataclass(frozen=True)
class CancelCapture(Action):
    pass


@dataclass(frozen=True)
class Capture(Action):
    image: EncodedImage


@dataclass(frozen=True)
class Reset(Action):
    pass


@dataclass(frozen=True)
class BackToPreview(Action):
    pass


# Remote operations


@dataclass(frozen=True)
class Analyze(Action):
    pass


@dataclass(frozen=True)
class GeneratePrompt(Action):
    pass


@dataclass(frozen=True)
class Restore(Action):
    pass


@dataclass(frozen=True)
class StartBatch(Action):
    eras: tuple[Era | str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CustomEdit(Action):
    prompt: str


# Masked editing


@dataclass(frozen=True)
class StartMask(Action):
    display_size: tuple[float, float] | None = None


@dataclass(frozen=True)
class ClearMask(Action):
    pass


@dataclass(frozen=True)
class CancelMask(Action):
    pass


@dataclass(frozen=True)
class ConfirmMask(Action):
    instruction: str


# Result browsing


@dataclass(frozen=True)
class SelectResult(Action):
    index: int


@dataclass(frozen=True)
class NextResult(Action):
    pass


@dataclass(frozen=True)
class PreviousResult(Action):
    pass


@dataclass(frozen=True)
class SelectFilter(Action):
    filter: str


# Configuration


@dataclass(frozen=True)
class SetStyle(Action):
    style: ImageStyle | str


@dataclass(frozen=True)
class SetResolution(Action):
    resolution: Resolution | str


@dataclass(frozen=True)
class SetDetailLevel(Action):
    detail_level: int | float | str


@dataclass(frozen=True)
class SetInstruction(Action):
    instruction: str
