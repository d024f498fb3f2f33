"""
Environment signals observed while a session is open.

The host UI adapter translates its own events (window blur, clipboard,
keyboard, context menu) into EnvironmentSignal values and pushes them into an
EnvironmentSignalSource. The monitor only ever sees this contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class SignalKind(str, Enum):
    FOCUS_LOST = "focus_lost"
    FOCUS_GAINED = "focus_gained"
    VISIBILITY_HIDDEN = "visibility_hidden"
    VISIBILITY_VISIBLE = "visibility_visible"
    COPY = "copy"
    PASTE = "paste"
    KEY_DOWN = "key_down"
    CONTEXT_MENU = "context_menu"


@dataclass(frozen=True)
class EnvironmentSignal:
    kind: SignalKind
    key: Optional[str] = None
    ctrl: bool = False
    meta: bool = False

    @classmethod
    def key_down(cls, key: str, *, ctrl: bool = False, meta: bool = False) -> "EnvironmentSignal":
        return cls(SignalKind.KEY_DOWN, key=key, ctrl=ctrl, meta=meta)


SignalHandler = Callable[[EnvironmentSignal], None]


class EnvironmentSignalSource(ABC):
    """Single-subscriber source of environment signals."""

    @abstractmethod
    def subscribe(self, handler: SignalHandler) -> None:
        raise NotImplementedError

    @abstractmethod
    def unsubscribe(self) -> None:
        """After return, the previously subscribed handler is never called again."""
        raise NotImplementedError


class SignalBus(EnvironmentSignalSource):
    """In-process source; the host adapter calls `emit` for every raw event."""

    def __init__(self):
        self._handler: Optional[SignalHandler] = None

    def subscribe(self, handler: SignalHandler) -> None:
        if self._handler is not None:
            raise RuntimeError("signal bus already has a subscriber")
        self._handler = handler

    def unsubscribe(self) -> None:
        self._handler = None

    @property
    def subscribed(self) -> bool:
        return self._handler is not None

    def emit(self, signal: EnvironmentSignal) -> None:
        handler = self._handler
        if handler is not None:
            handler(signal)
