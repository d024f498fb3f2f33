"""
Integrity monitor: turns environment signals into violation events.

Every qualifying signal produces exactly one violation. The only debounce is
on focus loss: a violation fires when focus stays away longer than the grace
period, so rapid blur/focus flicker is ignored.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from proctor.core.signals import EnvironmentSignal, EnvironmentSignalSource, SignalKind
from proctor.core.types import utcnow

logger = logging.getLogger(__name__)

ViolationCallback = Callable[[str], None]

FOCUS_LOST_MESSAGE = "Window focus lost. Please keep the test window active."
TAB_SWITCH_MESSAGE = "Tab switching detected. Please remain on the test page."
COPY_MESSAGE = "Copying is not allowed during the test."
PASTE_MESSAGE = "Pasting is not allowed during the test."
CONTEXT_MENU_MESSAGE = "Right-clicking is not allowed during the test."
FUNCTION_KEY_MESSAGE = "Function keys are disabled during the test."
SCREEN_CAPTURE_MESSAGE = "Screen capture is not allowed during the test."

SHORTCUT_KEYS = frozenset("cvfpa")  # copy, paste, find, print, select-all
FUNCTION_KEYS = frozenset(f"F{n}" for n in range(1, 13))
SCREEN_CAPTURE_KEY = "PrintScreen"

_FOCUS_AWAY = (SignalKind.FOCUS_LOST, SignalKind.VISIBILITY_HIDDEN)
_FOCUS_BACK = (SignalKind.FOCUS_GAINED, SignalKind.VISIBILITY_VISIBLE)


@dataclass(frozen=True)
class IntegrityViolation:
    """Policy signal, not an error. Escalation is the controller's decision."""

    kind: SignalKind
    message: str
    occurred_at: datetime = field(default_factory=utcnow)


def violation_message(signal: EnvironmentSignal) -> Optional[str]:
    """Message for an immediately-violating signal, None if the signal is allowed."""
    if signal.kind is SignalKind.COPY:
        return COPY_MESSAGE
    if signal.kind is SignalKind.PASTE:
        return PASTE_MESSAGE
    if signal.kind is SignalKind.CONTEXT_MENU:
        return CONTEXT_MENU_MESSAGE
    if signal.kind is not SignalKind.KEY_DOWN or not signal.key:
        return None

    key = signal.key
    if (signal.ctrl or signal.meta) and key.lower() in SHORTCUT_KEYS:
        return f"Keyboard shortcut (Ctrl+{key.upper()}) is not allowed during the test."
    if key in FUNCTION_KEYS:
        return FUNCTION_KEY_MESSAGE
    if key == SCREEN_CAPTURE_KEY:
        return SCREEN_CAPTURE_MESSAGE
    return None


class IntegrityMonitor:
    def __init__(self, source: EnvironmentSignalSource, *, focus_grace_seconds: float = 1.0):
        self.source = source
        self.focus_grace_seconds = focus_grace_seconds
        self.violations: List[IntegrityViolation] = []
        self._on_violation: Optional[ViolationCallback] = None
        self._focus_timer: Optional[asyncio.TimerHandle] = None
        self._away_kind: Optional[SignalKind] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def active(self) -> bool:
        return self._on_violation is not None

    def start(self, on_violation: ViolationCallback) -> None:
        if self.active:
            raise RuntimeError("integrity monitor already started")
        self._loop = asyncio.get_running_loop()
        self._on_violation = on_violation
        self.source.subscribe(self._handle_signal)

    def stop(self) -> None:
        """No violation callback fires after this returns."""
        if not self.active:
            return
        self._on_violation = None
        self._cancel_focus_timer()
        self.source.unsubscribe()

    # ----- Internals -----

    def _handle_signal(self, signal: EnvironmentSignal) -> None:
        if not self.active:
            return
        if signal.kind in _FOCUS_AWAY:
            # A hidden tab usually follows a blur; report the more specific cause.
            if self._away_kind is not SignalKind.VISIBILITY_HIDDEN:
                self._away_kind = signal.kind
            if self._focus_timer is None:
                self._focus_timer = self._loop.call_later(self.focus_grace_seconds, self._focus_grace_elapsed)
            return
        if signal.kind in _FOCUS_BACK:
            self._cancel_focus_timer()
            return
        message = violation_message(signal)
        if message is not None:
            self._raise(signal.kind, message)

    def _focus_grace_elapsed(self) -> None:
        self._focus_timer = None
        kind, self._away_kind = self._away_kind or SignalKind.FOCUS_LOST, None
        if self.active:
            message = TAB_SWITCH_MESSAGE if kind is SignalKind.VISIBILITY_HIDDEN else FOCUS_LOST_MESSAGE
            self._raise(kind, message)

    def _cancel_focus_timer(self) -> None:
        self._away_kind = None
        if self._focus_timer is not None:
            self._focus_timer.cancel()
            self._focus_timer = None

    def _raise(self, kind: SignalKind, message: str) -> None:
        violation = IntegrityViolation(kind=kind, message=message)
        self.violations.append(violation)
        logger.info("integrity violation kind=%s message=%s", kind.value, message)
        callback = self._on_violation
        if callback is not None:
            callback(message)
