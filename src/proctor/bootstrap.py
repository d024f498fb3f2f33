"""
Wiring for a live session: HTTP gateway + SQL fallback store + controller.
"""

from typing import Optional

import httpx

from infra.http.attempt_client import HttpAttemptGateway
from infra.storage.sql_fallback_store import SqlFallbackStore
from proctor.config import ProctorSettings
from proctor.core.clock import Clock
from proctor.core.controller import SessionController
from proctor.core.fallback_store import LocalFallbackStore
from proctor.core.integrity import IntegrityMonitor
from proctor.core.signals import EnvironmentSignalSource
from proctor.core.submission import SubmissionCoordinator
from proctor.core.types import QuizDefinition


def build_coordinator(
    token: str,
    settings: Optional[ProctorSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    fallback_store: Optional[LocalFallbackStore] = None,
) -> SubmissionCoordinator:
    settings = settings or ProctorSettings()
    gateway = HttpAttemptGateway(
        settings.api_base_url,
        token,
        timeout=settings.primary_timeout_seconds,
        transport=transport,
    )
    return SubmissionCoordinator(
        gateway,
        fallback_store or SqlFallbackStore(settings.fallback_db_url),
        primary_timeout=settings.primary_timeout_seconds,
        secondary_timeout=settings.secondary_timeout_seconds,
    )


def build_session(
    quiz: QuizDefinition,
    coordinator: SubmissionCoordinator,
    signal_source: EnvironmentSignalSource,
    settings: Optional[ProctorSettings] = None,
) -> SessionController:
    settings = settings or ProctorSettings()
    return SessionController(
        quiz,
        coordinator,
        signal_source,
        clock=Clock(tick_interval=settings.tick_interval_seconds),
        monitor=IntegrityMonitor(signal_source, focus_grace_seconds=settings.focus_grace_seconds),
        max_violations=settings.max_violations,
    )
