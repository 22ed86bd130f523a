"""
Request dependencies: service container, acting staff member and call sessions.

The acting staff member is named by the X-Actor-Id header. Each actor owns one call
session slot for the lifetime of the process; sessions are never shared.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Dict, Iterator, Optional

from fastapi import Depends, Header, HTTPException

from domain.call_session import CallSession, Ticker
from domain.errors import PermissionDeniedError, RecordNotFoundError, WorkflowValidationError
from repositories.store import StoreError
from services.call_timer import LoopTicker
from services.container import ServiceContainer, build_container
from services.context import ActorContext
from services.settings import load_settings

logger = logging.getLogger(__name__)


class CallSessionRegistry:
    """
    One CallSession per actor id.

    Sync dependencies resolve in worker threads, so lookups are locked.
    """

    def __init__(self, ticker_factory: Optional[Callable[[], Ticker]] = LoopTicker) -> None:
        self._ticker_factory = ticker_factory
        self._sessions: Dict[str, CallSession] = {}
        self._lock = threading.Lock()

    def session_for(self, actor_id: str) -> CallSession:
        with self._lock:
            session = self._sessions.get(actor_id)
            if session is None:
                ticker = self._ticker_factory() if self._ticker_factory is not None else None
                session = CallSession(ticker)
                self._sessions[actor_id] = session
            return session

    def teardown_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.teardown()


@lru_cache(maxsize=1)
def get_container() -> ServiceContainer:
    return build_container(load_settings())


@lru_cache(maxsize=1)
def get_session_registry() -> CallSessionRegistry:
    return CallSessionRegistry()


def get_actor_context(
    x_actor_id: str = Header(..., description="Staff id of the acting user"),
    container: ServiceContainer = Depends(get_container),
    sessions: CallSessionRegistry = Depends(get_session_registry),
) -> ActorContext:
    try:
        actor = container.staff.get_staff(x_actor_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load staff member: {e}")
    if actor is None:
        raise HTTPException(status_code=401, detail=f"Unknown staff member: {x_actor_id}")
    if not actor.is_approved:
        raise HTTPException(status_code=403, detail="Your account is awaiting approval.")
    return ActorContext(actor=actor, call_session=sessions.session_for(actor.staff_id))


@contextmanager
def service_errors(action: str) -> Iterator[None]:
    """Translate service exceptions into HTTP errors."""

    try:
        yield
    except HTTPException:
        raise
    except WorkflowValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreError as e:
        logger.error(f"Store error while trying to {action}", extra={"error": str(e), "mutated": e.mutated})
        raise HTTPException(
            status_code=502,
            detail=f"Failed to {action}: {e} ({e.mutated} records written)"
        )
    except Exception as e:
        logger.exception(f"Unexpected error while trying to {action}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to {action}: {str(e)}"
        )


__all__ = [
    "CallSessionRegistry",
    "get_actor_context",
    "get_container",
    "get_session_registry",
    "service_errors",
]
