"""Dependency injection for FastAPI endpoints"""

import uuid
from typing import Optional

from fastapi import BackgroundTasks, Header, Request

from goldloan_core.domain.exceptions import ValidationError
from goldloan_core.infrastructure.clients.events import LifecycleEventClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(x_actor_id: Optional[str] = Header(None)) -> str:
    """Identity of the officer issuing a command, for audit fields"""
    if x_actor_id is None or not x_actor_id.strip():
        raise ValidationError("X-Actor-Id", "Actor identity header is required")
    return x_actor_id.strip()


def get_event_client() -> LifecycleEventClient:
    """Provide lifecycle event webhook client instance"""
    return LifecycleEventClient()


def parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError(label, f"Invalid {label} format")


def schedule_event(
    background_tasks: BackgroundTasks,
    client: LifecycleEventClient,
    event: str,
    loan,
    actor: str,
) -> None:
    """Queue a lifecycle event for delivery after the response is sent"""
    if not client.enabled:
        return
    background_tasks.add_task(
        client.send_event,
        {
            "event": event,
            "loan_id": str(loan.id),
            "loan_number": loan.loan_number,
            "status": loan.status.value,
            "actor": actor,
        },
    )
