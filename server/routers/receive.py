"""
Server-sent event stream for RDFPoker.

Clients open GET /api/receive/{gameStateId} and receive PHASE, TURN and
RULES events for that game as they happen:

    event: TURN
    data: {"playerId": "...", "playerNickName": "..."}

A comment line is sent every SSE_KEEPALIVE_SECONDS so proxies keep the
connection open.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from services.subscriptions import Subscriber, SubscriptionManager

router = APIRouter(prefix="/api/receive", tags=["receive"])

KEEPALIVE_FRAME = ": keepalive\n\n"

_subscriptions: Optional[SubscriptionManager] = None
_keepalive_seconds: float = 15


def set_receive_dependencies(
    subscriptions: SubscriptionManager,
    keepalive_seconds: float = 15,
) -> None:
    """Set the subscription manager and keepalive interval (called from main.py)."""
    global _subscriptions, _keepalive_seconds
    _subscriptions = subscriptions
    _keepalive_seconds = keepalive_seconds


def get_subscriptions_dep() -> SubscriptionManager:
    """Dependency to get the subscription manager."""
    if _subscriptions is None:
        raise HTTPException(status_code=503, detail="Notifications not initialized")
    return _subscriptions


async def event_stream(
    subscriber: Subscriber,
    subscriptions: SubscriptionManager,
    keepalive_seconds: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one subscriber until it is closed or the client leaves.

    The subscriber is always unsubscribed when the stream ends.
    """
    try:
        while not subscriber.closed:
            if is_disconnected is not None and await is_disconnected():
                break
            try:
                notification = await asyncio.wait_for(
                    subscriber.queue.get(), timeout=keepalive_seconds
                )
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue
            if notification is None:
                break
            yield notification.to_sse()
    finally:
        await subscriptions.unsubscribe(subscriber)


@router.get("/{game_state_id}")
async def receive(
    game_state_id: UUID,
    request: Request,
    subscriptions: SubscriptionManager = Depends(get_subscriptions_dep),
):
    subscriber = await subscriptions.subscribe(str(game_state_id))
    if subscriber is None:
        raise HTTPException(status_code=503, detail="Too many listeners for this game")

    return StreamingResponse(
        event_stream(subscriber, subscriptions, _keepalive_seconds, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
