"""
Subscription manager for RDFPoker push notifications.

Each client streaming /api/receive/{gameStateId} owns a bounded queue.
Services publish PHASE, TURN and RULES notifications after their store
transaction commits; the manager fans each one out to every queue
registered for that game.

Delivery is best-effort: a subscriber whose queue is full or already closed
is dropped from the game and never blocks or fails the publisher.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models.events import Notification, phase_changed, rules_changed, turn_changed
from models.game_state import Phase, Player, Rules

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
MAX_SUBSCRIBERS_PER_GAME = 50


@dataclass
class Subscriber:
    """One open event stream for a game."""
    game_state_id: str
    queue: asyncio.Queue
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    closed: bool = False

    def close(self) -> None:
        """Mark closed and wake the stream so it can finish."""
        if self.closed:
            return
        self.closed = True
        try:
            self.queue.put_nowait(None)
        except asyncio.QueueFull:
            pass


class SubscriptionManager:
    """
    Manage event-stream subscribers per game.

    Subscribers never affect game state; they only receive notifications.
    """

    def __init__(
        self,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        max_subscribers_per_game: int = MAX_SUBSCRIBERS_PER_GAME,
    ):
        self.queue_size = queue_size
        self.max_subscribers_per_game = max_subscribers_per_game
        # game_state_id -> list of Subscriber
        self._subscribers: Dict[str, List[Subscriber]] = {}

    async def subscribe(self, game_state_id: str) -> Optional[Subscriber]:
        """
        Register a new subscriber for a game.

        Args:
            game_state_id: Game to listen to.

        Returns:
            The subscriber, or None if the game is at its subscriber limit.
        """
        subscribers = self._subscribers.setdefault(game_state_id, [])

        if len(subscribers) >= self.max_subscribers_per_game:
            logger.warning(
                f"Game {game_state_id} at subscriber limit ({self.max_subscribers_per_game})"
            )
            return None

        subscriber = Subscriber(
            game_state_id=game_state_id,
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        subscribers.append(subscriber)

        logger.info(f"Subscriber joined game {game_state_id} (total: {len(subscribers)})")
        return subscriber

    async def unsubscribe(self, subscriber: Subscriber) -> None:
        """
        Remove a subscriber, e.g. when its client disconnects.

        Args:
            subscriber: Subscriber returned by subscribe().
        """
        subscriber.close()
        game_state_id = subscriber.game_state_id
        if game_state_id not in self._subscribers:
            return

        self._subscribers[game_state_id] = [
            s for s in self._subscribers[game_state_id] if s is not subscriber
        ]
        logger.info(
            f"Subscriber left game {game_state_id} "
            f"(remaining: {len(self._subscribers[game_state_id])})"
        )

        # Clean up empty games
        if not self._subscribers[game_state_id]:
            del self._subscribers[game_state_id]

    async def publish(self, notification: Notification) -> int:
        """
        Send a notification to every subscriber of its game.

        Args:
            notification: Event to deliver.

        Returns:
            Number of subscribers the event was queued for.
        """
        game_state_id = notification.game_state_id
        if game_state_id not in self._subscribers:
            return 0

        delivered = 0
        dead: List[Subscriber] = []

        for subscriber in self._subscribers[game_state_id]:
            if subscriber.closed:
                dead.append(subscriber)
                continue
            try:
                subscriber.queue.put_nowait(notification)
                delivered += 1
            except asyncio.QueueFull:
                logger.debug(f"Subscriber queue full for game {game_state_id}, dropping it")
                dead.append(subscriber)

        # Clean up dead subscribers
        if dead:
            for subscriber in dead:
                subscriber.close()
            self._subscribers[game_state_id] = [
                s for s in self._subscribers[game_state_id] if s not in dead
            ]
            if not self._subscribers[game_state_id]:
                del self._subscribers[game_state_id]

        return delivered

    async def notify_phase(self, game_state_id: str, phase: Phase) -> int:
        return await self.publish(phase_changed(game_state_id, phase))

    async def notify_turn(self, game_state_id: str, player: Optional[Player]) -> int:
        return await self.publish(turn_changed(game_state_id, player))

    async def notify_rules(self, game_state_id: str, rules: Rules) -> int:
        return await self.publish(rules_changed(game_state_id, rules))

    def get_subscriber_count(self, game_state_id: str) -> int:
        return len(self._subscribers.get(game_state_id, []))

    def get_games_with_subscribers(self) -> dict[str, int]:
        """
        Get all games that have subscribers.

        Returns:
            Dict of game_state_id -> subscriber count.
        """
        return {
            game_state_id: len(subscribers)
            for game_state_id, subscribers in self._subscribers.items()
            if subscribers
        }

    async def close_all(self) -> None:
        """End every open stream (used on shutdown)."""
        for subscribers in self._subscribers.values():
            for subscriber in subscribers:
                subscriber.close()
        count = sum(len(s) for s in self._subscribers.values())
        self._subscribers.clear()
        if count:
            logger.info(f"Closed {count} subscriber streams")


# Global instance
_subscription_manager: Optional[SubscriptionManager] = None


def get_subscription_manager(
    queue_size: int = DEFAULT_QUEUE_SIZE,
    max_subscribers_per_game: int = MAX_SUBSCRIBERS_PER_GAME,
) -> SubscriptionManager:
    """Get the global subscription manager instance."""
    global _subscription_manager
    if _subscription_manager is None:
        _subscription_manager = SubscriptionManager(queue_size, max_subscribers_per_game)
    return _subscription_manager


def close_subscription_manager() -> None:
    """Close the subscription manager."""
    global _subscription_manager
    _subscription_manager = None
