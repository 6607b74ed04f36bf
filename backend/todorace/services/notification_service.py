"""
services/notification_service.py — In-process real-time notification channel.

Channels are explicitly owned handles, tied to a session:

  - Session start (register/login, or POST /notifications/channels) calls
    open_channel() and hands the resulting ChannelHandle to the client.
  - Session end (logout, or DELETE /notifications/channels/<id>) calls
    close_channel() with that handle's channel_id.
  - The reconnection policy (attempt count, delay) travels inside the handle
    and comes from app config, never from module state in the client.

Delivery is fire-and-forget: publish() never raises and never blocks on a
recipient. Events addressed to a user with no open channel are dropped.

Layer rules:
  - No Flask request/g access. init_app() reads config once at startup.
  - No imports from models, routes or other services.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from backend.todorace.errors import AuthorizationError, ErrorCode, NotFoundError

logger = logging.getLogger(__name__)

NEW_JOIN_REQUEST = "new_join_request"


@dataclass(frozen=True)
class ChannelHandle:
    channel_id: str
    user_id: int
    opened_at: datetime
    reconnect_attempts: int
    reconnect_delay_ms: int

    def to_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "user_id": self.user_id,
            "opened_at": self.opened_at.isoformat(),
            "reconnect": {
                "attempts": self.reconnect_attempts,
                "delay_ms": self.reconnect_delay_ms,
            },
        }


@dataclass
class _Channel:
    handle: ChannelHandle
    mailbox: deque = field(default_factory=deque)


class NotificationHub:
    """
    Registry of open channels keyed by channel_id, indexed by user_id.

    A user may hold several channels at once (one per device/session); a
    published event is copied into every open channel of the recipient.
    """

    def __init__(
            self,
            reconnect_attempts: int = 5,
            reconnect_delay_ms: int = 1000,
            mailbox_size: int = 100,
    ) -> None:
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_delay_ms = reconnect_delay_ms
        self.mailbox_size = mailbox_size
        self._lock = threading.Lock()
        self._channels: dict[str, _Channel] = {}
        self._by_user: dict[int, set[str]] = {}

    def init_app(self, app) -> None:
        """Reads reconnect and mailbox settings and drops any existing channels."""
        self.reconnect_attempts = app.config.get("NOTIFY_RECONNECT_ATTEMPTS", 5)
        self.reconnect_delay_ms = app.config.get("NOTIFY_RECONNECT_DELAY_MS", 1000)
        self.mailbox_size = app.config.get("NOTIFY_MAILBOX_SIZE", 100)
        self.reset()
        app.extensions["notifier"] = self

    def reset(self) -> None:
        with self._lock:
            self._channels.clear()
            self._by_user.clear()

    # ── Session lifecycle ──────────────────────────────────────────────────

    def open_channel(self, user_id: int) -> ChannelHandle:
        handle = ChannelHandle(
            channel_id=secrets.token_urlsafe(16),
            user_id=user_id,
            opened_at=datetime.now(timezone.utc),
            reconnect_attempts=self.reconnect_attempts,
            reconnect_delay_ms=self.reconnect_delay_ms,
        )
        channel = _Channel(handle=handle, mailbox=deque(maxlen=self.mailbox_size))
        with self._lock:
            self._channels[handle.channel_id] = channel
            self._by_user.setdefault(user_id, set()).add(handle.channel_id)

        logger.info("Opened notification channel %s for user %s", handle.channel_id, user_id)
        return handle

    def close_channel(self, channel_id: str, owner_id: int | None = None) -> None:
        """
        Closes a channel. When owner_id is given, the channel must belong to
        that user (AuthorizationError otherwise).

        Raises:
          NotFoundError(CHANNEL_NOT_FOUND) — unknown or already-closed channel
        """
        with self._lock:
            channel = self._get_owned(channel_id, owner_id)
            del self._channels[channel_id]
            user_channels = self._by_user.get(channel.handle.user_id, set())
            user_channels.discard(channel_id)
            if not user_channels:
                self._by_user.pop(channel.handle.user_id, None)

        logger.info("Closed notification channel %s", channel_id)

    # ── Delivery ───────────────────────────────────────────────────────────

    def publish(self, user_id: int, event: str, payload: dict[str, Any]) -> int:
        """
        Queues an event for every open channel of user_id.

        Returns the number of channels the event was queued on (0 when the
        recipient is offline). Never raises.
        """
        message = {
            "event": event,
            "payload": payload,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        with self._lock:
            channel_ids = list(self._by_user.get(user_id, ()))
            for channel_id in channel_ids:
                self._channels[channel_id].mailbox.append(message)

        if not channel_ids:
            logger.debug("Dropped %s event for offline user %s", event, user_id)
        return len(channel_ids)

    def drain(self, channel_id: str, owner_id: int | None = None) -> list[dict]:
        """Pops and returns all queued events on a channel, oldest first."""
        with self._lock:
            channel = self._get_owned(channel_id, owner_id)
            events = list(channel.mailbox)
            channel.mailbox.clear()
        return events

    def open_channels_for(self, user_id: int) -> list[ChannelHandle]:
        with self._lock:
            return [
                self._channels[cid].handle
                for cid in self._by_user.get(user_id, ())
            ]

    # ── Private helpers ────────────────────────────────────────────────────

    def _get_owned(self, channel_id: str, owner_id: int | None) -> _Channel:
        # Caller must hold self._lock.
        channel = self._channels.get(channel_id)
        if channel is None:
            raise NotFoundError(
                ErrorCode.CHANNEL_NOT_FOUND,
                f"Notification channel '{channel_id}' is not open.",
            )
        if owner_id is not None and channel.handle.user_id != owner_id:
            raise AuthorizationError(
                ErrorCode.FORBIDDEN,
                "You may only use your own notification channels.",
            )
        return channel
