"""
Notification sinks for due-date reminders.

A sink receives one ReminderEvent per call and either delivers it or raises.
The scanner owns timeouts and retries; sinks only translate transport errors
into SinkFailureError.
"""

import logging
from datetime import datetime
from typing import (
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    Union,
)

from aiogram import Bot

from models.reminder import ReminderEvent
from utils.exceptions import SinkFailureError

logger = logging.getLogger(__name__)

ChatIdResolver = Callable[[str], Optional[Union[int, str]]]


class NotificationSink(Protocol):
    """Anything the reminder scanner can hand a reminder to."""

    async def notify(self, event: ReminderEvent) -> None:
        ...


def format_reminder(event: ReminderEvent) -> str:
    """Human-readable reminder text."""
    return (
        f"🔔 Reminder: Task '{event.task_name}' is due on "
        f"{event.due_at.strftime('%d.%m.%Y at %H:%M')} UTC"
    )


class LoggingSink:
    """Writes every reminder to the log. Default when no transport is configured."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    async def notify(self, event: ReminderEvent) -> None:
        self.log.info(
            "Reminder: Task '%s' is due on %s for user %s",
            event.task_name,
            event.due_at.isoformat(),
            event.owner_id,
        )


class TelegramSink:
    """
    Sends reminders as Telegram messages.

    By default the task owner ID is used as the chat ID; pass ``resolve_chat_id``
    when owners are identified differently.
    """

    def __init__(self, bot: Bot, resolve_chat_id: Optional[ChatIdResolver] = None):
        self.bot = bot
        self.resolve_chat_id = resolve_chat_id or _owner_as_chat_id

    async def notify(self, event: ReminderEvent) -> None:
        """
        Send a reminder to the task owner.

        Raises:
            SinkFailureError: If the owner has no chat or sending fails
        """
        chat_id = self.resolve_chat_id(event.owner_id)
        if chat_id is None:
            raise SinkFailureError(
                f"No Telegram chat for user {event.owner_id}", task_id=event.task_id
            )

        try:
            await self.bot.send_message(chat_id, format_reminder(event))
        except Exception as e:
            raise SinkFailureError(
                f"Failed to send reminder for task {event.task_id}: {e}",
                task_id=event.task_id,
            ) from e

        logger.debug("Reminder for task %s sent to chat %s", event.task_id, chat_id)


class CompositeSink:
    """
    Delivers each event to every child sink.

    When some children fail, the ones that succeeded are remembered for that
    task and due date, so a retried event only goes to the children that
    have not received it yet.
    """

    def __init__(self, sinks: Sequence[NotificationSink]):
        self.sinks: List[NotificationSink] = list(sinks)
        # (task_id, due_at) -> indexes of children that already delivered
        self._delivered: Dict[Tuple[str, datetime], Set[int]] = {}

    @property
    def pending_retries(self) -> int:
        return len(self._delivered)

    async def notify(self, event: ReminderEvent) -> None:
        """
        Notify all sinks that have not yet received this event.

        Raises:
            SinkFailureError: If at least one child sink failed
        """
        self._forget_past_due(event.fired_at)

        key = (event.task_id, event.due_at)
        delivered = self._delivered.setdefault(key, set())
        errors = []
        for index, sink in enumerate(self.sinks):
            if index in delivered:
                continue
            try:
                await sink.notify(event)
            except Exception as e:
                errors.append(f"{type(sink).__name__}: {e}")
            else:
                delivered.add(index)

        if errors:
            raise SinkFailureError("; ".join(errors), task_id=event.task_id)
        del self._delivered[key]

    def _forget_past_due(self, now: datetime) -> None:
        # A due date before now is outside every future window, so it is never retried
        for key in [key for key in self._delivered if key[1] < now]:
            del self._delivered[key]


def _owner_as_chat_id(owner_id: str) -> Optional[Union[int, str]]:
    owner_id = owner_id.strip()
    if not owner_id:
        return None
    if owner_id.lstrip("-").isdigit():
        return int(owner_id)
    # Public channel usernames are valid chat IDs
    return owner_id if owner_id.startswith("@") else None
