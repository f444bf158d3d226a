"""Reminders attached to onboarding records (client and consultant).

Reminders are scheduled nudges; a delivery job marks them sent. Adding or
sending a reminder is not user activity, so ``last_activity`` is untouched.
"""

from datetime import datetime
from typing import Any

from serenity.schemas.onboarding_documents import Reminder
from serenity.services.onboarding_errors import ReminderNotFoundError


def add_reminder(record: Any, reminder: Reminder) -> Reminder:
    record.reminders = [*(record.reminders or []), reminder.model_dump(mode="json")]
    return reminder


def mark_reminder_sent(record: Any, reminder_id: str, *, now: datetime) -> Reminder:
    """Flag a reminder as delivered.

    Raises:
        ReminderNotFoundError: If the record has no such reminder.
    """
    reminders = [Reminder.model_validate(r) for r in record.reminders or []]
    for index, reminder in enumerate(reminders):
        if reminder.id == reminder_id:
            reminders[index] = reminder.model_copy(update={"sent": True, "sent_at": now})
            break
    else:
        raise ReminderNotFoundError(reminder_id)

    record.reminders = [r.model_dump(mode="json") for r in reminders]
    return reminders[index]

