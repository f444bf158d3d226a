"""Onboarding notification emails.

One plain-text template per ``NotificationKind``. The dispatcher renders
the template with the payload and hands it to Resend through
``serenity.core.email``. Delivery errors propagate; the orchestrator
decides that they never fail an onboarding operation.
"""

import logging
from dataclasses import dataclass
from typing import Any

from serenity.core.config import settings
from serenity.core.email import send_email
from serenity.services.collaborators import NotificationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: str


_TEMPLATES: dict[NotificationKind, EmailTemplate] = {
    NotificationKind.CLIENT_WELCOME: EmailTemplate(
        subject="Welcome to Serenity",
        body=(
            "Hi {name},\n\n"
            "Welcome aboard! Your onboarding is ready. It takes a few short "
            "steps to tell us about your company and what you need.\n\n"
            "Continue here: {dashboard_url}\n"
        ),
    ),
    NotificationKind.CONSULTANT_WELCOME: EmailTemplate(
        subject="Welcome to the Serenity consultant network",
        body=(
            "Hi {name},\n\n"
            "Thanks for joining. Complete your onboarding so our team can "
            "review your profile.\n\n"
            "Continue here: {dashboard_url}\n"
        ),
    ),
    NotificationKind.SESSION_SCHEDULED: EmailTemplate(
        subject="Your welcome call is scheduled",
        body=(
            "Hi {name},\n\n"
            "Your {session_type} is scheduled for {scheduled_at}.\n\n"
            "Details: {dashboard_url}\n"
        ),
    ),
    NotificationKind.INTERVIEW_SCHEDULED: EmailTemplate(
        subject="Your onboarding interview is scheduled",
        body=(
            "Hi {name},\n\n"
            "Your interview with {interviewer_name} is scheduled for "
            "{scheduled_at}.\n\n"
            "Details: {dashboard_url}\n"
        ),
    ),
    NotificationKind.REVIEW_REQUESTED: EmailTemplate(
        subject="Consultant onboarding ready for review",
        body=(
            "Hi {name},\n\n"
            "{consultant_name} has completed onboarding and is waiting for "
            "review.\n\n"
            "Review: {review_url}\n"
        ),
    ),
    NotificationKind.CONSULTANT_APPROVED: EmailTemplate(
        subject="Your consultant profile is approved",
        body=(
            "Hi {name},\n\n"
            "Good news: your onboarding was approved and your profile is now "
            "visible to clients.\n\n"
            "Dashboard: {dashboard_url}\n"
        ),
    ),
    NotificationKind.CONSULTANT_REJECTED: EmailTemplate(
        subject="Update on your consultant application",
        body=(
            "Hi {name},\n\n"
            "After review we are unable to approve your onboarding at this "
            "time.\n\n"
            "Reason: {reason}\n"
        ),
    ),
    NotificationKind.ONBOARDING_ASSIGNED: EmailTemplate(
        subject="New client onboarding assigned to you",
        body=(
            "Hi {name},\n\n"
            "You now own the onboarding of {client_name}.\n\n"
            "Open it: {onboarding_url}\n"
        ),
    ),
}


class _DefaultDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(kind: NotificationKind, payload: dict[str, Any]) -> EmailTemplate:
    """Fill a template. Missing payload keys render as empty strings."""
    template = _TEMPLATES[kind]
    values = _DefaultDict(
        {"dashboard_url": f"{settings.frontend_url}/onboarding", **payload}
    )
    return EmailTemplate(
        subject=template.subject.format_map(values),
        body=template.body.format_map(values),
    )


class EmailNotificationDispatcher:
    """NotificationDispatcher sending plain-text emails through Resend."""

    async def notify(
        self,
        recipient_email: str,
        kind: NotificationKind,
        payload: dict[str, Any],
    ) -> None:
        message = render(kind, payload)
        sent = await send_email(
            to_email=recipient_email, subject=message.subject, text=message.body
        )
        if sent:
            logger.info("Sent %s notification", kind.value)
