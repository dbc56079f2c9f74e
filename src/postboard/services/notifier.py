"""Fire-and-forget user notifications.

Learn: Emails are a side effect, never part of the request's outcome.
Notifier.dispatch() wraps the delivery in an asyncio.Task and returns
immediately — the route responds without awaiting it. Failures are
logged inside the task and go no further.

Tasks are kept in a set until they finish; asyncio only holds weak
references to running tasks, so an untracked one can be garbage
collected mid-flight. drain() lets shutdown (and tests) wait for
whatever is still in progress.
"""

import asyncio
from typing import Optional

import structlog

from postboard.mail import templates
from postboard.mail.mailer import Mailer, build_mailer

logger = structlog.get_logger()


class Notifier:
    """Schedules emails without blocking the caller."""

    def __init__(self, mailer: Mailer):
        self.mailer = mailer
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, kind: str, to: str, subject: str, html: str) -> asyncio.Task:
        """Schedule one email. Never raises because of delivery problems."""
        task = asyncio.create_task(self._deliver(kind, to, subject, html))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, kind: str, to: str, subject: str, html: str) -> None:
        try:
            await self.mailer.send(to, subject, html)
            logger.info("notification.sent", kind=kind, to=to)
        except Exception:
            logger.exception("notification.failed", kind=kind, to=to)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries to finish."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)

    # ─── Typed helpers ──────────────────────────────────

    def welcome(self, email: str, name: str) -> asyncio.Task:
        subject, html = templates.welcome(name)
        return self.dispatch("welcome", email, subject, html)

    def post_created(
        self, email: str, name: str, post_title: str, post_id: str
    ) -> asyncio.Task:
        subject, html = templates.post_created(name, post_title, post_id)
        return self.dispatch("post_created", email, subject, html)

    def reply_added(
        self,
        email: str,
        name: str,
        post_title: str,
        reply_content: str,
        replier_name: str,
    ) -> asyncio.Task:
        subject, html = templates.reply_added(
            name, post_title, reply_content, replier_name
        )
        return self.dispatch("reply_added", email, subject, html)


# Process-wide notifier, replaced via dependency override in tests
notifier = Notifier(build_mailer())


def get_notifier() -> Notifier:
    """FastAPI dependency for the shared notifier."""
    return notifier
