"""Notifier, mailer and template tests."""

import asyncio

import pytest

from postboard.config import Settings
from postboard.mail import templates
from postboard.mail.mailer import LogMailer, SmtpMailer, build_mailer
from postboard.services.notifier import Notifier


class SlowMailer:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html):
        await asyncio.sleep(0.05)
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest.mark.asyncio
async def test_dispatch_returns_before_delivery():
    mailer = SlowMailer()
    notifier = Notifier(mailer)

    notifier.dispatch("test", "a@x.com", "Hi", "<p>hi</p>")
    assert mailer.sent == []
    assert notifier.pending == 1

    await notifier.drain(timeout=5)
    assert notifier.pending == 0
    assert mailer.sent == [{"to": "a@x.com", "subject": "Hi", "html": "<p>hi</p>"}]


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed(mailer):
    mailer.fail = True
    notifier = Notifier(mailer)
    task = notifier.welcome("a@x.com", "A")
    await notifier.drain(timeout=5)

    assert task.done()
    assert task.exception() is None


@pytest.mark.asyncio
async def test_drain_with_nothing_pending(mailer):
    notifier = Notifier(mailer)
    await notifier.drain()
    assert notifier.pending == 0


@pytest.mark.asyncio
async def test_typed_helpers_render_templates(mailer):
    notifier = Notifier(mailer)

    notifier.welcome("a@x.com", "Ann")
    notifier.post_created("a@x.com", "Ann", "My post", "123")
    notifier.reply_added("a@x.com", "Ann", "My post", "Nice!", "Bob")
    await notifier.drain(timeout=5)

    subjects = sorted(m["subject"] for m in mailer.sent)
    assert subjects == [
        'New reply on your post "My post"',
        "Welcome to Postboard!",
        'Your post "My post" has been created',
    ]


@pytest.mark.asyncio
async def test_log_mailer_sends_nothing():
    await LogMailer().send("a@x.com", "Subject", "<p>body</p>")


# ═══════════════════════════════════════════════════════════
# Templates
# ═══════════════════════════════════════════════════════════


def test_templates_escape_user_content():
    _, html = templates.reply_added(
        "<b>Ann</b>", "<script>x</script>", "a & b", "Bob\"s"
    )
    assert "<script>" not in html
    assert "&lt;script&gt;x&lt;/script&gt;" in html
    assert "&lt;b&gt;Ann&lt;/b&gt;" in html
    assert "a &amp; b" in html


def test_post_created_links_to_post():
    _, html = templates.post_created("Ann", "Title", "abc-123")
    assert "/posts/abc-123" in html


# ═══════════════════════════════════════════════════════════
# Mailer selection
# ═══════════════════════════════════════════════════════════


def test_build_mailer_backends():
    assert isinstance(build_mailer(Settings(mail_backend="log")), LogMailer)

    smtp = build_mailer(
        Settings(mail_backend="smtp", smtp_host="mail.example.com", smtp_port=2525)
    )
    assert isinstance(smtp, SmtpMailer)
    assert smtp.host == "mail.example.com"
    assert smtp.port == 2525

    with pytest.raises(ValueError, match="Unknown mail backend"):
        build_mailer(Settings(mail_backend="carrier-pigeon"))


def test_smtp_message_has_html_part():
    mailer = SmtpMailer(host="localhost", port=25, sender="noreply@example.com")
    msg = mailer.build_message("a@x.com", "Hello", "<p>Hi</p>")
    assert msg["To"] == "a@x.com"
    assert msg["From"] == "noreply@example.com"
    assert msg["Subject"] == "Hello"
    html_part = msg.get_body(preferencelist=("html",))
    assert "<p>Hi</p>" in html_part.get_content()
