"""Outbound email: transports (mailer.py) and message templates (templates.py)."""
