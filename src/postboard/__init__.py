"""Postboard — multi-user posts with threaded replies.

Accounts register and log in with email/password, receive JWT
access/refresh token pairs, publish posts with an optional attached
file, and reply to each other's posts.
"""

__version__ = "0.1.0"
