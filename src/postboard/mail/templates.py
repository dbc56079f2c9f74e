"""Email templates.

Each builder returns (subject, html). Every user-supplied value is
HTML-escaped before it is interpolated.
"""

from html import escape

from postboard.config import settings

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
    "{body}"
    "<br><p>Best regards,<br><strong>The Postboard Team</strong></p>"
    "</div>"
)


def welcome(name: str) -> tuple[str, str]:
    body = (
        '<h2 style="color: #4F46E5;">Welcome to Postboard!</h2>'
        f"<p>Hi <strong>{escape(name)}</strong>,</p>"
        "<p>Thank you for registering! You can now:</p>"
        "<ul>"
        "<li>Create and manage posts</li>"
        "<li>Attach files and images</li>"
        "<li>Reply to posts</li>"
        "<li>Search posts</li>"
        "</ul>"
        f'<p><a href="{escape(settings.app_url)}">Create your first post</a></p>'
    )
    return "Welcome to Postboard!", _WRAPPER.format(body=body)


def post_created(name: str, post_title: str, post_id: str) -> tuple[str, str]:
    url = f"{settings.app_url}/posts/{post_id}"
    body = (
        '<h2 style="color: #4F46E5;">Post created</h2>'
        f"<p>Hi <strong>{escape(name)}</strong>,</p>"
        "<p>Your post has been created:</p>"
        '<div style="background-color: #F3F4F6; padding: 20px; border-radius: 8px;">'
        f'<h3 style="margin-top: 0;">{escape(post_title)}</h3>'
        f'<p><a href="{escape(url)}">View post</a></p>'
        "</div>"
    )
    return f'Your post "{post_title}" has been created', _WRAPPER.format(body=body)


def reply_added(
    name: str, post_title: str, reply_content: str, replier_name: str
) -> tuple[str, str]:
    body = (
        '<h2 style="color: #4F46E5;">New reply on your post</h2>'
        f"<p>Hi <strong>{escape(name)}</strong>,</p>"
        f"<p><strong>{escape(replier_name)}</strong> replied to your post:</p>"
        '<div style="background-color: #F3F4F6; padding: 20px; border-radius: 8px;">'
        f'<h3 style="margin-top: 0;">{escape(post_title)}</h3>'
        f'<p style="font-style: italic;">"{escape(reply_content)}"</p>'
        "</div>"
    )
    return f'New reply on your post "{post_title}"', _WRAPPER.format(body=body)
