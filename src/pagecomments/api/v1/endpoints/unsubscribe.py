"""Public unsubscribe page linked from notification emails."""

from __future__ import annotations

from html import escape
from urllib.parse import parse_qs

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse

from pagecomments.api.v1.dependencies import SessionDep
from pagecomments.core.errors import NotFound
from pagecomments.core.settings import settings
from pagecomments.models import Subscription
from pagecomments.services.subscriptions import UnsubscribeResult, get_by_token, unsubscribe

router = APIRouter(tags=["unsubscribe"])

SUCCESS_MESSAGE = "You have been successfully unsubscribed from comment notifications."
NOT_FOUND_MESSAGE = "Subscription not found or already unsubscribed."
ALREADY_UNSUBSCRIBED_MESSAGE = "You are already unsubscribed from this page."
INVALID_LINK_MESSAGE = "Invalid or expired unsubscribe link."

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Unsubscribe from Comment Notifications</title>
    <style>
        body {{ font-family: sans-serif; background: #f5f5f5; padding: 2rem; }}
        .container {{ max-width: 36rem; margin: 0 auto; background: #fff; padding: 2rem;
                      border-radius: 8px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }}
        .message {{ padding: 1rem; border-radius: 4px; margin-bottom: 1rem; }}
        .message.success {{ background: #d4edda; color: #155724; }}
        .message.error {{ background: #f8d7da; color: #721c24; }}
        .info {{ background: #f0f0f0; padding: 1rem; border-radius: 4px; margin: 1rem 0; }}
        .btn {{ display: inline-block; padding: 0.5rem 1rem; border: 0; border-radius: 4px;
                text-decoration: none; cursor: pointer; }}
        .btn-danger {{ background: #dc3545; color: #fff; }}
        .btn-secondary {{ background: #6c757d; color: #fff; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Unsubscribe from Comment Notifications</h1>
{body}
    </div>
</body>
</html>
"""


def _message(text: str, success: bool) -> str:
    css = "success" if success else "error"
    return f'        <div class="message {css}">{escape(text)}</div>\n'


def _return_link() -> str:
    return '        <p><a href="/" class="btn btn-secondary">Return to Site</a></p>\n'


def _confirmation(subscription: Subscription) -> str:
    return (
        '        <div class="info">\n'
        "            <strong>Subscription Details:</strong>\n"
        f"            <div>Page: {escape(subscription.page_url)}</div>\n"
        f"            <div>Email: {escape(subscription.email)}</div>\n"
        "        </div>\n"
        "        <p>Are you sure you want to unsubscribe from comment notifications "
        "for this page?</p>\n"
        '        <form method="POST">\n'
        f'            <input type="hidden" name="token" value="{escape(subscription.token)}">\n'
        '            <input type="hidden" name="confirm" value="1">\n'
        '            <button type="submit" class="btn btn-danger">Yes, Unsubscribe</button>\n'
        '            <a href="/" class="btn btn-secondary">Cancel</a>\n'
        "        </form>\n"
    )


def render_page(
    subscription: Subscription | None, message: str | None = None, success: bool = False
) -> str:
    body = ""
    if message:
        body += _message(message, success)
    if success:
        body += "        <p>You will no longer receive email notifications for new comments.</p>\n"
        body += _return_link()
    elif subscription is not None and subscription.active:
        body += _confirmation(subscription)
    else:
        if not message:
            body += _message(INVALID_LINK_MESSAGE, False)
        body += _return_link()
    return _PAGE.format(body=body.rstrip("\n"))


@router.get(settings.unsubscribe_path, response_class=HTMLResponse)
async def unsubscribe_page(db: SessionDep, token: str = Query("")) -> HTMLResponse:
    """Show what the link would unsubscribe from and ask for confirmation."""
    return HTMLResponse(render_page(get_by_token(db, token)))


@router.post(settings.unsubscribe_path, response_class=HTMLResponse)
async def confirm_unsubscribe(request: Request, db: SessionDep) -> HTMLResponse:
    """Deactivate the subscription once the visitor confirms."""
    form = parse_qs((await request.body()).decode("utf-8", errors="replace"))
    token = form.get("token", [""])[0] or request.query_params.get("token", "")
    confirmed = bool(form.get("confirm", [""])[0])

    if not confirmed or not token:
        return HTMLResponse(render_page(get_by_token(db, token)))

    try:
        result = unsubscribe(db, token)
    except NotFound:
        return HTMLResponse(render_page(None, NOT_FOUND_MESSAGE))

    if result is UnsubscribeResult.UNSUBSCRIBED:
        return HTMLResponse(render_page(None, SUCCESS_MESSAGE, success=True))
    return HTMLResponse(render_page(None, ALREADY_UNSUBSCRIBED_MESSAGE))
