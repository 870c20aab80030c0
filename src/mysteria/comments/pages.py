"""Small standalone HTML pages returned by the comment verification link."""

from __future__ import annotations

from html import escape

from fastapi.responses import HTMLResponse

from mysteria.email.templates import BG_DARK, INDIGO, VIOLET


def _page(title: str, heading: str, body: str, status_code: int, link: str | None = None) -> HTMLResponse:
    button = ""
    if link:
        button = (
            f'<p style="margin-top: 30px;"><a href="{escape(link)}" style="background-color: {VIOLET}; '
            'color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; '
            'display: inline-block;">Return to Mysteria Realm</a></p>'
        )
    html = f"""\
<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; padding: 40px; text-align: center; background: linear-gradient(135deg, {INDIGO} 0%, {BG_DARK} 100%); color: white; min-height: 100vh; margin: 0;">
    <div style="background: white; color: #333; padding: 40px; border-radius: 12px; max-width: 500px; margin: 0 auto;">
        <h1 style="color: {VIOLET};">{heading}</h1>
        {body}
        {button}
    </div>
</body>
</html>"""
    return HTMLResponse(content=html, status_code=status_code)


def missing_token_page() -> HTMLResponse:
    return _page(
        "Invalid Verification Link",
        "Invalid Verification Link",
        "<p>The verification link is missing required parameters.</p>",
        400,
    )


def invalid_token_page() -> HTMLResponse:
    return _page(
        "Invalid or Expired Link",
        "Invalid or Expired Link",
        "<p>This verification link is invalid or has already been used.</p>",
        404,
    )


def expired_token_page() -> HTMLResponse:
    return _page(
        "Link Expired",
        "Link Expired",
        "<p>This verification link has expired. Please submit your comment again.</p>",
        400,
    )


def verification_failed_page() -> HTMLResponse:
    return _page(
        "Verification Failed",
        "Verification Failed",
        "<p>There was an error verifying your email. Please try again.</p>",
        500,
    )


def verified_page(site_url: str) -> HTMLResponse:
    return _page(
        "Email Verified",
        "Email Verified!",
        '<p style="font-size: 18px; margin: 20px 0;">Your email has been successfully verified.</p>'
        '<p style="font-size: 16px; color: #10b981; font-weight: 600;">Your comment is now live!</p>'
        '<p style="color: #666; margin-top: 10px;">Thank you for sharing your experience!</p>',
        200,
        link=site_url,
    )
