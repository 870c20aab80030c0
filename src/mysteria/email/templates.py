"""
Email templates for Mysteria Realm.

All templates use inline CSS for maximum email client compatibility.
Dark violet theme with the site's purple accent (#8B5CF6).

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_DARK = "#0B0714"
BG_CARD = "#150F24"
BG_SURFACE = "#1E1633"
VIOLET = "#8B5CF6"
INDIGO = "#667EEA"
TEXT_PRIMARY = "#F5F3FF"
TEXT_SECONDARY = "#A79FBF"
BORDER = "#2A2140"

APP_NAME = "Mysteria Realm"


def _base_layout(content: str, app_name: str = APP_NAME) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: Georgia, 'Times New Roman', serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_DARK};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 32px;">
                            <span style="font-size: 24px; font-weight: 700; color: {VIOLET}; letter-spacing: 2px;">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 40px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 32px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                This email was sent by {app_name}.<br>
                                If you didn't expect this email, you can safely ignore it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    """Render a violet CTA button."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {VIOLET}; border-radius: 6px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 12px 24px; color: #FFFFFF; font-size: 16px; font-weight: 600; text-decoration: none; border-radius: 6px;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def comment_verification(name: str, verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """
    Sent once per submitted comment; the link publishes the comment.

    Returns:
        (subject, html_body, text_body)
    """
    safe_name = escape(name)
    subject = f"Confirm your comment on {APP_NAME}"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; font-weight: 700; margin: 0 0 16px 0;">Confirm your comment</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {safe_name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 24px 0;">
    Thank you for sharing your experience. Verify your email address and your comment goes live right away.
</p>
{_button(verify_url, "Verify Email & Publish")}
<p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 24px 0 0 0;">
    This link expires in <strong style="color: {TEXT_PRIMARY};">{expires_hours} hours</strong>
    and works only once.
</p>
<hr style="border: none; border-top: 1px solid {BORDER}; margin: 24px 0;">
<p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
    If the button doesn't work, copy and paste this URL:<br>
    <a href="{verify_url}" style="color: {VIOLET}; word-break: break-all;">{verify_url}</a>
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {name},\n\n"
        f"Thank you for commenting on {APP_NAME}. Verify your email address to publish "
        f"your comment:\n\n{verify_url}\n\n"
        f"This link expires in {expires_hours} hours and works only once.\n\n"
        f"If you did not leave a comment, please ignore this email.\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, html_body, text_body


def mystery_winner(name: str, site_url: str) -> tuple[str, str, str]:
    """
    Mystery challenge winner announcement.

    Returns:
        (subject, html_body, text_body)
    """
    safe_name = escape(name)
    subject = "Congratulations! You Won the Mystery Challenge!"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 26px; font-weight: 700; margin: 0 0 16px 0; text-align: center;">Congratulations!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Dear {safe_name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">
    We're thrilled to announce that <strong style="color: {TEXT_PRIMARY};">your theory has been selected as the winner</strong>
    of this week's Mystery Challenge!
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">
    Your detective skills stood out among all submissions. You've earned the
    <strong style="color: {TEXT_PRIMARY};">Detective Badge</strong> and +50 reputation points.
</p>
<div style="background-color: {BG_SURFACE}; border-left: 4px solid {INDIGO}; padding: 16px; margin: 24px 0;">
    <p style="color: {INDIGO}; font-size: 14px; font-weight: 600; margin: 0 0 6px 0;">Detective Badge Awarded</p>
    <p style="color: {TEXT_SECONDARY}; font-size: 14px; line-height: 1.5; margin: 0;">
        Your profile now displays your detective achievement.
    </p>
</div>
{_button(site_url, "See the Next Challenge")}"""
    html_body = _base_layout(content)
    text_body = (
        f"Dear {name},\n\n"
        f"Your theory has been selected as the winner of this week's Mystery Challenge!\n\n"
        f"You've earned the Detective Badge and +50 reputation points.\n\n"
        f"Keep an eye out for the next challenge: {site_url}\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, html_body, text_body
