"""HTML bodies for the transactional emails."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


_BASE = """
    <!DOCTYPE html>
    <html>
    <head>
      <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: {accent}; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
        .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }}
        .button {{ display: inline-block; padding: 15px 30px; background: {accent}; color: white;
                   text-decoration: none; border-radius: 5px; margin: 20px 0; }}
        .info-box {{ background: white; padding: 15px; border-radius: 5px; margin: 15px 0; border-left: 4px solid {accent}; }}
        .footer {{ text-align: center; margin-top: 20px; color: #666; font-size: 12px; }}
      </style>
    </head>
    <body>
      <div class="container">
        <div class="header"><h1>{title}</h1></div>
        <div class="content">
          {body}
          <p>Best regards,<br>Running Diary Team</p>
        </div>
        <div class="footer"><p>This is an automated notification from Running Diary</p></div>
      </div>
    </body>
    </html>
"""


def _page(*, title: str, accent: str, body: str) -> str:
    return _BASE.format(title=escape(title), accent=accent, body=body)


def invitation_link(app_url: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/setup-account?token={token}"


def invitation_email(*, display_name: str, club_name: str, link: str, role: str | None = None) -> RenderedEmail:
    role_line = f"<p>You have been invited as a <strong>{escape(role)}</strong>.</p>" if role else ""
    body = f"""
          <p>Hi {escape(display_name)},</p>
          <p>You have been invited to join <strong>{escape(club_name)}</strong> on Running Diary!</p>
          {role_line}
          <p>Click the button below to set up your account. This invitation expires in 7 days.</p>
          <p style="text-align: center;"><a href="{escape(link, quote=True)}" class="button">Set Up Account</a></p>
          <p>If the button does not work, copy this link into your browser:<br>{escape(link)}</p>
    """
    return RenderedEmail(
        subject=f"You're invited to join {club_name}",
        html=_page(title="You're Invited!", accent="#6366f1", body=body),
    )


def join_request_email(*, user_name: str, user_email: str, club_name: str, app_url: str) -> RenderedEmail:
    review_url = f"{app_url.rstrip('/')}/admin/members"
    body = f"""
          <p>Hi Admin,</p>
          <p>A new member has requested to join <strong>{escape(club_name)}</strong>!</p>
          <div class="info-box">
            <p><strong>Name:</strong> {escape(user_name)}</p>
            <p><strong>Email:</strong> {escape(user_email)}</p>
          </div>
          <p>Please review and approve this request in the admin dashboard:</p>
          <p style="text-align: center;"><a href="{escape(review_url, quote=True)}" class="button">Review Request</a></p>
    """
    return RenderedEmail(
        subject=f"New Join Request for {club_name}",
        html=_page(title="New Join Request", accent="#6366f1", body=body),
    )


def approval_email(*, member_name: str, club_name: str, approved_by: str, app_url: str) -> RenderedEmail:
    body = f"""
          <p>Hi {escape(member_name)},</p>
          <p>Great news! Your request to join <strong>{escape(club_name)}</strong> has been approved
             by {escape(approved_by)}.</p>
          <p>You can now see club events, RSVP and track your runs.</p>
          <p style="text-align: center;"><a href="{escape(app_url, quote=True)}" class="button">Go to Dashboard</a></p>
    """
    return RenderedEmail(
        subject=f"Welcome to {club_name}!",
        html=_page(title="Request Approved", accent="#10b981", body=body),
    )
