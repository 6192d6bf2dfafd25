"""Feedback notification e-mails via Resend."""

import html
from typing import Any, Dict, Optional

import httpx

from editaja.models.feedback import CATEGORY_LABELS, FeedbackCategory
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"
FROM_EMAIL = "edit Aja <noreply@editaja.com>"


def _row(label: str, value: str, mono: bool = False) -> str:
    font = "font-family:monospace;" if mono else ""
    return f"""
        <tr>
          <td style="padding:8px 0;color:#6b7280;font-size:14px;vertical-align:top;">{label}</td>
          <td style="padding:8px 0 8px 12px;font-size:14px;{font}">{html.escape(value)}</td>
        </tr>
        """


def build_feedback_html(feedback: Dict[str, Any]) -> str:
    """HTML body for a new-feedback e-mail."""
    try:
        category = CATEGORY_LABELS[FeedbackCategory(feedback.get("category"))]
    except ValueError:
        category = str(feedback.get("category"))
    timestamp = utcnow().strftime("%Y-%m-%d %H:%M UTC")

    rows = _row("Category", category)
    rows += _row("From", feedback.get("userEmail") or "Anonymous")
    if feedback.get("userId"):
        rows += _row("User ID", feedback["userId"], mono=True)
    if feedback.get("isBetaTester"):
        rows += _row("Beta tester", "Yes")
    rows += _row("Feedback", feedback.get("feedback", ""))
    if feedback.get("screenshotUrl"):
        rows += _row("Screenshot", feedback["screenshotUrl"])

    return f"""
    <div style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;
                max-width:600px;margin:0 auto;color:#333;">
      <div style="background:#0d0df2;color:#fff;padding:16px 20px;border-radius:8px 8px 0 0;">
        <h2 style="margin:0;font-size:18px;">New feedback</h2>
        <p style="margin:4px 0 0;opacity:0.9;font-size:13px;">{timestamp}</p>
      </div>
      <div style="background:#f9fafb;padding:20px;border:1px solid #e5e7eb;border-top:none;border-radius:0 0 8px 8px;">
        <table style="width:100%;border-collapse:collapse;">{rows}</table>
      </div>
    </div>
    """


class FeedbackNotifier:
    """Sends an e-mail for each new feedback when Resend is configured."""

    def __init__(
        self,
        api_key: str,
        to_email: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.to_email = to_email
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.to_email)

    async def notify(self, feedback: Dict[str, Any]) -> bool:
        """
        Send the notification. Failures are logged, never raised, so a mail
        outage cannot lose the user's feedback.

        Returns:
            True when Resend accepted the e-mail.
        """
        if not self.enabled:
            logger.warning("RESEND_API_KEY not set, skipping feedback email")
            return False

        subject = f"[Feedback] {feedback.get('category', 'general')} from {feedback.get('userEmail') or 'anonymous'}"
        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                resp = await client.post(
                    RESEND_ENDPOINT,
                    headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                    json={
                        "from": FROM_EMAIL,
                        "to": [self.to_email],
                        "subject": subject,
                        "html": build_feedback_html(feedback),
                    },
                )
        except httpx.HTTPError as e:
            logger.warning(f"Feedback email failed: {e}")
            return False

        if resp.status_code in (200, 201):
            logger.info(f"Feedback email sent: {subject}")
            return True
        logger.warning(f"Feedback email failed ({resp.status_code}): {resp.text[:200]}")
        return False
