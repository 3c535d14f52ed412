"""
Email sending via Resend API for recall alerts.
"""

import os

import resend

from models.notification import EmailMessage
from shared.errors import SendError

DEFAULT_FROM_EMAIL = "rappel-conso-alerts@example.com"


class ResendTransport:
    """Mail transport sending one message per call through Resend."""

    def __init__(self, api_key: str | None = None, from_email: str | None = None):
        resend.api_key = api_key or os.getenv("RESEND_API_KEY")
        self.from_email = from_email or os.getenv(
            "NOTIFICATION_FROM_EMAIL", DEFAULT_FROM_EMAIL
        )

    def send_message(self, message: EmailMessage) -> str:
        """
        Send a rendered email.

        Args:
            message: Subject, bodies and recipient addresses

        Returns:
            Resend email id

        Raises:
            SendError: If Resend rejects the message or returns no id
        """
        if not resend.api_key:
            raise SendError("RESEND_API_KEY must be set")

        try:
            response = resend.Emails.send(
                {
                    "from": f"RappelConso Alerts <{self.from_email}>",
                    "to": message.recipients,
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                }
            )
        except Exception as e:
            raise SendError(
                str(e), context={"recipients": message.recipients}
            ) from e

        email_id = response.get("id") if response else None
        if not email_id:
            raise SendError(
                "Resend returned no email id", context={"recipients": message.recipients}
            )
        return str(email_id)
