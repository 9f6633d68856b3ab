"""
Brevo Email Client
Sends transactional email through the Brevo HTTP API
"""

from typing import Optional

import httpx

from libs.config import config


class BrevoEmailClient:
    """Async wrapper for the Brevo transactional email endpoint"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender_email: Optional[str] = None,
        sender_name: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or config.BREVO_API_KEY
        self.sender_email = sender_email or config.BREVO_SENDER_EMAIL
        self.sender_name = sender_name or config.BREVO_SENDER_NAME
        self.api_url = api_url or config.BREVO_API_URL
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            raise ValueError(
                "Missing Brevo configuration. Please set BREVO_API_KEY in your .env file"
            )

    async def send_email(self, to_email: str, subject: str, body: str) -> dict:
        """
        Send a plain-text email

        Args:
            to_email: Recipient address
            subject: Subject line
            body: Plain-text content

        Returns:
            dict with status, message_id, and any error information
        """
        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": to_email}],
            "subject": subject,
            "textContent": body,
        }
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json() if response.content else {}
            return {
                "status": "sent",
                "message_id": data.get("messageId"),
                "to": to_email,
                "error": None,
            }
        except httpx.HTTPStatusError as e:
            return {
                "status": "failed",
                "message_id": None,
                "to": to_email,
                "error": f"Brevo returned {e.response.status_code}: {e.response.text}",
            }
        except httpx.HTTPError as e:
            return {
                "status": "failed",
                "message_id": None,
                "to": to_email,
                "error": f"Brevo request failed: {e!r}",
            }


# Singleton instance
_email_client: Optional[BrevoEmailClient] = None


def get_email_client() -> BrevoEmailClient:
    """Get or create the Brevo client singleton"""
    global _email_client
    if _email_client is None:
        _email_client = BrevoEmailClient()
    return _email_client
