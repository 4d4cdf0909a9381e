"""
Transactional email port and the Resend HTTP adapter.

Design:
- `MailerProtocol.send` either returns the provider message id or raises
  `MailerError`; callers decide whether a failed send is fatal.
- `NullMailer` stands in when no API key is configured so wiring stays
  importable; it refuses to send and reports `configured = False`.

Security:
- Never log the API key or message bodies (they may contain PII).
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

RESEND_API_URL = "https://api.resend.com/emails"


class MailerError(Exception):
    pass


class MailerProtocol(Protocol):
    configured: bool

    def send(self, *, sender: str, to: Sequence[str], subject: str, html: str) -> Optional[str]: ...


class NullMailer:
    configured = False

    def send(self, *, sender: str, to: Sequence[str], subject: str, html: str) -> Optional[str]:
        raise MailerError("mailer_not_configured")


class ResendMailer:
    configured = True

    def __init__(self, api_key: str, *, base_url: str = RESEND_API_URL, timeout: float = 10.0, client: httpx.Client | None = None):
        if not api_key:
            raise ValueError("api_key required")
        self._api_key = api_key
        self._url = base_url
        self._timeout = timeout
        self._client = client

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        if self._client is not None:
            return self._client.post(self._url, json=payload, headers=headers, timeout=self._timeout)
        with httpx.Client(timeout=self._timeout) as client:
            return client.post(self._url, json=payload, headers=headers)

    def send(self, *, sender: str, to: Sequence[str], subject: str, html: str) -> Optional[str]:
        payload = {"from": sender, "to": list(to), "subject": subject, "html": html}
        try:
            r = self._post(payload)
        except httpx.HTTPError as exc:
            raise MailerError(f"mail_transport_error: {exc.__class__.__name__}") from exc
        if r.status_code >= 400:
            detail = ""
            try:
                body = r.json()
                if isinstance(body, dict):
                    detail = str(body.get("message") or body.get("error") or "")
            except ValueError:
                detail = ""
            raise MailerError(detail or f"mail_rejected_{r.status_code}")
        try:
            body = r.json()
        except ValueError:
            return None
        return body.get("id") if isinstance(body, dict) else None


__all__ = ["MailerError", "MailerProtocol", "NullMailer", "ResendMailer", "RESEND_API_URL"]
