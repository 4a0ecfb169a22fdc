"""
Email Delivery
==============

Outbound lifecycle email.

``TemplateEmailService`` loads the active template for a stage, substitutes
``{{key}}`` placeholders from the context and hands the message to
``EmailProviderClient``, an HTTP client for a Resend-style transactional
email API with a circuit breaker and exponential-backoff retries.
"""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from ticketflow.config import settings
from ticketflow.core import StoreFactory
from ticketflow.shared.infrastructure.logging import get_logger
from ticketflow.tickets.application.interfaces import IEmailService

logger = get_logger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_placeholders(text: Optional[str], context: Mapping[str, Any]) -> Optional[str]:
    """Replace ``{{key}}`` with ``context[key]``; unknown keys are left as-is."""
    if text is None:
        return None

    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in context or context[key] is None:
            return match.group(0)
        return str(context[key])

    return _PLACEHOLDER.sub(_substitute, text)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the email provider.

    States:
    - CLOSED: requests pass through
    - OPEN: after N failed sends, reject everything for M seconds
    - HALF_OPEN: after the timeout, let one send through to probe
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Email circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


@dataclass
class EmailMessage:
    """Rendered email ready for delivery."""
    to: str
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None


class EmailProviderClient:
    """
    HTTP client for the transactional email provider.

    Never raises for delivery problems: failures are logged and reported as
    ``False``.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
        retry_base_delay: float = 0.5,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self._api_url = api_url or settings.email_api_url
        self._api_key = api_key if api_key is not None else settings.email_api_key
        self._sender = sender or settings.email_from
        self._timeout = timeout or settings.email_timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay
        self._circuit_breaker = circuit_breaker or CircuitBreaker()

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def _payload(self, message: EmailMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self._sender,
            "to": [message.to],
            "subject": message.subject,
        }
        if message.html:
            payload["html"] = message.html
        if message.text:
            payload["text"] = message.text
        return payload

    async def send(self, message: EmailMessage) -> bool:
        if not self.configured:
            logger.info(
                "Email provider not configured, skipping send",
                extra={"to": message.to, "subject": message.subject}
            )
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping email",
                extra={"to": message.to}
            )
            return False

        headers = {"Authorization": f"Bearer {self._api_key}"}
        payload = self._payload(message)

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._api_url, json=payload, headers=headers)

                if response.status_code < 300:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Email sent",
                        extra={"to": message.to, "subject": message.subject}
                    )
                    return True

                logger.warning(
                    "Email provider returned an error",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
                if response.status_code not in RETRY_STATUSES:
                    break

            except httpx.HTTPError as e:
                logger.error(
                    "Email send failed",
                    extra={"error": str(e), "attempt": attempt + 1, "to": message.to}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_base_delay * (2 ** attempt))

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None


class TemplateEmailService(IEmailService):
    """Sends lifecycle emails from the ``email_templates`` table."""

    def __init__(self, store_factory: StoreFactory, provider: EmailProviderClient):
        self._store_factory = store_factory
        self._provider = provider

    async def send_template(
        self,
        recipient: str,
        template_name: str,
        context: Dict[str, Any]
    ) -> bool:
        async with self._store_factory() as store:
            template = await store.email_templates.get_active(template_name)

        if template is None:
            logger.warning("Email template not found", extra={"template": template_name})
            return False

        message = EmailMessage(
            to=recipient,
            subject=render_placeholders(template.subject_template, context),
            html=render_placeholders(template.body_html, context),
            text=render_placeholders(template.body_text, context),
        )
        return await self._provider.send(message)
