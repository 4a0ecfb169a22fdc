"""Tests for the email provider client and template email service."""

import json

import httpx
import pytest

from ticketflow.tickets.infrastructure import (
    CircuitBreaker,
    EmailMessage,
    EmailProviderClient,
    TemplateEmailService,
)
from ticketflow.tickets.infrastructure.email import CircuitState, render_placeholders

from conftest import seed_email_template

API_URL = "https://mail.example.com/emails"


class Recorder:
    """httpx MockTransport handler replaying canned status codes."""

    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else 200
        if isinstance(status, Exception):
            raise status
        return httpx.Response(status, json={"id": "msg_1"})


def make_client(recorder, **kwargs) -> EmailProviderClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    kwargs.setdefault("api_key", "re_test")
    return EmailProviderClient(
        api_url=API_URL,
        sender="Support <support@example.com>",
        http_client=http_client,
        retry_base_delay=0,
        **kwargs,
    )


MESSAGE = EmailMessage(to="ada@example.com", subject="Hi", html="<p>Hi</p>")


@pytest.mark.asyncio
async def test_send_posts_payload_with_bearer_token():
    recorder = Recorder(200)
    client = make_client(recorder)

    assert await client.send(MESSAGE) is True

    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer re_test"
    assert json.loads(request.content) == {
        "from": "Support <support@example.com>",
        "to": ["ada@example.com"],
        "subject": "Hi",
        "html": "<p>Hi</p>",
    }


@pytest.mark.asyncio
async def test_unconfigured_provider_skips_send():
    recorder = Recorder()
    client = make_client(recorder, api_key="")

    assert await client.send(MESSAGE) is False
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_retries_transient_failures():
    recorder = Recorder(503, httpx.ConnectError("boom"), 202)
    client = make_client(recorder)

    assert await client.send(MESSAGE) is True
    assert len(recorder.requests) == 3


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    recorder = Recorder(422)
    client = make_client(recorder)

    assert await client.send(MESSAGE) is False
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_circuit_opens_after_repeated_failures():
    recorder = Recorder(*([500] * 6))
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
    client = make_client(recorder, max_retries=1, circuit_breaker=breaker)

    assert await client.send(MESSAGE) is False
    assert await client.send(MESSAGE) is False
    assert breaker.state == CircuitState.OPEN

    assert await client.send(MESSAGE) is False
    assert len(recorder.requests) == 2


def test_circuit_half_opens_after_timeout():
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
    breaker.record_failure()

    assert breaker.state == CircuitState.HALF_OPEN
    assert breaker.allow_request()
    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED


def test_render_placeholders_keeps_unknown_keys():
    assert render_placeholders("Hi {{customer_name}}, re {{ ticket_code }} {{other}}", {
        "customer_name": "Ada",
        "ticket_code": "TCK-100200",
    }) == "Hi Ada, re TCK-100200 {{other}}"


@pytest.mark.asyncio
async def test_template_service_renders_and_sends(db, store_factory):
    await seed_email_template(
        db, "closure", "Ticket {{ticket_code}} closed",
        body_html="<a href='{{survey_link}}'>Rate us</a>",
        body_text="Rate us at {{survey_link}}",
    )
    recorder = Recorder(200)
    service = TemplateEmailService(store_factory, make_client(recorder))

    sent = await service.send_template("ada@example.com", "closure", {
        "ticket_code": "TCK-100200",
        "survey_link": "https://support.example.com/feedback/TCK-100200",
    })

    assert sent is True
    body = json.loads(recorder.requests[0].content)
    assert body["subject"] == "Ticket TCK-100200 closed"
    assert body["text"] == "Rate us at https://support.example.com/feedback/TCK-100200"


@pytest.mark.asyncio
async def test_template_service_missing_or_inactive_template(db, store_factory):
    await seed_email_template(db, "resolution", "Resolved", is_active=False)
    recorder = Recorder()
    service = TemplateEmailService(store_factory, make_client(recorder))

    assert await service.send_template("ada@example.com", "resolution", {}) is False
    assert await service.send_template("ada@example.com", "creation", {}) is False
    assert recorder.requests == []
