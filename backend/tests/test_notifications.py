"""Notification intents, webhook transport and best-effort dispatch."""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from lendmatch.services.notifications import (
    BorrowerNoMatch,
    LenderOffer,
    LoggingNotifier,
    NotificationDispatcher,
    WebhookNotifier,
    build_notifier,
)


class RecordingNotifier:
    """Collects intents; fails for the loan ids it is told to."""

    def __init__(self, failing_loans=()):
        self.sent = []
        self.failing_loans = set(failing_loans)

    async def send(self, intent):
        if intent.loan_id in self.failing_loans:
            raise RuntimeError("delivery failed")
        self.sent.append(intent)


# ============================================================
# INTENTS
# ============================================================


class TestIntentPayload:
    def test_payload_is_json_ready(self):
        loan_id = uuid.uuid4()
        match_id = uuid.uuid4()
        expires_at = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)
        intent = LenderOffer(
            loan_id=loan_id,
            match_id=match_id,
            lender_email="lender@example.com",
            amount=Decimal("500.00"),
            currency="USD",
            interest_rate=Decimal("10.00"),
            expires_at=expires_at,
            review_url="https://app.example.com/lender/matches/x",
        )

        payload = intent.to_payload()

        assert payload["type"] == "lender_offer"
        assert payload["loan_id"] == str(loan_id)
        assert payload["match_id"] == str(match_id)
        assert payload["amount"] == "500.00"
        assert payload["expires_at"] == expires_at.isoformat()
        json.dumps(payload)

    def test_intents_are_immutable(self):
        intent = BorrowerNoMatch(loan_id=uuid.uuid4(), is_first_time=True)

        with pytest.raises(AttributeError):
            intent.is_first_time = False


# ============================================================
# TRANSPORTS
# ============================================================


class TestWebhookNotifier:
    async def test_posts_the_payload(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        notifier = WebhookNotifier(
            "https://notify.example.com/hooks", transport=httpx.MockTransport(handler)
        )
        intent = BorrowerNoMatch(loan_id=uuid.uuid4(), borrower_id=uuid.uuid4())

        await notifier.send(intent)

        assert received == [intent.to_payload()]

    async def test_error_status_raises(self):
        notifier = WebhookNotifier(
            "https://notify.example.com/hooks",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await notifier.send(BorrowerNoMatch(loan_id=uuid.uuid4()))

    def test_build_notifier_picks_transport_from_url(self):
        assert isinstance(build_notifier(""), LoggingNotifier)
        webhook = build_notifier("https://notify.example.com/hooks", timeout=3.0)
        assert isinstance(webhook, WebhookNotifier)
        assert webhook.timeout == 3.0


# ============================================================
# DISPATCHER
# ============================================================


class TestDispatcher:
    async def test_delivers_every_intent(self):
        notifier = RecordingNotifier()
        intents = [BorrowerNoMatch(loan_id=uuid.uuid4()) for _ in range(3)]

        delivered = await NotificationDispatcher(notifier).dispatch(intents)

        assert delivered == 3
        assert notifier.sent == intents

    async def test_failures_are_logged_and_do_not_raise(self, caplog):
        failing = uuid.uuid4()
        notifier = RecordingNotifier(failing_loans=[failing])
        intents = [BorrowerNoMatch(loan_id=failing), BorrowerNoMatch(loan_id=uuid.uuid4())]

        with caplog.at_level(logging.ERROR):
            delivered = await NotificationDispatcher(notifier).dispatch(intents)

        assert delivered == 1
        assert [i.loan_id for i in notifier.sent] == [intents[1].loan_id]
        assert f"borrower_no_match for loan {failing}" in caplog.text

    async def test_empty_batch(self):
        assert await NotificationDispatcher(RecordingNotifier()).dispatch([]) == 0

    async def test_logging_notifier_never_fails(self, caplog):
        with caplog.at_level(logging.INFO):
            delivered = await NotificationDispatcher(LoggingNotifier()).dispatch(
                [BorrowerNoMatch(loan_id=uuid.uuid4())]
            )

        assert delivered == 1
        assert "Notification borrower_no_match" in caplog.text
