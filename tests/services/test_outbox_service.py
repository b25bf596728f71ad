import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import HTTPException

from huddle.models import outbox as outbox_model
from huddle.services import outbox_service, sms_service


@pytest.fixture
def production(settings):
    return settings.model_copy(update={
        "ENVIRONMENT": "production",
        "SMTP_USER": "mailer@example.com",
        "SMTP_PASS": "app-password",
    })


def queue_email(db, to="someone@example.com"):
    message = outbox_service.enqueue_email(
        db, to, "You're invited", "team_invite.html",
        inviter_name="Olive", team_name="Otters", invite_url="http://localhost:5175/invite/abc", expires_in_days=7,
    )
    db.commit()
    return message


class TestDelivery:

    def test_development_logs_instead_of_sending(self, app, db, settings):
        message = queue_email(db)

        assert outbox_service.deliver_pending(app.state.session_factory, settings) == 1

        db.refresh(message)
        assert message.status == outbox_model.DeliveryStatus.SENT.value
        assert message.provider == "console"
        assert message.attempts == 1
        assert message.sent_at is not None

    @patch("huddle.services.email_service.smtplib.SMTP")
    def test_smtp_send(self, mock_smtp, db, production):
        message = queue_email(db)

        outbox_service.deliver(db, message, production)

        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.login.assert_called_once_with("mailer@example.com", "app-password")
        sent = smtp.send_message.call_args[0][0]
        assert sent["To"] == "someone@example.com"
        assert message.provider == "smtp"

    @patch("huddle.services.email_service.smtplib.SMTP")
    def test_failure_is_recorded_and_retried(self, mock_smtp, app, db, production):
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, b"busy")
        message = queue_email(db)

        outbox_service.deliver_pending(app.state.session_factory, production)
        db.refresh(message)
        assert message.status == outbox_model.DeliveryStatus.FAILED.value
        assert "busy" in message.last_error

        mock_smtp.side_effect = None
        outbox_service.deliver_pending(app.state.session_factory, production)
        db.refresh(message)
        assert message.status == outbox_model.DeliveryStatus.SENT.value
        assert message.attempts == 2

    @patch("huddle.services.email_service.smtplib.SMTP")
    def test_automatic_retries_stop_at_the_attempt_cap(self, mock_smtp, app, db, production):
        mock_smtp.side_effect = OSError("connection refused")
        message = queue_email(db)

        for _ in range(outbox_service.MAX_ATTEMPTS + 1):
            outbox_service.deliver_pending(app.state.session_factory, production)
        db.refresh(message)
        assert message.attempts == outbox_service.MAX_ATTEMPTS

        mock_smtp.side_effect = None
        retried = outbox_service.retry(db, message.id, production)
        assert retried.status == outbox_model.DeliveryStatus.SENT.value

    def test_overlapping_runs_send_a_message_once(self, app, db, settings):
        message = queue_email(db)
        overlapping_runs = []

        def send_while_another_run_starts(*args, **kwargs):
            overlapping_runs.append(outbox_service.deliver_pending(app.state.session_factory, settings))
            return "console"

        with patch("huddle.services.outbox_service.email_service.send_email",
                   side_effect=send_while_another_run_starts) as mock_send:
            assert outbox_service.deliver_pending(app.state.session_factory, settings) == 1

        assert mock_send.call_count == 1
        assert overlapping_runs == [0]
        db.refresh(message)
        assert message.status == outbox_model.DeliveryStatus.SENT.value
        assert message.attempts == 1

    def test_message_being_sent_cannot_be_retried(self, db, settings):
        message = queue_email(db)
        assert outbox_service.claim(db, message.id, outbox_model.OutboxMessage.status == "pending")

        with pytest.raises(HTTPException) as excinfo:
            outbox_service.retry(db, message.id, settings)
        assert excinfo.value.status_code == 400
        db.refresh(message)
        assert message.status == outbox_model.DeliveryStatus.SENDING.value
        assert message.attempts == 0

    def test_sent_message_cannot_be_retried(self, db, settings):
        message = queue_email(db)
        outbox_service.deliver(db, message, settings)
        with pytest.raises(HTTPException) as excinfo:
            outbox_service.retry(db, message.id, settings)
        assert excinfo.value.status_code == 400


class TestSMSProviders:

    @pytest.fixture
    def sms_settings(self, settings):
        return settings.model_copy(update={
            "ENVIRONMENT": "production",
            "TWILIO_ACCOUNT_SID": "AC123",
            "TWILIO_AUTH_TOKEN": "token",
            "TWILIO_PHONE_NUMBER": "+15550001111",
            "TWO_FACTOR_API_KEY": "2f-key",
        })

    def test_only_configured_providers_are_tried(self, sms_settings):
        assert [name for name, _ in sms_service.configured_providers(sms_settings)] == ["twilio", "2factor"]

    @patch("huddle.services.sms_service.requests.get")
    @patch("huddle.services.sms_service.requests.post")
    def test_falls_through_to_the_next_provider(self, mock_post, mock_get, sms_settings):
        mock_post.side_effect = requests.ConnectionError("twilio down")
        mock_get.return_value = MagicMock(ok=True, **{"json.return_value": {"Status": "Success"}})

        provider = sms_service.send_sms(sms_settings, "9876543210", "Your code", code="123456")

        assert provider == "2factor"
        assert "/SMS/9876543210/123456/" in mock_get.call_args[0][0]

    @patch("huddle.services.sms_service.requests.get")
    @patch("huddle.services.sms_service.requests.post")
    def test_all_providers_failing_marks_the_message_failed(self, mock_post, mock_get, db, sms_settings):
        mock_post.return_value = MagicMock(status_code=401)
        mock_get.return_value = MagicMock(ok=False)
        message = outbox_service.enqueue_sms(db, "9876543210", "Your code", code="123456")
        db.commit()

        outbox_service.deliver(db, message, sms_settings)

        assert message.status == outbox_model.DeliveryStatus.FAILED.value
        assert "All SMS providers failed" in message.last_error
