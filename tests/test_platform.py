"""
Cross-cutting tests: health check, request tracing, outbound email
"""
import asyncio
from unittest.mock import AsyncMock, patch

import aiosmtplib

from volunteer_connect.services.email_service import EmailService


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestRequestId:

    def test_request_id_is_minted(self, client):
        response = client.get("/api/health")
        assert len(response.headers["X-Request-Id"]) == 32
        assert "X-Response-Time-Ms" in response.headers

    def test_caller_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-Id": "trace-abc.1"})
        assert response.headers["X-Request-Id"] == "trace-abc.1"

    def test_unsafe_request_id_is_replaced(self, client):
        response = client.get("/api/health", headers={"X-Request-Id": "bad id with spaces"})
        assert response.headers["X-Request-Id"] != "bad id with spaces"


def configured_service():
    service = EmailService()
    service.smtp_host = "smtp.example.org"
    service.smtp_port = 587
    service.smtp_user = "mailer"
    service.smtp_password = "pw"
    service.use_tls = False
    service.start_tls = True
    service.from_email = "noreply@example.org"
    return service


def part_text(message, index):
    return message.get_payload()[index].get_payload(decode=True).decode()


class TestEmailService:

    def test_unconfigured_service_skips_send(self):
        service = EmailService()
        service.smtp_host = None
        assert service.is_configured is False
        with patch("volunteer_connect.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
            assert asyncio.run(service.send_email("a@example.org", "Hi", "<p>Hi</p>")) is False
        send.assert_not_called()

    def test_reset_email_sent_over_starttls(self):
        service = configured_service()
        with patch("volunteer_connect.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
            sent = asyncio.run(service.send_password_reset_email("a@example.org", "Ann", "tok123"))

        assert sent is True
        message = send.call_args.args[0]
        kwargs = send.call_args.kwargs
        assert kwargs["hostname"] == "smtp.example.org"
        assert kwargs["port"] == 587
        assert kwargs["username"] == "mailer"
        assert kwargs["start_tls"] is True
        assert kwargs["use_tls"] is False
        assert message["To"] == "a@example.org"
        assert "reset-password?token=tok123" in part_text(message, 0)

    def test_user_name_is_escaped_in_html(self):
        service = configured_service()
        with patch("volunteer_connect.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
            asyncio.run(service.send_password_reset_email("a@example.org", "<b>Ann</b>", "tok123"))

        html_part = part_text(send.call_args.args[0], 1)
        assert "&lt;b&gt;Ann&lt;/b&gt;" in html_part
        assert "<b>Ann</b>" not in html_part

    def test_smtp_failure_returns_false(self):
        service = configured_service()
        failing = AsyncMock(side_effect=aiosmtplib.SMTPException("busy"))
        with patch("volunteer_connect.services.email_service.aiosmtplib.send", new=failing):
            assert asyncio.run(service.send_email("a@example.org", "Hi", "<p>Hi</p>")) is False
