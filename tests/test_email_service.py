"""
Email Service Tests

Rendering and Mailjet payloads for the unsubscribe confirmation.
"""

from unittest.mock import MagicMock

import pytest

from core.services.email_service import EmailService, build_link


class TestBuildLink:
    def test_token_is_quoted_into_query(self):
        assert build_link("/resubscribe", "abc.def", base_url="https://x.test/") == "https://x.test/resubscribe?token=abc.def"

    def test_unsafe_characters_escaped(self):
        assert build_link("unsubscribe", "a b&c", base_url="https://x.test") == "https://x.test/unsubscribe?token=a%20b%26c"


class TestUnsubscribeConfirmation:
    """Tests for send_unsubscribe_confirmation_email."""

    @pytest.fixture
    def service(self) -> EmailService:
        service = EmailService()
        service.mailjet = MagicMock()
        service.mailjet.send.create.return_value = MagicMock(status_code=200)
        return service

    @pytest.mark.asyncio
    async def test_sends_resubscribe_link(self, service):
        response = await service.send_unsubscribe_confirmation_email("ada@example.com", "tok.sig", name="Ada")

        assert response.status_code == 200
        data = service.mailjet.send.create.call_args.kwargs["data"]
        message = data["Messages"][0]
        assert message["To"] == [{"Email": "ada@example.com", "Name": "Ada"}]
        assert "https://elevateher.test/resubscribe?token=tok.sig" in message["HTMLPart"]
        assert "https://elevateher.test/resubscribe?token=tok.sig" in message["TextPart"]
        assert "Hello Ada" in message["HTMLPart"]

    @pytest.mark.asyncio
    async def test_send_failure_is_logged_not_raised(self, service, caplog):
        service.mailjet.send.create.side_effect = ConnectionError("mailjet down")

        response = await service.send_unsubscribe_confirmation_email("ada@example.com", "tok.sig")

        assert response is None
        assert "Error sending unsubscribe confirmation" in caplog.text
