"""Tests for POST /sendMedia and /api/sendMedia."""

from __future__ import annotations

import httpx
import pytest

from src.services.messaging.exceptions import MediaFetchError, MessagingBackendError
from src.services.messaging.protocol import MediaHints, MediaPayload


@pytest.fixture(params=["/sendMedia", "/api/sendMedia"])
def media_path(request) -> str:
    return request.param


class TestSendMediaFromUrl:
    """JSON bodies referencing remote media."""

    def test_browser_download_used_first(
        self, ready_client, fake_backend, raw_media_server, auth_headers, media_path
    ) -> None:
        response = ready_client.post(
            media_path,
            json={
                "chatId": "111@c.us",
                "file": {"url": "https://x/a.png"},
                "caption": "look",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert raw_media_server.requests == []

        _, chat_id, content, options = fake_backend.called("send_message")[0]
        assert chat_id == "111@c.us"
        assert isinstance(content, MediaPayload)
        assert content.mimetype == "image/png"
        assert content.data == fake_backend.fetched_media.data
        assert options.caption == "look"

    def test_hints_passed_to_download(self, ready_client, fake_backend, auth_headers) -> None:
        ready_client.post(
            "/sendMedia",
            json={
                "chatId": "111@c.us",
                "file": {
                    "url": "https://x/report",
                    "mimetype": "application/pdf",
                    "filename": "report.pdf",
                },
            },
            headers=auth_headers,
        )

        _, url, hints = fake_backend.called("fetch_media_from_url")[0]
        assert url == "https://x/report"
        assert hints == MediaHints(mimetype="application/pdf", filename="report.pdf")

    def test_falls_back_to_raw_download(
        self, ready_client, fake_backend, raw_media_server, auth_headers
    ) -> None:
        fake_backend.fetch_error = MediaFetchError("Unable to determine MIME type")
        raw_media_server.headers = {}

        response = ready_client.post(
            "/sendMedia",
            json={"chatId": "111@c.us", "file": {"url": "https://x/blob"}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert len(raw_media_server.requests) == 1
        _, _, content, _ = fake_backend.called("send_message")[0]
        assert content.mimetype == "application/octet-stream"
        assert content.filename == "blob"
        assert content.data == raw_media_server.content

    def test_both_downloads_fail_returns_500(
        self, ready_client, fake_backend, raw_media_server, auth_headers
    ) -> None:
        fake_backend.fetch_error = MediaFetchError("HTTP 404 while downloading")
        raw_media_server.status_code = 404

        response = ready_client.post(
            "/sendMedia",
            json={"chatId": "111@c.us", "file": {"url": "https://x/missing.png"}},
            headers=auth_headers,
        )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to send media"
        assert "https://x/missing.png" in data["message"]
        assert "HTTP 404 while downloading" in data["message"]
        assert "404" in data["message"].split("raw download failed:")[1]
        assert fake_backend.called("send_message") == []

    def test_raw_transport_error_is_reported(
        self, ready_client, fake_backend, raw_media_server, auth_headers
    ) -> None:
        fake_backend.fetch_error = MediaFetchError("browser blocked")
        raw_media_server.error = httpx.ConnectError("connection refused")

        response = ready_client.post(
            "/sendMedia",
            json={"chatId": "111@c.us", "file": {"url": "https://x/a.png"}},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert "connection refused" in response.json()["message"]

    def test_send_error_after_download_returns_500(
        self, ready_client, fake_backend, auth_headers
    ) -> None:
        fake_backend.send_error = MessagingBackendError("media upload rejected")

        response = ready_client.post(
            "/sendMedia",
            json={"chatId": "111@c.us", "file": {"url": "https://x/a.png"}},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json()["message"] == "media upload rejected"

    def test_typing_wraps_download_and_send(self, ready_client, fake_backend, auth_headers) -> None:
        ready_client.post(
            "/sendMedia",
            json={
                "chatId": "111@c.us",
                "file": {"url": "https://x/a.png"},
                "show_typing": True,
                "typing_duration": 5,
            },
            headers=auth_headers,
        )

        names = [call[0] for call in fake_backend.calls]
        assert names == [
            "get_chat_by_id",
            "send_state_typing",
            "fetch_media_from_url",
            "send_message",
            "clear_state",
        ]


class TestSendMediaUpload:
    """Multipart uploads."""

    def test_upload_sends_file_bytes(self, ready_client, fake_backend, auth_headers) -> None:
        response = ready_client.post(
            "/sendMedia",
            data={"chatId": "111@c.us", "caption": "scan"},
            files={"file": ("doc.pdf", b"%PDF-1.7 bytes", "application/pdf")},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert fake_backend.called("fetch_media_from_url") == []

        _, chat_id, content, options = fake_backend.called("send_message")[0]
        assert chat_id == "111@c.us"
        assert content == MediaPayload(
            mimetype="application/pdf", data=b"%PDF-1.7 bytes", filename="doc.pdf"
        )
        assert options.caption == "scan"

    def test_upload_form_typing_fields(self, ready_client, fake_backend, auth_headers) -> None:
        ready_client.post(
            "/sendMedia",
            data={"chatId": "111@c.us", "show_typing": "true", "typing_duration": "5"},
            files={"file": ("a.png", b"\x89PNG\r\n\x1a\n", "image/png")},
            headers=auth_headers,
        )

        assert len(fake_backend.called("send_state_typing")) == 1

    def test_upload_over_limit_returns_400(self, ready_client, fake_backend, auth_headers) -> None:
        response = ready_client.post(
            "/sendMedia",
            data={"chatId": "111@c.us"},
            files={"file": ("big.bin", b"x" * 2048, "application/octet-stream")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "upload limit" in response.json()["error"]
        assert fake_backend.called("send_message") == []

    def test_empty_upload_returns_400(self, ready_client, auth_headers) -> None:
        response = ready_client.post(
            "/sendMedia",
            data={"chatId": "111@c.us"},
            files={"file": ("empty.txt", b"", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "file is empty"

    def test_multipart_without_file_returns_400(self, ready_client, auth_headers) -> None:
        response = ready_client.post(
            "/sendMedia",
            data={"chatId": "111@c.us"},
            files={"other": ("x.txt", b"x", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "file.url is required"


class TestSendMediaValidation:
    """Validation of JSON media bodies."""

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"file": {"url": "https://x/a.png"}}, "chatId is required"),
            ({"chatId": "111@c.us"}, "file.url is required"),
            ({"chatId": "111@c.us", "file": {}}, "file.url is required"),
            ({"chatId": "111@c.us", "file": {"url": ""}}, "file.url is required"),
        ],
    )
    def test_missing_fields_return_400(
        self, ready_client, fake_backend, auth_headers, body, message
    ) -> None:
        response = ready_client.post("/sendMedia", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == message
        assert fake_backend.calls == []

    def test_not_ready_returns_503(self, test_client, auth_headers) -> None:
        response = test_client.post(
            "/api/sendMedia",
            json={"chatId": "111@c.us", "file": {"url": "https://x/a.png"}},
            headers=auth_headers,
        )

        assert response.status_code == 503
