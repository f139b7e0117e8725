"""
Route Tests

Form flow (validation, captcha one-time use, mail feedback) and JSON API,
with the session store, fetcher and mail sender replaced by fixtures.
"""

import base64
import json

import pytest
from unittest.mock import patch

from captcha import SESSION_KEY, seal
from errors import HttpStatusError, TransportError
from main import logger as app_logger


def kinds(response) -> list[str]:
    """Error kinds rendered as data-kind attributes."""
    text = response.text
    found = []
    marker = 'data-kind="'
    start = text.find(marker)
    while start != -1:
        end = text.find('"', start + len(marker))
        found.append(text[start + len(marker):end])
        start = text.find(marker, end)
    return found


@pytest.fixture
def seeded_session(session_data):
    session_data[SESSION_KEY] = seal("3 + 4 = ?", 7).to_dict()
    return session_data


class TestForm:

    def test_first_view_creates_challenge(self, client, session_data):
        response = client.get("/")
        assert response.status_code == 200
        assert SESSION_KEY in session_data
        assert session_data[SESSION_KEY]["question"] in response.text

    def test_analysis_without_email_needs_no_captcha(self, client, fetcher, mail_sender):
        response = client.post("/", data={"url": "https://example.com"})
        assert response.status_code == 200
        assert kinds(response) == []
        assert "Gefundene Inhalte" in response.text
        fetcher.assert_called_once_with("https://example.com")
        mail_sender.assert_not_called()

    def test_report_for_bare_page(self, client, fetcher, bare_page):
        fetcher.return_value = bare_page
        response = client.post("/", data={"url": "http://example.com"})
        assert "Wichtigste Empfehlung: Füge einen aussagekräftigen Title-Tag hinzu" in response.text
        assert 'class="badge rot"' in response.text

    def test_validation_errors_accumulate(self, client, fetcher, seeded_session):
        response = client.post(
            "/",
            data={"url": "ftp://example.com", "email": "kein-mail", "captcha_answer": ""},
        )
        assert kinds(response) == ["invalid_url", "invalid_email", "missing_captcha_answer"]
        assert fetcher.call_count == 0

    def test_wrong_captcha_blocks_fetch(self, client, fetcher, seeded_session):
        response = client.post(
            "/",
            data={"url": "https://example.com", "email": "kunde@example.com", "captcha_answer": "8"},
        )
        assert kinds(response) == ["wrong_captcha_answer"]
        fetcher.assert_not_called()

    def test_email_sent_with_correct_answer(self, client, mail_sender, seeded_session):
        response = client.post(
            "/",
            data={"url": "https://example.com", "email": "kunde@example.com", "captcha_answer": "7"},
        )
        assert kinds(response) == []
        assert "erfolgreich per E-Mail versendet" in response.text
        kwargs = mail_sender.call_args.kwargs
        assert kwargs["recipient_email"] == "kunde@example.com"
        assert kwargs["run"].url == "https://example.com"

    def test_answer_valid_only_once(self, client, fetcher, mail_sender, seeded_session):
        replacement = seal("1 + 1 = ?", 2)
        form = {"url": "https://example.com", "email": "kunde@example.com", "captcha_answer": "7"}
        with patch("captcha.new_challenge", return_value=replacement):
            first = client.post("/", data=form)
            second = client.post("/", data=form)

        assert kinds(first) == []
        assert kinds(second) == ["wrong_captcha_answer"]
        assert fetcher.call_count == 1
        assert mail_sender.call_count == 1

    def test_challenge_rotated_after_rejection(self, client, seeded_session):
        replacement = seal("1 + 1 = ?", 2)
        with patch("captcha.new_challenge", return_value=replacement):
            response = client.post("/", data={"url": "ftp://example.com"})
        assert seeded_session[SESSION_KEY] == replacement.to_dict()
        assert "1 + 1 = ?" in response.text

    def test_mail_failure_keeps_report(self, client, mail_sender, seeded_session):
        mail_sender.return_value = False
        response = client.post(
            "/",
            data={"url": "https://example.com", "email": "kunde@example.com", "captcha_answer": "7"},
        )
        assert "Die E-Mail konnte nicht versendet werden" in response.text
        assert "<table>" in response.text

    def test_http_status_error_banner(self, client, fetcher):
        fetcher.side_effect = HttpStatusError(404)
        response = client.post("/", data={"url": "https://example.com/fehlt"})
        assert kinds(response) == ["http_status_error"]
        assert "Statuscode 404" in response.text
        assert "<table>" not in response.text

    def test_unparseable_document_banner(self, client, fetcher):
        fetcher.return_value = ""
        response = client.post("/", data={"url": "https://example.com"})
        assert kinds(response) == ["unparseable_document"]


def cookie_payload(client) -> dict:
    """Decoded body of the signed session cookie."""
    data = client.cookies.get("session").split(".")[0]
    data += "=" * (-len(data) % 4)
    return json.loads(base64.b64decode(data))


def solve(question: str) -> int:
    a, b = question.removesuffix(" = ?").split(" + ")
    return int(a) + int(b)


class TestSessionCookie:

    def test_cookie_does_not_reveal_answer(self, cookie_client):
        cookie_client.get("/")
        stored = cookie_payload(cookie_client)[SESSION_KEY]
        answer = solve(stored["question"])

        assert "answer" not in stored
        assert str(answer) not in [str(value) for value in stored.values()]

    def test_answer_from_question_sends_mail(self, cookie_client, mail_sender):
        cookie_client.get("/")
        question = cookie_payload(cookie_client)[SESSION_KEY]["question"]
        response = cookie_client.post(
            "/",
            data={
                "url": "https://example.com",
                "email": "kunde@example.com",
                "captcha_answer": str(solve(question)),
            },
        )
        assert kinds(response) == []
        mail_sender.assert_called_once()


class TestApi:

    def test_analyze(self, client, fetcher, bare_page):
        fetcher.return_value = bare_page
        response = client.post("/api/analyze", json={"url": "http://example.com"})
        assert response.status_code == 200
        data = response.json()
        assert [item["status"] for item in data["items"]][:3] == ["rot", "rot", "rot"]
        assert data["primary"]["weight"] == 3
        assert len(data["tips"]) == 5

    def test_invalid_url(self, client, fetcher):
        response = client.post("/api/analyze", json={"url": "ftp://example.com"})
        assert response.status_code == 400
        fetcher.assert_not_called()

    def test_transport_error(self, client, fetcher):
        fetcher.side_effect = TransportError("timed out")
        assert client.post("/api/analyze", json={"url": "https://example.com"}).status_code == 502

    def test_unparseable(self, client, fetcher):
        fetcher.return_value = ""
        assert client.post("/api/analyze", json={"url": "https://example.com"}).status_code == 422

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestLogging:

    def test_app_logger_named_after_module(self):
        assert app_logger.name == "main"
