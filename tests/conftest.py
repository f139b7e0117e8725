"""
Pytest Configuration and Shared Fixtures

Provides HTML page builders, a fake fetcher and a FastAPI test client whose
collaborators (session store, fetcher, mail sender) are replaced by mocks.
"""

import pytest
from unittest.mock import Mock

from fastapi.testclient import TestClient

from captcha import CaptchaStore
from main import app, get_captcha_store, get_fetcher, get_mail_sender


# ============================================================================
# HTML Fixtures
# ============================================================================

def build_page(
    *,
    title: str | None = None,
    description: str | None = None,
    h1s: list[str] | None = None,
    canonical: str | None = None,
    images: list[str | None] | None = None,
    words: int = 0,
    robots: str | None = None,
) -> str:
    """Assemble a small HTML document; None leaves the element out."""
    head = []
    if title is not None:
        head.append(f"<title>{title}</title>")
    if description is not None:
        head.append(f'<meta name="description" content="{description}">')
    if canonical is not None:
        head.append(f'<link rel="canonical" href="{canonical}">')
    if robots is not None:
        head.append(f'<meta name="robots" content="{robots}">')

    body = [f"<h1>{text}</h1>" for text in (h1s or [])]
    for alt in images or []:
        body.append('<img src="a.png">' if alt is None else f'<img src="a.png" alt="{alt}">')
    if words:
        body.append("<p>" + " ".join(["wort"] * words) + "</p>")

    return (
        "<!DOCTYPE html><html><head>"
        + "".join(head)
        + "</head><body>"
        + "".join(body)
        + "</body></html>"
    )


@pytest.fixture
def page():
    """Factory to create test pages."""
    return build_page


@pytest.fixture
def good_page() -> str:
    """A page that passes every rule."""
    return build_page(
        title="Handgemachte Keramik aus Leipzig kaufen und bestellen",
        description=(
            "Entdecke handgemachte Tassen, Teller und Vasen aus unserer Leipziger "
            "Werkstatt. Versandkostenfrei ab 50 Euro."
        ),
        h1s=["Keramik aus Leipzig"],
        canonical="https://example.com/keramik",
        images=["Blaue Tasse", "Weißer Teller"],
        words=320,
        robots="index, follow",
    )


@pytest.fixture
def bare_page() -> str:
    """No title, description, h1, canonical or robots; 50 words of body text."""
    return build_page(words=50)


# ============================================================================
# App Fixtures
# ============================================================================

@pytest.fixture
def session_data() -> dict:
    return {}


@pytest.fixture
def fetcher(good_page):
    return Mock(return_value=good_page)


@pytest.fixture
def mail_sender():
    return Mock(return_value=True)


@pytest.fixture
def client(session_data, fetcher, mail_sender):
    app.dependency_overrides[get_captcha_store] = lambda: CaptchaStore(session_data)
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_mail_sender] = lambda: mail_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def cookie_client(fetcher, mail_sender):
    """Client that keeps the real cookie-backed session."""
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_mail_sender] = lambda: mail_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
