"""Page fetcher and HTML parsing helpers.

Fetches exactly one URL (no crawling, no JavaScript) and turns the body into
a BeautifulSoup tree for the rule evaluator in analyzer.py.
"""

import logging
import re
import socket
import threading
import time
import warnings
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup, NavigableString, Tag, UnicodeDammit
from bs4.builder import ParserRejectedMarkup

from config import FETCH_MAX_REDIRECTS, FETCH_TIMEOUT_SECONDS, FETCH_USER_AGENT, FETCH_VERIFY_TLS
from errors import HttpStatusError, InvalidUrlError, TransportError

logger = logging.getLogger(__name__)

_REQUEST_HEADERS = {
    "User-Agent": FETCH_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
}

_ALLOWED_SCHEMES = {"http", "https"}
_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.I)
_CHUNK_SIZE = 64 * 1024


def validate_url(url: str) -> str:
    """Return the trimmed URL or raise InvalidUrlError for anything but http(s)."""
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidUrlError() from exc
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidUrlError()
    return candidate


def fetch_html(url: str, session: requests.Session | None = None) -> str:
    """
    Fetch `url` and return its body as text.

    Raises InvalidUrlError before any network access, TransportError for
    connection/TLS/timeout/redirect failures and HttpStatusError when the
    final response has a status code of 400 or above. No retries.
    """
    target = validate_url(url)
    owns_session = session is None
    http = session if session is not None else requests.Session()
    http.max_redirects = FETCH_MAX_REDIRECTS
    deadline = time.monotonic() + FETCH_TIMEOUT_SECONDS
    expired = threading.Event()

    try:
        response = http.get(
            target,
            timeout=FETCH_TIMEOUT_SECONDS,
            headers=_REQUEST_HEADERS,
            verify=FETCH_VERIFY_TLS,
            allow_redirects=True,
            stream=True,
        )
        watchdog: threading.Timer | None = None
        try:
            if response.status_code >= 400:
                logger.warning("Fetch of %s answered with status %s", target, response.status_code)
                raise HttpStatusError(response.status_code)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise _deadline_error()
            # Socket timeouts only bound single reads; the watchdog bounds the whole body.
            watchdog = threading.Timer(remaining, _abort, args=(response, expired))
            watchdog.daemon = True
            watchdog.start()
            body = _read_body(response)
            if expired.is_set():
                raise _deadline_error()
            declared = _declared_charset(response)
        finally:
            if watchdog is not None:
                watchdog.cancel()
            response.close()
    except requests.TooManyRedirects as exc:
        logger.warning("Fetch of %s exceeded the redirect limit", target)
        raise TransportError(f"Zu viele Weiterleitungen (mehr als {FETCH_MAX_REDIRECTS}).") from exc
    except requests.RequestException as exc:
        if expired.is_set():
            logger.warning("Fetch of %s exceeded %gs", target, FETCH_TIMEOUT_SECONDS)
            raise _deadline_error() from exc
        logger.warning("Fetch of %s failed: %s", target, exc)
        raise TransportError(str(exc)) from exc
    except (OSError, ValueError) as exc:
        # a read interrupted by the watchdog can surface outside requests' wrappers
        if not expired.is_set():
            raise
        logger.warning("Fetch of %s exceeded %gs", target, FETCH_TIMEOUT_SECONDS)
        raise _deadline_error() from exc
    finally:
        if owns_session:
            http.close()

    logger.info("Fetched %s (%d bytes)", target, len(body))
    return _decode(body, declared)


def _deadline_error() -> TransportError:
    return TransportError(f"Zeitüberschreitung nach {FETCH_TIMEOUT_SECONDS:g} Sekunden.")


def _abort(response: requests.Response, expired: threading.Event) -> None:
    """Watchdog callback: wake up a blocked read by shutting the socket down."""
    expired.set()
    connection = getattr(response.raw, "connection", None) or getattr(response.raw, "_connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        response.close()


def _read_body(response: requests.Response) -> bytes:
    chunks: list[bytes] = []
    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
        if chunk:
            chunks.append(chunk)
    return b"".join(chunks)


def _declared_charset(response: requests.Response) -> str | None:
    match = _CHARSET_RE.search(response.headers.get("Content-Type", "") or "")
    return match.group(1) if match else None


def _decode(body: bytes, declared: str | None) -> str:
    if not body:
        return ""
    dammit = UnicodeDammit(body, known_definite_encodings=[declared] if declared else [], is_html=True)
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def parse_html(html: str) -> BeautifulSoup | None:
    """
    Parse `html` into a tree. Malformed markup yields a best-effort tree;
    None is returned only for empty input or markup the parser rejects.
    """
    if not html or not html.strip():
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            return BeautifulSoup(html, "html.parser")
        except ParserRejectedMarkup as exc:
            logger.warning("HTML parser rejected the document: %s", exc)
            return None


def find_by_attr(doc: BeautifulSoup, tag: str, attr: str, value: str, required: str) -> Tag | None:
    """
    First `<tag>` whose `attr` equals `value` ignoring case and which carries
    the `required` attribute, e.g. `<meta name="Description" content=...>`.
    """
    wanted = value.lower()
    for element in doc.find_all(tag):
        raw = element.get(attr)
        if raw is None:
            continue
        if isinstance(raw, list):
            # rel and friends are multi-valued in bs4
            raw = " ".join(raw)
        if raw.lower() == wanted and element.has_attr(required):
            return element
    return None


def body_text(doc: BeautifulSoup) -> str:
    """Tag-stripped text of `<body>`; without a body, all text outside `<head>`."""
    body = doc.body
    if body is not None:
        return body.get_text(" ")
    pieces = [
        str(node)
        for node in doc.find_all(string=True)
        if type(node) is NavigableString and node.find_parent(["head", "title"]) is None
    ]
    return " ".join(pieces)
