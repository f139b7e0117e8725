"""Arithmetic challenge that gates the e-mail branch of the form.

A challenge is valid for exactly one submission: main.py replaces it after
every POST, whether the answer was right or not. The session cookie is
signed but readable, so it only carries an HMAC of the answer, never the
answer itself.
"""

import hashlib
import hmac
import random
import secrets
from collections.abc import MutableMapping
from datetime import datetime, timedelta, timezone

from config import CAPTCHA_MAX_AGE_SECONDS, SESSION_SECRET
from errors import MissingCaptchaAnswerError, WrongCaptchaAnswerError
from models import CaptchaChallenge

SESSION_KEY = "captcha"
MIN_OPERAND = 1
MAX_OPERAND = 9


def _digest(nonce: str, answer: int) -> str:
    message = f"{nonce}:{answer}".encode("utf-8")
    return hmac.new(SESSION_SECRET.encode("utf-8"), message, hashlib.sha256).hexdigest()


def seal(question: str, answer: int) -> CaptchaChallenge:
    """Challenge for `question` that can verify `answer` without storing it."""
    nonce = secrets.token_hex(16)
    return CaptchaChallenge(question=question, nonce=nonce, digest=_digest(nonce, answer))


def new_challenge(rng: random.Random | None = None) -> CaptchaChallenge:
    rng = rng or random.SystemRandom()
    a = rng.randint(MIN_OPERAND, MAX_OPERAND)
    b = rng.randint(MIN_OPERAND, MAX_OPERAND)
    return seal(f"{a} + {b} = ?", a + b)


def check_answer(challenge: CaptchaChallenge | None, raw_answer: str | None) -> None:
    """
    Raise MissingCaptchaAnswerError for empty or non-numeric input and
    WrongCaptchaAnswerError when the number does not match the challenge
    or the challenge is older than CAPTCHA_MAX_AGE_SECONDS.
    """
    text = (raw_answer or "").strip()
    if not text:
        raise MissingCaptchaAnswerError()
    try:
        answer = int(text)
    except ValueError as exc:
        raise MissingCaptchaAnswerError() from exc
    if challenge is None:
        raise WrongCaptchaAnswerError()
    age = datetime.now(timezone.utc) - challenge.generated_at
    if age > timedelta(seconds=CAPTCHA_MAX_AGE_SECONDS):
        raise WrongCaptchaAnswerError()
    if not hmac.compare_digest(_digest(challenge.nonce, answer), challenge.digest):
        raise WrongCaptchaAnswerError()


class CaptchaStore:
    """Reads and writes the current challenge in a per-session mapping."""

    def __init__(self, session: MutableMapping) -> None:
        self._session = session

    def load(self) -> CaptchaChallenge | None:
        return CaptchaChallenge.from_dict(self._session.get(SESSION_KEY))

    def save(self, challenge: CaptchaChallenge) -> None:
        self._session[SESSION_KEY] = challenge.to_dict()

    def ensure(self) -> CaptchaChallenge:
        """Current challenge, creating and storing one if the session has none."""
        challenge = self.load()
        if challenge is None:
            challenge = new_challenge()
            self.save(challenge)
        return challenge

    def rotate(self) -> CaptchaChallenge:
        challenge = new_challenge()
        self.save(challenge)
        return challenge
