"""Error kinds raised along the check pipeline.

Every error carries a German, user-facing ``message``; the request handlers
in main.py catch ``SeoCheckError`` and render that message.
"""


class SeoCheckError(Exception):
    """Base class for all expected failures of a check request."""

    kind = "error"
    default_message = "Bei der Analyse ist ein Fehler aufgetreten."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidUrlError(SeoCheckError):
    kind = "invalid_url"
    default_message = "Bitte gib eine gültige URL mit http oder https an."


class FetchError(SeoCheckError):
    """The page could not be retrieved."""

    kind = "fetch_error"


class TransportError(FetchError):
    """Connection, TLS, timeout or redirect-limit failure."""

    kind = "transport_error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Fehler beim Abrufen der Seite: {detail}")


class HttpStatusError(FetchError):
    """The server answered, but with a status code of 400 or above."""

    kind = "http_status_error"

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Die URL antwortete mit dem Statuscode {status_code}.")


class UnparseableDocumentError(SeoCheckError):
    kind = "unparseable_document"
    default_message = "Der HTML-Inhalt konnte nicht verarbeitet werden."


class InvalidEmailError(SeoCheckError):
    kind = "invalid_email"
    default_message = "Bitte gib eine gültige E-Mail-Adresse an."


class MissingCaptchaAnswerError(SeoCheckError):
    kind = "missing_captcha_answer"
    default_message = "Bitte beantworte die Sicherheitsfrage mit einer Zahl."


class WrongCaptchaAnswerError(SeoCheckError):
    kind = "wrong_captcha_answer"
    default_message = "Die Antwort auf die Sicherheitsfrage ist leider falsch."


class MailDeliveryError(SeoCheckError):
    kind = "mail_delivery_failure"
    default_message = "Die E-Mail konnte nicht versendet werden. Bitte versuche es später erneut."
