"""Pydantic schemas for the check form and the JSON API."""

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, field_validator

from captcha import check_answer
from errors import InvalidEmailError, SeoCheckError
from models import CaptchaChallenge, Status
from scraper import validate_url


class CheckForm(BaseModel):
    """Fields of the HTML form posted to /."""

    url: str = ""
    email: str = ""
    captcha_answer: str = ""

    @field_validator("url", "email", "captcha_answer", mode="before")
    @classmethod
    def normalize_text_fields(cls, value: object) -> str:
        return str(value or "").strip()

    def validate_submission(self, challenge: CaptchaChallenge | None) -> list[SeoCheckError]:
        """
        Collect every validation error of the submission at once.
        The captcha is checked only when an e-mail recipient was given.
        """
        errors: list[SeoCheckError] = []
        try:
            validate_url(self.url)
        except SeoCheckError as exc:
            errors.append(exc)

        if self.email:
            try:
                validate_email(self.email, check_deliverability=False)
            except EmailNotValidError:
                errors.append(InvalidEmailError())
            try:
                check_answer(challenge, self.captcha_answer)
            except SeoCheckError as exc:
                errors.append(exc)
        return errors

    @property
    def normalized_email(self) -> str:
        if not self.email:
            return ""
        return validate_email(self.email, check_deliverability=False).normalized


class AnalyzeRequest(BaseModel):
    """Request body for POST /api/analyze."""

    url: str

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, value: object) -> str:
        return str(value or "").strip()


class AnalysisItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    value: str
    status: Status
    hint: str


class TipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    text: str
    weight: int


class MetadataItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    value: str


class AnalyzeResponse(BaseModel):
    """Response for POST /api/analyze."""

    model_config = ConfigDict(from_attributes=True)

    url: str
    items: list[AnalysisItemOut]
    tips: list[TipOut]
    metadata: list[MetadataItemOut]
    primary: TipOut | None = None
