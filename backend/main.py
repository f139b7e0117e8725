"""SEO-Check – FastAPI app: HTML form, JSON endpoint and health check."""

import logging
import sys
from collections.abc import Callable
from pathlib import Path

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from analyzer import analyze_url
from captcha import CaptchaStore
from config import LOG_LEVEL, SESSION_SECRET
from errors import FetchError, InvalidUrlError, MailDeliveryError, SeoCheckError, UnparseableDocumentError
from mailer import send_report_email
from models import AnalysisRun, CaptchaChallenge
from schemas import AnalyzeRequest, AnalyzeResponse, CheckForm
from scraper import fetch_html

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="SEO-Check API",
    description="Bunter SEO-Checker für einzelne Seiten",
    version="0.1.0",
)

app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET, same_site="lax")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

MAIL_SENT_MESSAGE = "Die Analyse wurde erfolgreich per E-Mail versendet."


def get_captcha_store(request: Request) -> CaptchaStore:
    return CaptchaStore(request.session)


def get_fetcher() -> Callable[[str], str]:
    return fetch_html


def get_mail_sender() -> Callable[..., bool]:
    return send_report_email


def _render(
    request: Request,
    *,
    form: CheckForm,
    challenge: CaptchaChallenge,
    run: AnalysisRun | None = None,
    errors: list[SeoCheckError] | None = None,
    mail_feedback: dict | None = None,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "form": form,
            "challenge": challenge,
            "run": run,
            "errors": errors or [],
            "mail_feedback": mail_feedback,
        },
    )


@app.get("/", response_class=HTMLResponse)
def index(request: Request, store: CaptchaStore = Depends(get_captcha_store)) -> HTMLResponse:
    """Empty form; a captcha challenge is created if the session has none yet."""
    return _render(request, form=CheckForm(), challenge=store.ensure())


@app.post("/", response_class=HTMLResponse)
def check(
    request: Request,
    url: str = Form(""),
    email: str = Form(""),
    captcha_answer: str = Form(""),
    store: CaptchaStore = Depends(get_captcha_store),
    fetcher: Callable[[str], str] = Depends(get_fetcher),
    send_mail: Callable[..., bool] = Depends(get_mail_sender),
) -> HTMLResponse:
    """
    Pipeline: validate form -> fetch + analyse -> optional e-mail -> render.
    Validation errors stop the request before any network access.
    """
    form = CheckForm(url=url, email=email, captcha_answer=captcha_answer)
    challenge = store.load()

    errors = form.validate_submission(challenge)
    run: AnalysisRun | None = None
    mail_feedback: dict | None = None

    if errors:
        logger.info("Rejected submission: %s", ", ".join(e.kind for e in errors))
    else:
        try:
            run = analyze_url(form.url, fetcher=fetcher)
        except SeoCheckError as exc:
            logger.info("Analysis of %s failed: %s", form.url, exc.kind)
            errors.append(exc)

    if run is not None and form.email:
        if send_mail(recipient_email=form.normalized_email, run=run):
            mail_feedback = {"type": "success", "message": MAIL_SENT_MESSAGE}
        else:
            mail_feedback = {"type": "error", "message": MailDeliveryError().message}

    # One answer per challenge, whatever the outcome.
    next_challenge = store.rotate()

    return _render(
        request,
        form=form,
        challenge=next_challenge,
        run=run,
        errors=errors,
        mail_feedback=mail_feedback,
    )


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze_api(
    body: AnalyzeRequest,
    fetcher: Callable[[str], str] = Depends(get_fetcher),
) -> AnalyzeResponse:
    """Run the checks for one URL and return the report as JSON."""
    try:
        run = analyze_url(body.url, fetcher=fetcher)
    except InvalidUrlError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    except UnparseableDocumentError as exc:
        raise HTTPException(status_code=422, detail=exc.message)
    return AnalyzeResponse.model_validate(run)


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}
