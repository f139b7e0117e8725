"""On-page SEO rules and report assembly.

Every rule is a free function taking the parsed document and returning a
RuleResult (or None when the rule does not apply). `evaluate` runs them in
the fixed order of RULES and folds the results into report items, weighted
tips and found-content metadata.
"""

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from bs4 import BeautifulSoup

from config import EXCERPT_MAX_CHARS
from errors import UnparseableDocumentError
from models import AnalysisItem, AnalysisRun, MetadataItem, RuleResult, Status, Tip, tip_weight
from scraper import body_text, fetch_html, find_by_attr, parse_html, validate_url

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 30
TITLE_MAX_LENGTH = 65
DESCRIPTION_MIN_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 160
MIN_WORD_COUNT = 300

NOT_FOUND = "nicht gefunden"
ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")

Rule = Callable[[BeautifulSoup], RuleResult | None]


def excerpt(text: str, limit: int = EXCERPT_MAX_CHARS) -> str:
    """
    Collapse whitespace and cut `text` to at most `limit` characters,
    ellipsis included. Applying it twice gives the same result.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    normalized = _WHITESPACE_RE.sub(" ", text or "").strip()
    if len(normalized) <= limit:
        return normalized
    return normalized[: limit - 1].rstrip() + ELLIPSIS


def _quoted(text: str) -> str:
    return f'"{excerpt(text)}"'


def check_title(doc: BeautifulSoup) -> RuleResult:
    node = doc.find("title")
    title = node.get_text().strip() if node is not None else ""
    length = len(title)
    found = MetadataItem("Titel", title or NOT_FOUND)

    if length == 0:
        return RuleResult(
            AnalysisItem(
                "Titel",
                "Fehlt",
                Status.RED,
                "Der Title-Tag wird in den Suchergebnissen angezeigt und sollte das Hauptthema klar benennen.",
            ),
            "Füge einen aussagekräftigen Title-Tag hinzu (50-60 Zeichen).",
            found,
        )
    if length < TITLE_MIN_LENGTH or length > TITLE_MAX_LENGTH:
        return RuleResult(
            AnalysisItem(
                "Titel",
                f"{_quoted(title)} (Länge {length} Zeichen)",
                Status.ORANGE,
                "Der Title-Tag sollte zwischen 50 und 60 Zeichen liegen, um vollständig angezeigt zu werden.",
            ),
            "Passe die Länge des Title-Tags an (ideal 50-60 Zeichen).",
            found,
        )
    return RuleResult(
        AnalysisItem(
            "Titel",
            f"{_quoted(title)} (optimale Länge, {length} Zeichen)",
            Status.GREEN,
            "Gute Länge. Prüfe, ob das Hauptkeyword weit vorne steht.",
        ),
        None,
        found,
    )


def check_description(doc: BeautifulSoup) -> RuleResult:
    node = find_by_attr(doc, "meta", "name", "description", required="content")
    description = (node.get("content") or "").strip() if node is not None else ""
    length = len(description)
    found = MetadataItem("Meta-Description", description or NOT_FOUND)

    if length == 0:
        return RuleResult(
            AnalysisItem(
                "Meta-Description",
                "Fehlt",
                Status.RED,
                "Die Meta-Description erscheint als Snippet in Google und sollte neugierig auf den Inhalt machen.",
            ),
            "Erstelle eine Meta-Description (50-160 Zeichen), die die Seite beschreibt.",
            found,
        )
    if length < DESCRIPTION_MIN_LENGTH or length > DESCRIPTION_MAX_LENGTH:
        return RuleResult(
            AnalysisItem(
                "Meta-Description",
                f"{_quoted(description)} (Länge {length} Zeichen)",
                Status.ORANGE,
                "Beschreibung zu kurz oder zu lang. Passe sie auf 50 bis 160 Zeichen an.",
            ),
            "Passe die Länge der Meta-Description auf 50-160 Zeichen an.",
            found,
        )
    return RuleResult(
        AnalysisItem(
            "Meta-Description",
            f"{_quoted(description)} (optimale Länge, {length} Zeichen)",
            Status.GREEN,
            "Passt. Achte weiterhin auf eine klare Handlungsaufforderung (CTA).",
        ),
        None,
        found,
    )


def check_h1(doc: BeautifulSoup) -> RuleResult:
    headings = doc.find_all("h1")
    count = len(headings)
    texts = [text for text in (h.get_text(" ", strip=True) for h in headings) if text]
    found = MetadataItem("H1-Überschriften", " | ".join(texts) if texts else NOT_FOUND)

    if count == 0:
        return RuleResult(
            AnalysisItem(
                "H1-Überschrift",
                "Fehlt",
                Status.RED,
                "Die H1 ist die wichtigste Überschrift und sollte das Hauptthema der Seite wiedergeben.",
            ),
            "Füge mindestens eine H1-Überschrift hinzu, die das Hauptthema beschreibt.",
            found,
        )
    if count > 1:
        return RuleResult(
            AnalysisItem(
                "H1-Überschriften",
                f"{count} vorhanden",
                Status.ORANGE,
                "Mehrere H1s können Suchmaschinen verwirren. Reduziere auf eine Hauptüberschrift.",
            ),
            "Verwende idealerweise nur eine H1-Überschrift pro Seite.",
            found,
        )
    value = f"Genau eine vorhanden: {_quoted(texts[0])}" if texts else "Genau eine vorhanden"
    return RuleResult(
        AnalysisItem(
            "H1-Überschrift",
            value,
            Status.GREEN,
            "Sehr gut. Nutze passende Keywords und fasse den Inhalt kurz zusammen.",
        ),
        None,
        found,
    )


def check_canonical(doc: BeautifulSoup) -> RuleResult:
    node = find_by_attr(doc, "link", "rel", "canonical", required="href")
    if node is None:
        return RuleResult(
            AnalysisItem(
                "Canonical",
                "Fehlt",
                Status.ORANGE,
                "Ein Canonical-Tag hilft dabei, doppelte Inhalte zusammenzuführen.",
            ),
            "Setze einen Canonical-Link, um doppelte Inhalte zu vermeiden.",
            MetadataItem("Canonical-URL", NOT_FOUND),
        )
    href = (node.get("href") or "").strip()
    return RuleResult(
        AnalysisItem(
            "Canonical",
            f"Gefunden: {excerpt(href)}" if href else "Gefunden",
            Status.GREEN,
            "Prima, der Canonical zeigt Suchmaschinen die Hauptversion der Seite.",
        ),
        None,
        MetadataItem("Canonical-URL", href or NOT_FOUND),
    )


def check_images(doc: BeautifulSoup) -> RuleResult | None:
    images = doc.find_all("img")
    if not images:
        return None
    missing_alt = sum(1 for image in images if not (image.get("alt") or "").strip())
    if missing_alt > 0:
        return RuleResult(
            AnalysisItem(
                "Bilder",
                f"{missing_alt} von {len(images)} ohne Alt-Text",
                Status.ORANGE,
                "Alt-Texte beschreiben Bilder für Screenreader und liefern Kontext für Suchmaschinen.",
            ),
            "Vergib Alt-Texte für alle Bilder zur besseren Barrierefreiheit und SEO.",
        )
    return RuleResult(
        AnalysisItem(
            "Bilder",
            f"Alle {len(images)} Bilder mit Alt-Text",
            Status.GREEN,
            "Super, alle Bilder sind für Nutzer:innen mit Screenreader zugänglich.",
        ),
    )


def check_word_count(doc: BeautifulSoup) -> RuleResult:
    word_count = len(body_text(doc).split())
    found = MetadataItem("Wortanzahl", f"{word_count} Wörter")
    if word_count < MIN_WORD_COUNT:
        return RuleResult(
            AnalysisItem(
                "Wortanzahl",
                f"{word_count} Wörter",
                Status.ORANGE,
                "Etwas mehr Text hilft, ein Thema umfassend abzudecken und relevante Keywords einzubauen.",
            ),
            "Erhöhe den Textumfang auf mindestens 300 Wörter mit relevantem Inhalt.",
            found,
        )
    return RuleResult(
        AnalysisItem(
            "Wortanzahl",
            f"{word_count} Wörter",
            Status.GREEN,
            "Der Umfang ist solide. Achte zusätzlich auf Strukturierung mit Zwischenüberschriften.",
        ),
        None,
        found,
    )


def check_robots(doc: BeautifulSoup) -> RuleResult:
    node = find_by_attr(doc, "meta", "name", "robots", required="content")
    if node is None:
        return RuleResult(
            AnalysisItem(
                "Meta-Robots",
                "Kein Tag vorhanden",
                Status.ORANGE,
                "Mit einem Meta-Robots-Tag kannst du das Crawling genauer steuern (z. B. index, follow).",
            ),
            None,
            MetadataItem("Meta-Robots", NOT_FOUND),
        )
    raw = node.get("content") or ""
    directive = raw.lower()
    found = MetadataItem("Meta-Robots", raw.strip() or NOT_FOUND)
    if "noindex" in directive:
        return RuleResult(
            AnalysisItem(
                "Meta-Robots",
                "noindex gesetzt",
                Status.RED,
                'Mit "noindex" wird die Seite aktiv von der Google-Suche ausgeschlossen.',
            ),
            "Entferne noindex, wenn die Seite indexiert werden soll.",
            found,
        )
    return RuleResult(
        AnalysisItem(
            "Meta-Robots",
            excerpt(directive),
            Status.GREEN,
            "Die Seite darf indexiert werden. Überprüfe bei Bedarf weitere Direktiven wie follow/nofollow.",
        ),
        None,
        found,
    )


RULES: tuple[Rule, ...] = (
    check_title,
    check_description,
    check_h1,
    check_canonical,
    check_images,
    check_word_count,
    check_robots,
)


def collect_tips(results: Iterable[RuleResult]) -> list[Tip]:
    """Deduplicate tips by text, keeping first-seen order and the highest weight."""
    weights: dict[str, int] = {}
    for result in results:
        if not result.tip:
            continue
        weight = tip_weight(result.item.status)
        if weight > weights.get(result.tip, 0):
            weights[result.tip] = weight
    return [Tip(text, weight) for text, weight in weights.items()]


def evaluate(
    doc: BeautifulSoup, rules: Sequence[Rule] = RULES
) -> tuple[list[AnalysisItem], list[Tip], list[MetadataItem]]:
    results = [result for result in (rule(doc) for rule in rules) if result is not None]
    items = [result.item for result in results]
    metadata = [result.found for result in results if result.found is not None]
    return items, collect_tips(results), metadata


def select_primary(tips: Sequence[Tip]) -> Tip | None:
    """Highest-weight tip; on ties the one encountered first."""
    best: Tip | None = None
    for tip in tips:
        if best is None or tip.weight > best.weight:
            best = tip
    return best


def analyze_url(url: str, fetcher: Callable[[str], str] = fetch_html) -> AnalysisRun:
    """
    Pipeline: fetch -> parse -> evaluate rules -> pick the primary recommendation.
    InvalidUrlError is raised before the fetcher is called; fetch errors
    propagate unchanged; an unparseable body raises UnparseableDocumentError.
    """
    target = validate_url(url)
    html = fetcher(target)
    doc = parse_html(html)
    if doc is None:
        raise UnparseableDocumentError()

    items, tips, metadata = evaluate(doc)
    primary = select_primary(tips)
    logger.info("Analysed %s: %d checks, %d tips", target, len(items), len(tips))
    return AnalysisRun(url=target, items=items, tips=tips, metadata=metadata, primary=primary)
