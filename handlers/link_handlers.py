"""Route handlers for short links and the bundled static pages."""

from html import escape
from pathlib import Path
from string import Template

from request import HTTPRequest
from response import HTTPResponse, ResponseKind

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"
CSS_CONTENT_TYPE = "text/css; charset=utf-8"


def _load_template(name: str) -> str:
    return (TEMPLATES_DIR / name).read_text(encoding="utf-8")


INDEX_PAGE = _load_template("index.html")
STYLE_SHEET = _load_template("style.css")
# ${token} and ${link} are filled in a single pass, so substituted text is
# never scanned for placeholders again.
REDIRECT_PAGE = Template(_load_template("redirect.html"))
NOT_FOUND_PAGE = Template(_load_template("404.html"))


def redirect(token: str, link: str, *, allow_client_cache: bool) -> HTTPResponse:
    kind = ResponseKind.PERMANENT_REDIRECT if allow_client_cache else ResponseKind.TEMPORARY_REDIRECT
    body = REDIRECT_PAGE.safe_substitute(token=escape(token), link=escape(link))
    return HTTPResponse(
        kind=kind,
        headers={"Location": link, "Content-Type": HTML_CONTENT_TYPE},
        body=body,
    )


def not_found(token: str) -> HTTPResponse:
    return HTTPResponse(
        kind=ResponseKind.NOT_FOUND,
        headers={"Content-Type": HTML_CONTENT_TYPE},
        body=NOT_FOUND_PAGE.safe_substitute(token=escape(token)),
    )


def index(request: HTTPRequest) -> HTTPResponse:
    _ = request
    return HTTPResponse(
        kind=ResponseKind.OK,
        headers={"Content-Type": HTML_CONTENT_TYPE},
        body=INDEX_PAGE,
    )


def stylesheet(request: HTTPRequest) -> HTTPResponse:
    _ = request
    return HTTPResponse(
        kind=ResponseKind.OK,
        headers={"Content-Type": CSS_CONTENT_TYPE},
        body=STYLE_SHEET,
    )
