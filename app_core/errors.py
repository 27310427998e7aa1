from flask import request, current_app
from werkzeug.exceptions import HTTPException, BadRequest
from typing import Any, Dict, Tuple

from models import RATING_MIN, RATING_MAX, REVIEW_TEXT_MAX
from .responders import get_responder

# -----------------------------
# Error handlers
# -----------------------------

def install_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        # routing redirects (e.g. trailing slash) are HTTPExceptions too
        if e.code is None or e.code < 400:
            return e
        return get_responder().fail(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_generic(e: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        # Avoid leaking details in production responses
        return get_responder().fail("Something went wrong. Please try again later.", 500)


# -----------------------------
# Validators & helpers
# -----------------------------

USERNAME_MAX = 50
TITLE_MAX = 100
PROFILE_SORTS = {
    "rating_desc": "Highest Rated First",
    "rating_asc": "Lowest Rated First",
}

def read_payload() -> Dict[str, Any]:
    """Request fields from a JSON body or a submitted form."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise BadRequest("JSON body must be an object")
        return data
    return request.form.to_dict()

def validate_credentials(data: Dict[str, Any]) -> Tuple[str, str]:
    username = data.get("username")
    password = data.get("password")
    username = username.strip() if isinstance(username, str) else ""
    if not isinstance(password, str):
        password = ""
    if not username or not password:
        raise BadRequest("Username and password are required.")
    if len(username) > USERNAME_MAX:
        raise BadRequest(f"Username must be at most {USERNAME_MAX} characters.")
    return username, password

def validate_title(v: Any) -> str:
    title = v.strip() if isinstance(v, str) else ""
    if not title:
        raise BadRequest("title is required")
    if len(title) > TITLE_MAX:
        raise BadRequest(f"title must be at most {TITLE_MAX} characters")
    return title

def parse_year(v: Any) -> int | None:
    # omdb years look like "2014" or "2011–2013" for series; keep the first year
    if isinstance(v, int) and not isinstance(v, bool):
        return v
    year = str(v or "").strip()[:4]
    if len(year) == 4 and year.isdigit():
        return int(year)
    return None

def parse_rating(v: Any) -> int:
    if v in (None, ""):
        raise BadRequest("rating is required")
    # whole numbers only: JSON true/false and 9.9 are not ratings
    if isinstance(v, bool) or not isinstance(v, (int, str)):
        raise BadRequest(f"rating must be an integer {RATING_MIN}–{RATING_MAX}")
    try:
        r = int(v)
    except ValueError:
        raise BadRequest(f"rating must be an integer {RATING_MIN}–{RATING_MAX}")
    if not (RATING_MIN <= r <= RATING_MAX):
        raise BadRequest(f"rating must be between {RATING_MIN} and {RATING_MAX}")
    return r

def validate_review_text(v: Any) -> str:
    text = v.strip() if isinstance(v, str) else ""
    if len(text) > REVIEW_TEXT_MAX:
        raise BadRequest(f"review must be at most {REVIEW_TEXT_MAX} characters")
    return text

def validate_sort_param() -> str:
    sort = request.args.get("sort", "rating_desc")
    return sort if sort in PROFILE_SORTS else "rating_desc"
