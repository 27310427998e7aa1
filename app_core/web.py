from flask import Blueprint, current_app, request, url_for
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest

from models import db
from movie_api import CatalogError, CatalogNotConfigured
from . import store
from .errors import (
    read_payload, validate_title, parse_year, parse_rating,
    validate_review_text, validate_sort_param, PROFILE_SORTS,
)
from .query_utils import load_profile
from .responders import get_responder
from .session_utils import current_user, logout_user

web_bp = Blueprint("web", __name__)  # everything here needs a logged-in user

def catalog():
    return current_app.extensions["catalog"]

@web_bp.before_request
def _require_login():
    if current_user() is None:
        return get_responder().login_required(url_for("auth.login"))

# -----------------------------
# Discover
# -----------------------------

@web_bp.get("/discover")
def discover():
    user = current_user()
    query = (request.args.get("title") or "").strip()
    payload = {
        "username": user["username"],
        "results": [],
        "popular": [],
        "top10": [],
        "message": None,
        "is_search": bool(query),
    }
    client = catalog()

    if not client.configured:
        payload["message"] = "Movie catalog API key not configured."
        return get_responder().page("discover.html", payload)

    try:
        if query:
            payload["results"] = client.search(query)
            if not payload["results"]:
                payload["message"] = "No movies found for your search."
        else:
            payload["popular"], payload["top10"] = client.curated()
    except CatalogNotConfigured:
        payload["message"] = "Movie catalog API key not configured."
    except CatalogError as e:
        current_app.logger.warning("Catalog error: %s", e)
        payload.update(results=[], popular=[], top10=[], message="Error loading movies. Try again later.")

    return get_responder().page("discover.html", payload)

# -----------------------------
# Watchlist
# -----------------------------

@web_bp.post("/movies/add")
def add_movie():
    responder = get_responder()
    user = current_user()
    data = read_payload()
    try:
        title = validate_title(data.get("title"))
    except BadRequest as e:
        return responder.fail(e.description, 400, redirect_to=url_for("web.discover"))
    year = parse_year(data.get("year"))

    try:
        movie_id = store.upsert_movie(title, year)
        store.add_to_watchlist(user["user_id"], movie_id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error adding movie %r for user %s", title, user["user_id"])
        return responder.fail("Could not add movie. Please try again later.", 500, redirect_to=url_for("web.discover"))

    current_app.logger.info("Movie added to user %s: %s", user["user_id"], title)
    return responder.done("Movie added to watchlist.", redirect_to=url_for("web.discover"))

# -----------------------------
# Reviews
# -----------------------------

@web_bp.get("/reviews/new")
def new_review():
    user = current_user()
    title = (request.args.get("title") or "").strip()
    return get_responder().page("review.html", {"username": user["username"], "title": title})

@web_bp.post("/reviews")
@web_bp.post("/reviews/add")
def add_review():
    responder = get_responder()
    user = current_user()
    data = read_payload()
    try:
        title = validate_title(data.get("title"))
        rating = parse_rating(data.get("rating"))
        text = validate_review_text(data.get("review_text"))
    except BadRequest as e:
        back = url_for("web.new_review", title=str(data.get("title") or "").strip() or None)
        return responder.fail(e.description, 400, redirect_to=back)

    try:
        movie_id = store.find_or_create_movie(title)
        store.add_review(user["user_id"], movie_id, rating, text)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error adding review for %r", title)
        return responder.fail("Could not add review. Please try again later.", 500, redirect_to=url_for("web.discover"))

    current_app.logger.info("Review added for %s", title)
    return responder.done("Review added.", redirect_to=url_for("web.discover"), status=201)

@web_bp.get("/reviews")
def list_reviews():
    responder = get_responder()
    user = current_user()
    title = (request.args.get("title") or "").strip()
    if not title:
        return responder.fail("title is required", 400, redirect_to=url_for("web.discover"))

    try:
        reviews = store.reviews_for_title(title)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error fetching reviews for %r", title)
        return responder.fail("Could not load reviews. Please try again later.", 500, redirect_to=url_for("web.discover"))

    return responder.page("read_review.html", {
        "username": user["username"],
        "title": title,
        "reviews": reviews,
        "message": None if reviews else "No reviews yet. Be the first to add one!",
    })

# -----------------------------
# Profile
# -----------------------------

@web_bp.get("/profile")
def profile():
    responder = get_responder()
    user = current_user()
    sort = validate_sort_param()
    app = current_app._get_current_object()

    try:
        watchlist, reviews, top_movies = load_profile(app, user["user_id"], sort)
    except Exception:
        current_app.logger.exception("Error loading profile for user %s", user["user_id"])
        return responder.fail("Could not load profile. Please try again later.", 500, redirect_to=url_for("web.discover"))

    return responder.page("profile.html", {
        "username": user["username"],
        "watchlist": watchlist,
        "reviews": reviews,
        "top_movies": top_movies,
        "sort": sort,
        "sort_label": PROFILE_SORTS[sort],
    })

# -----------------------------
# Logout
# -----------------------------

@web_bp.get("/logout")
def logout():
    user = logout_user()
    current_app.logger.info("User logged out: %s", user["username"] if user else None)
    return get_responder().page("logout.html", {"message": "Logged out."})
