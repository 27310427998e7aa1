"""
Write-side operations on the credential store.

Find-or-create is expressed as INSERT ... ON CONFLICT so concurrent requests
are resolved by the database's unique constraints rather than by ad hoc
existence checks. Callers own the transaction (commit / rollback).
"""
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import CompileError

from models import db, User, Movie, Review, WatchlistEntry


def _insert(model):
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise CompileError(f"upsert is not supported on {dialect!r}")


def create_user(username: str, password_hash: str) -> User:
    user = User(username=username, password=password_hash)
    db.session.add(user)
    db.session.flush()
    return user


def find_user(username: str) -> User | None:
    return User.query.filter_by(username=username).first()


def upsert_movie(title: str, year: int | None = None) -> int:
    """Insert a movie or, on a title conflict, update its year (a missing year keeps the stored one)."""
    movies = Movie.__table__
    stmt = _insert(movies).values(title=title, release_year=year)
    stmt = stmt.on_conflict_do_update(
        index_elements=["title"],
        set_={"release_year": func.coalesce(stmt.excluded.release_year, movies.c.release_year)},
    ).returning(movies.c.movie_id)
    return db.session.execute(stmt).scalar_one()


def find_or_create_movie(title: str) -> int:
    """Insert a movie by title unless it exists; never touches an existing row."""
    stmt = _insert(Movie.__table__).values(title=title).on_conflict_do_nothing(index_elements=["title"])
    db.session.execute(stmt)
    return db.session.execute(
        db.select(Movie.movie_id).filter_by(title=title)
    ).scalar_one()


def add_to_watchlist(user_id: int, movie_id: int) -> bool:
    """Idempotent add; returns False when the pair was already on the list."""
    stmt = _insert(WatchlistEntry.__table__).values(user_id=user_id, movie_id=movie_id)
    stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "movie_id"])
    return db.session.execute(stmt).rowcount == 1


def add_review(user_id: int, movie_id: int, rating: int, review_text: str) -> Review:
    review = Review(user_id=user_id, movie_id=movie_id, rating=rating, review_text=review_text)
    db.session.add(review)
    db.session.flush()
    return review


def reviews_for_title(title: str) -> list[dict]:
    movie = Movie.query.filter_by(title=title).first()
    if movie is None:
        return []
    rows = (
        db.session.query(Review.rating, Review.review_text, User.username)
        .join(User, Review.user_id == User.user_id)
        .filter(Review.movie_id == movie.movie_id)
        .all()
    )
    return [
        {"rating": r.rating, "review_text": r.review_text, "username": r.username}
        for r in rows
    ]
