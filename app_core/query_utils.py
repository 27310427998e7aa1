from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import func

from models import db, Movie, Review, WatchlistEntry

TOP_MOVIES_LIMIT = 10

def watchlist_for(user_id: int) -> list[dict]:
    rows = (
        db.session.query(Movie.title, Movie.release_year)
        .join(WatchlistEntry, WatchlistEntry.movie_id == Movie.movie_id)
        .filter(WatchlistEntry.user_id == user_id)
        .order_by(Movie.title.asc())
        .all()
    )
    return [{"title": r.title, "release_year": r.release_year} for r in rows]

def reviews_by(user_id: int, sort: str) -> list[dict]:
    qry = (
        db.session.query(Movie.title, Movie.release_year, Review.rating, Review.review_text)
        .select_from(Review)
        .join(Movie, Review.movie_id == Movie.movie_id)
        .filter(Review.user_id == user_id)
    )
    if sort == "rating_asc":
        qry = qry.order_by(Review.rating.asc(), Movie.title.asc())
    else:
        qry = qry.order_by(Review.rating.desc(), Movie.title.asc())
    return [
        {"title": r.title, "release_year": r.release_year, "rating": r.rating, "review_text": r.review_text}
        for r in qry.all()
    ]

def top_movies_for(user_id: int, limit: int = TOP_MOVIES_LIMIT) -> list[dict]:
    avg = func.avg(Review.rating)
    count = func.count(Review.review_id)
    rows = (
        db.session.query(Movie.title, Movie.release_year, avg.label("avg_rating"), count.label("review_count"))
        .join(Review, Review.movie_id == Movie.movie_id)
        .filter(Review.user_id == user_id)
        .group_by(Movie.movie_id, Movie.title, Movie.release_year)
        .order_by(avg.desc(), count.desc(), Movie.title.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "title": r.title,
            "release_year": r.release_year,
            "avg_rating": round(float(r.avg_rating), 2),
            "review_count": int(r.review_count),
        }
        for r in rows
    ]

def load_profile(app, user_id: int, sort: str):
    """
    Run the three profile queries side by side and wait for all of them.
    Each worker pushes its own app context, so it gets its own DB session.
    The first failure is re-raised to the caller.
    """
    def run(query, *args):
        with app.app_context():
            return query(*args)

    with ThreadPoolExecutor(max_workers=3) as pool:
        watchlist = pool.submit(run, watchlist_for, user_id)
        reviews = pool.submit(run, reviews_by, user_id, sort)
        top_movies = pool.submit(run, top_movies_for, user_id)
        return watchlist.result(), reviews.result(), top_movies.result()
