from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

RATING_MIN = 1
RATING_MAX = 10
REVIEW_TEXT_MAX = 200


class User(db.Model):
    __tablename__ = "users"
    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), nullable=False, unique=True)
    password = db.Column(db.String(255), nullable=False)  # werkzeug hash, never the clear value

    reviews = db.relationship("Review", back_populates="user", cascade="all, delete-orphan")
    watchlist = db.relationship("WatchlistEntry", back_populates="user", cascade="all, delete-orphan")
    sessions = db.relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.user_id} {self.username!r}>"


class Movie(db.Model):
    __tablename__ = "movies"
    movie_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False, unique=True)
    release_year = db.Column(db.Integer)

    reviews = db.relationship("Review", back_populates="movie", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Movie {self.movie_id} {self.title!r}>"


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (
        db.CheckConstraint(f"rating BETWEEN {RATING_MIN} AND {RATING_MAX}", name="ck_reviews_rating_range"),
    )
    review_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    movie_id = db.Column(db.Integer, db.ForeignKey("movies.movie_id", ondelete="CASCADE"), nullable=False)
    rating = db.Column(db.Integer)
    review_text = db.Column(db.String(REVIEW_TEXT_MAX))

    user = db.relationship("User", back_populates="reviews")
    movie = db.relationship("Movie", back_populates="reviews")

    def __repr__(self):
        return f"<Review {self.review_id} movie={self.movie_id} rating={self.rating}>"


class WatchlistEntry(db.Model):
    __tablename__ = "user_list"
    __table_args__ = (
        db.UniqueConstraint("user_id", "movie_id", name="uq_user_list_user_movie"),
    )
    list_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    movie_id = db.Column(db.Integer, db.ForeignKey("movies.movie_id", ondelete="CASCADE"), nullable=False)

    user = db.relationship("User", back_populates="watchlist")
    movie = db.relationship("Movie")

    def __repr__(self):
        return f"<WatchlistEntry user={self.user_id} movie={self.movie_id}>"


class UserSession(db.Model):
    """Server-side login session; the cookie only carries `session_id`."""
    __tablename__ = "user_sessions"
    session_id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession user={self.user_id} expires={self.expires_at:%Y-%m-%d %H:%M}>"
