#just using this to load sample data into the db
import click

from models import db
from app_core import store
from app_core.auth import hash_password

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo12345"

DEMO_WATCHLIST = [
    ("The Matrix", 1999),
    ("Inception", 2010),
    ("Dune: Part One", 2021),
]

DEMO_REVIEWS = [
    ("The Matrix", 9, "Still holds up."),
    ("Inception", 8, "Great ending."),
]


def seed_demo():
    """Create the demo user with a small watchlist and two reviews. Safe to run twice."""
    user = store.find_user(DEMO_USERNAME)
    if user is not None:
        return False

    user = store.create_user(DEMO_USERNAME, hash_password(DEMO_PASSWORD))
    for title, year in DEMO_WATCHLIST:
        store.add_to_watchlist(user.user_id, store.upsert_movie(title, year))
    for title, rating, text in DEMO_REVIEWS:
        store.add_review(user.user_id, store.find_or_create_movie(title), rating, text)
    db.session.commit()
    return True


def register_commands(app):
    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Load the demo user and sample data."""
        if seed_demo():
            click.echo(f"Seeded user {DEMO_USERNAME!r}.")
        else:
            click.echo(f"User {DEMO_USERNAME!r} already exists; nothing to do.")
