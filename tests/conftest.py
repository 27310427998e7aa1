import os, sys, pytest

# allow importing the app modules from the repo root
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db
from movie_api import CatalogError

JSON = {"Accept": "application/json"}


class FakeCatalog:
    """Stands in for OmdbClient; records the calls it receives."""

    def __init__(self, search_results=None, popular=None, top10=None, error=None, configured=True):
        self.search_results = search_results or {}
        self.popular = popular or []
        self.top10 = top10 or []
        self.error = error
        self.configured = configured
        self.calls = []

    def search(self, title):
        self.calls.append(("search", title))
        if self.error:
            raise self.error
        return list(self.search_results.get(title, []))

    def curated(self):
        self.calls.append(("curated",))
        if self.error:
            raise self.error
        return list(self.popular), list(self.top10)


def movie(title, year="2014", imdb_id="tt0816692", poster=None):
    return {
        "title": title,
        "year": year,
        "poster": poster,
        "imdb_id": imdb_id,
        "url": f"https://www.imdb.com/title/{imdb_id}",
    }


@pytest.fixture()
def catalog():
    return FakeCatalog()


@pytest.fixture()
def app(tmp_path, catalog):
    # isolated app + temp sqlite db per test
    app = create_app(
        config={
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'test.db'}",
        },
        catalog=catalog,
    )
    yield app

    # teardown: close sessions and dispose engine to silence ResourceWarnings
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


def register(client, username="alice", password="pw12345"):
    return client.post("/register", json={"username": username, "password": password})


def login(client, username="alice", password="pw12345"):
    return client.post("/login", json={"username": username, "password": password})


@pytest.fixture()
def auth_client(client):
    assert register(client).status_code == 200
    assert login(client).status_code == 200
    return client


@pytest.fixture()
def failing_catalog():
    return FakeCatalog(error=CatalogError("connection refused"))
