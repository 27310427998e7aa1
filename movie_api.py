import logging
from concurrent.futures import ThreadPoolExecutor

import requests

logger = logging.getLogger(__name__)

OMDB_BASE = "http://www.omdbapi.com/"  # base url for the omdb api
IMDB_TITLE_URL = "https://www.imdb.com/title/{}"

# searches used to simulate a "popular" shelf on the discover page
POPULAR_SEARCHES = ["Avengers", "Batman", "Spider", "Star Wars", "Harry Potter"]
POPULAR_LIMIT = 50
PER_SEARCH_LIMIT = 10

TOP10_TITLES = [
    "The Shawshank Redemption",
    "The Godfather",
    "The Dark Knight",
    "Inception",
    "Interstellar",
    "Pulp Fiction",
    "Fight Club",
    "Forrest Gump",
    "The Matrix",
    "Goodfellas",
]


class CatalogError(Exception):
    """The catalog could not be reached or answered with garbage."""


class CatalogNotConfigured(CatalogError):
    """No API key, so no catalog calls are possible."""


def _poster(value):
    # omdb uses the literal "N/A" for a missing poster
    if not value or value == "N/A":
        return None
    return value


def _map_movie(m):  # mapping one omdb entry to the display shape
    imdb_id = m.get("imdbID")
    return {
        "title": m.get("Title"),
        "year": m.get("Year"),
        "poster": _poster(m.get("Poster")),
        "imdb_id": imdb_id,
        "url": IMDB_TITLE_URL.format(imdb_id) if imdb_id else None,
    }


def dedupe_by_imdb_id(items):
    seen = set()
    unique = []
    for it in items:
        key = it.get("imdb_id")
        if key in seen:
            continue
        seen.add(key)
        unique.append(it)
    return unique


class OmdbClient:
    """
    Thin client over the OMDb HTTP API.

    `search` runs a free-text title search (`s=`), `lookup` fetches one exact
    title (`t=`). Both return already-normalized dicts. Transport failures are
    raised as CatalogError; "no match" answers are an empty result, not an error.
    """

    def __init__(self, api_key, base_url=OMDB_BASE, timeout=5.0, http=None):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.http = http or requests  # plain requests.get per call, nothing shared by the curated workers

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get(self, **params):  # internal function to make get requests to omdb
        if not self.api_key:
            raise CatalogNotConfigured("OMDb API key missing")
        params = {"apikey": self.api_key, **params}
        try:
            r = self.http.get(self.base_url, params=params, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            raise CatalogError(f"OMDb request failed: {e}") from e

    def search(self, title):  # searching movies by title
        data = self._get(s=title)
        if data.get("Response") == "False":
            return []
        return [_map_movie(m) for m in data.get("Search") or []]

    def lookup(self, title):  # exact title lookup, None when omdb has no match
        data = self._get(t=title)
        if data.get("Response") == "False":
            return None
        item = _map_movie(data)
        item["imdb_rating"] = data.get("imdbRating")
        return item

    def _search_quietly(self, title):
        try:
            return self.search(title)[:PER_SEARCH_LIMIT]
        except CatalogNotConfigured:
            raise
        except CatalogError as e:
            logger.warning("Error fetching %s: %s", title, e)
            return []

    def _lookup_quietly(self, title):
        try:
            return self.lookup(title)
        except CatalogNotConfigured:
            raise
        except CatalogError as e:
            logger.warning("Error fetching %s: %s", title, e)
            return None

    def popular_movies(self):
        items = []
        for title in POPULAR_SEARCHES:
            items.extend(self._search_quietly(title))
        return dedupe_by_imdb_id(items)[:POPULAR_LIMIT]

    def top10_movies(self):
        found = [self._lookup_quietly(title) for title in TOP10_TITLES]
        return [m for m in found if m]

    def curated(self):
        """Fetch the popular shelf and the top-10 shelf at the same time."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            popular = pool.submit(self.popular_movies)
            top10 = pool.submit(self.top10_movies)
            return popular.result(), top10.result()


def client_from_config(config):
    return OmdbClient(
        api_key=config.get("OMDB_API_KEY"),
        base_url=config.get("OMDB_BASE_URL", OMDB_BASE),
        timeout=config.get("OMDB_TIMEOUT", 5.0),
    )
