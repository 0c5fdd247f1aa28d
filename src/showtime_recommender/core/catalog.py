from __future__ import annotations

import json
import math
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from showtime_recommender.core.config import catalog_url, default_data_dir


class CatalogError(RuntimeError):
    pass


class CatalogNotConfigured(CatalogError):
    pass


@dataclass(frozen=True)
class Movie:
    movie_id: str
    title: str = ""
    genres: list[str] = field(default_factory=list)
    # A date, or the raw ISO string from the document store; may be missing or garbage.
    release_date: date | str | None = None
    popularity_score: float = 0.0

    # Display-only fields; never read by the ranking engine.
    poster_url: str | None = None
    banner_url: str | None = None
    rating: float | None = None
    language: str | None = None
    duration: str | None = None
    certification: str | None = None


# Accepts zero-padded and non-padded dates, optionally followed by a time part.
_ISO_DATE_RE = re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})(?:[T ].*)?$")


def parse_release_date(value: Any) -> date | None:
    """Best-effort conversion of a release date to a calendar date.

    Returns None for anything that can't be read as a date rather than raising.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    m = _ISO_DATE_RE.match(value.strip())
    if not m:
        return None
    try:
        return date(int(m.group("y")), int(m.group("m")), int(m.group("d")))
    except ValueError:
        return None


def coerce_popularity(value: Any) -> float:
    """Return a finite, non-negative popularity score; anything else is 0.0."""

    if isinstance(value, bool):
        return 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(score) or score < 0:
        return 0.0
    return score


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _coerce_genres(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [g.strip() for g in value if isinstance(g, str) and g.strip()]


def _coerce_rating(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    return rating if math.isfinite(rating) and rating >= 0 else None


def movie_from_record(raw: dict[str, Any], *, movie_id: str | None = None) -> Movie:
    """Build a Movie from a document-store record.

    The store uses camelCase keys (``movieId``, ``releaseDate``, ``popularityScore``,
    ``genre``). Missing or mistyped values fall back to defaults so a single bad
    record never blocks a whole catalogue.
    """

    mid = _coerce_str(raw.get("movieId")) or _coerce_str(raw.get("movie_id")) or movie_id or ""
    release = raw.get("releaseDate", raw.get("release_date"))
    parsed_release = parse_release_date(release)
    if release and parsed_release is None:
        logger.debug("Unparseable release date {!r} for movie {}", release, mid)

    return Movie(
        movie_id=mid,
        title=_coerce_str(raw.get("title")) or "",
        genres=_coerce_genres(raw.get("genre", raw.get("genres"))),
        release_date=parsed_release if parsed_release is not None else _coerce_str(release),
        popularity_score=coerce_popularity(
            raw.get("popularityScore", raw.get("popularity_score"))
        ),
        poster_url=_coerce_str(raw.get("posterUrl", raw.get("poster_url"))),
        banner_url=_coerce_str(raw.get("bannerUrl", raw.get("banner_url"))),
        rating=_coerce_rating(raw.get("rating")),
        language=_coerce_str(raw.get("language")),
        duration=_coerce_str(raw.get("duration")),
        certification=_coerce_str(raw.get("certification")),
    )


def parse_catalog_payload(payload: Any) -> list[Movie]:
    """Parse a catalogue payload into movies, preserving payload order.

    The realtime store returns collections as ``{movieId: record}`` objects; plain
    lists of records are accepted too. Non-object entries are skipped.
    """

    if payload is None:
        return []

    if isinstance(payload, dict):
        items: list[tuple[str | None, Any]] = [(str(k), v) for k, v in payload.items()]
    elif isinstance(payload, list):
        items = [(None, v) for v in payload]
    else:
        raise CatalogError(f"Unexpected catalogue payload type: {type(payload).__name__}")

    movies: list[Movie] = []
    for key, record in items:
        if not isinstance(record, dict):
            continue
        movies.append(movie_from_record(record, movie_id=key))
    return movies


def movie_to_record(movie: Movie) -> dict[str, Any]:
    raw = asdict(movie)
    if isinstance(movie.release_date, date):
        raw["release_date"] = movie.release_date.isoformat()
    return raw


def _city_cache_path(city: str, *, data_dir: Path | None = None) -> Path:
    base = data_dir or default_data_dir()
    return base / "cities" / city.strip().lower() / "movies.json"


def load_cached_city_movies(city: str, *, data_dir: Path | None = None) -> list[Movie] | None:
    path = _city_cache_path(city, data_dir=data_dir)
    if not path.exists():
        return None

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CatalogError(f"Corrupt catalogue cache for '{city}': {path}") from e
    return parse_catalog_payload(raw)


def persist_city_movies(
    city: str, movies: list[Movie], *, data_dir: Path | None = None
) -> Path:
    path = _city_cache_path(city, data_dir=data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([movie_to_record(m) for m in movies], indent=2) + "\n")
    return path


def fetch_city_movies(
    city: str,
    *,
    base_url: str | None = None,
    client: httpx.Client | None = None,
    timeout_s: float = 20.0,
) -> list[Movie]:
    """Fetch the candidate movies for a city from the realtime document store's REST API."""

    base = base_url or catalog_url()
    if not base:
        raise CatalogNotConfigured("No catalogue URL configured")

    close_client = False
    if client is None:
        client = httpx.Client(
            headers={
                "User-Agent": "showtime-recommender/0.1",
                "Accept": "application/json",
            },
            timeout=timeout_s,
            follow_redirects=True,
        )
        close_client = True

    url = f"{base}/cities/{city.strip().lower()}/movies.json"
    try:
        logger.info("Fetching catalogue for {} from {}", city, url)
        try:
            resp = client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Catalogue fetch failed for {}: {}", city, e)
            raise CatalogError(f"Failed to fetch catalogue: {e}") from e

        if resp.status_code >= 400:
            logger.warning("Catalogue fetch for {} returned {}", city, resp.status_code)
            raise CatalogError(f"Failed to fetch catalogue ({resp.status_code})")

        try:
            payload = resp.json()
        except ValueError as e:
            raise CatalogError("Catalogue response was not valid JSON") from e
        return parse_catalog_payload(payload)
    finally:
        if close_client:
            client.close()


def get_city_movies(
    city: str,
    *,
    client: httpx.Client | None = None,
    data_dir: Path | None = None,
    refresh: bool = False,
) -> list[Movie]:
    cached = None if refresh else load_cached_city_movies(city, data_dir=data_dir)
    if cached is not None:
        return cached

    movies = fetch_city_movies(city, client=client)
    persist_city_movies(city, movies, data_dir=data_dir)
    return movies
