from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

from showtime_recommender.core.catalog import Movie
from showtime_recommender.core.engine import (
    DEFAULT_BANNER_LIMIT,
    DEFAULT_NEW_RELEASES_LIMIT,
    DEFAULT_NOW_SHOWING_LIMIT,
    DEFAULT_RECOMMENDED_LIMIT,
    DEFAULT_TRENDING_LIMIT,
    RecommendationEngine,
)
from showtime_recommender.core.preferences import PreferenceProfile


@dataclass(frozen=True)
class HomeFeed:
    banner: list[Movie]
    now_showing: list[Movie]
    new_releases: list[Movie]
    trending: list[Movie]
    recommended: list[Movie]


def build_home_feed(
    movies: Sequence[Movie],
    profile: PreferenceProfile | None = None,
    *,
    engine: RecommendationEngine | None = None,
    now: date | datetime | None = None,
) -> HomeFeed:
    """Split a city's candidate movies into the home-screen sections.

    All sections are computed against the same ``now`` so a movie can't drop out of
    one window and into another between sections.
    """

    engine = engine or RecommendationEngine()
    today = engine.today(now)

    return HomeFeed(
        banner=engine.get_banner_movies(movies, profile, limit=DEFAULT_BANNER_LIMIT, now=today),
        now_showing=engine.get_now_showing(movies, limit=DEFAULT_NOW_SHOWING_LIMIT, now=today),
        new_releases=engine.get_new_releases(
            movies, only_recent=True, limit=DEFAULT_NEW_RELEASES_LIMIT, now=today
        ),
        trending=engine.get_trending(movies, limit=DEFAULT_TRENDING_LIMIT),
        recommended=engine.get_recommended(
            movies, profile, limit=DEFAULT_RECOMMENDED_LIMIT, now=today
        ),
    )


def available_genres(movies: Sequence[Movie]) -> list[str]:
    """Distinct genre tags across the candidate set, sorted case-insensitively.

    Tags differing only by case collapse to the first spelling seen.
    """

    seen: dict[str, str] = {}
    for movie in movies:
        for genre in movie.genres or []:
            if not isinstance(genre, str) or not genre.strip():
                continue
            seen.setdefault(genre.strip().casefold(), genre.strip())
    return sorted(seen.values(), key=lambda g: (g.casefold(), g))
