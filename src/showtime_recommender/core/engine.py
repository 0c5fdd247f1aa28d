from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from loguru import logger

from showtime_recommender.core.catalog import Movie, coerce_popularity, parse_release_date
from showtime_recommender.core.config import RankingConfig
from showtime_recommender.core.preferences import PreferenceProfile

DEFAULT_RECOMMENDED_LIMIT = 10
DEFAULT_BANNER_LIMIT = 5
DEFAULT_NEW_RELEASES_LIMIT = 10
DEFAULT_TRENDING_LIMIT = 10
DEFAULT_NOW_SHOWING_LIMIT = 20
DEFAULT_BY_GENRE_LIMIT = 10


@dataclass(frozen=True)
class ScoredMovie:
    movie: Movie
    score: float
    popularity_component: float
    new_release_component: float
    genre_match_component: float

    def score_breakdown(self, config: RankingConfig) -> dict[str, float]:
        return {
            "popularity": self.popularity_component,
            "new_release": self.new_release_component,
            "genre_match": self.genre_match_component,
            "popularity_contribution": config.weight_popularity * self.popularity_component,
            "new_release_contribution": config.weight_new_release * self.new_release_component,
            "genre_match_contribution": config.weight_genre_match * self.genre_match_component,
            "weighted_score": self.score,
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else x


def _as_date(now: date | datetime) -> date:
    return now.date() if isinstance(now, datetime) else now


def _take(items: list, limit: int | None) -> list:
    if limit is None:
        return items
    return items[: max(0, limit)]


def days_since_release(movie: Movie, today: date) -> int | None:
    """Whole days between release and ``today``; negative for future releases.

    None when the release date is missing or unreadable.
    """

    released = parse_release_date(movie.release_date)
    if released is None:
        if movie.release_date:
            logger.debug(
                "Treating unparseable release date {!r} of {} as unknown",
                movie.release_date,
                movie.movie_id,
            )
        return None
    return (today - released).days


def _within_window(movie: Movie, today: date, window_days: int) -> bool:
    diff = days_since_release(movie, today)
    return diff is not None and 0 <= diff <= window_days


def _max_popularity(movies: Sequence[Movie]) -> float:
    return max((coerce_popularity(m.popularity_score) for m in movies), default=0.0)


def _popularity_component(movie: Movie, max_popularity: float) -> float:
    denominator = max_popularity if max_popularity > 0 else 1.0
    return _clamp01(coerce_popularity(movie.popularity_score) / denominator)


def _genre_key(genre: object) -> str | None:
    """Comparison key for a genre tag; None for blanks and non-strings."""

    if not isinstance(genre, str):
        return None
    return genre.strip().casefold() or None


def _genre_match_component(
    movie_genres: Sequence[str], top_genres: Sequence[str], *, cold_start: float
) -> float:
    """Fraction of the movie's genre tags that are among the user's top genres."""

    if not top_genres:
        return cold_start
    genres = list(movie_genres or [])
    if not genres:
        return 0.0

    wanted = {_genre_key(g) for g in top_genres} - {None}
    match_count = sum(1 for g in genres if _genre_key(g) in wanted)
    return _clamp01(match_count / len(genres))


class RecommendationEngine:
    """Stateless ranking over an already-fetched candidate set.

    The composite score of a movie is::

        popularity * weight_popularity
        + new_release * weight_new_release
        + genre_match * weight_genre_match

    Popularity is relative to the candidate set of the call, so scores are only
    comparable within one call. Every view sorts stably: equal keys keep the
    candidate-list order. Malformed movie data degrades to a 0.0 sub-score and
    never raises.

    Args:
        config: weights and release windows; defaults to the standard weights.
        clock: returns "now" for the release windows. Each view also accepts an
            explicit ``now`` that takes precedence.
    """

    def __init__(
        self,
        config: RankingConfig | None = None,
        *,
        clock: Callable[[], date | datetime] | None = None,
    ) -> None:
        self.config = config or RankingConfig()
        self._clock = clock or _utc_now

    def today(self, now: date | datetime | None = None) -> date:
        """The calendar date release windows are measured against."""

        return _as_date(now if now is not None else self._clock())

    def _score(
        self,
        movie: Movie,
        *,
        max_popularity: float,
        top_genres: Sequence[str],
        today: date,
    ) -> ScoredMovie:
        cfg = self.config
        popularity = _popularity_component(movie, max_popularity)
        new_release = 1.0 if _within_window(movie, today, cfg.new_release_window_days) else 0.0
        genre_match = _genre_match_component(
            movie.genres, top_genres, cold_start=cfg.cold_start_genre_match
        )

        score = (
            (popularity * cfg.weight_popularity)
            + (new_release * cfg.weight_new_release)
            + (genre_match * cfg.weight_genre_match)
        )
        return ScoredMovie(
            movie=movie,
            score=score,
            popularity_component=popularity,
            new_release_component=new_release,
            genre_match_component=genre_match,
        )

    def score(
        self,
        movie: Movie,
        profile: PreferenceProfile | None = None,
        *,
        now: date | datetime | None = None,
        max_popularity: float | None = None,
    ) -> ScoredMovie:
        """Score a single movie.

        ``max_popularity`` is the largest popularity in the candidate set; when
        omitted the movie is treated as a candidate set of one.
        """

        profile = profile or PreferenceProfile()
        if max_popularity is None:
            max_popularity = coerce_popularity(movie.popularity_score)
        return self._score(
            movie,
            max_popularity=coerce_popularity(max_popularity),
            top_genres=profile.top_genres(limit=self.config.top_genre_limit),
            today=self.today(now),
        )

    def rank_movies(
        self,
        movies: Sequence[Movie],
        profile: PreferenceProfile | None = None,
        *,
        now: date | datetime | None = None,
    ) -> list[ScoredMovie]:
        """Score every candidate and sort by composite score, highest first."""

        if not movies:
            return []

        profile = profile or PreferenceProfile()
        max_popularity = _max_popularity(movies)
        top_genres = profile.top_genres(limit=self.config.top_genre_limit)
        today = self.today(now)

        scored = [
            self._score(m, max_popularity=max_popularity, top_genres=top_genres, today=today)
            for m in movies
        ]
        return sorted(scored, key=lambda s: -s.score)

    def get_recommended(
        self,
        movies: Sequence[Movie],
        profile: PreferenceProfile | None = None,
        *,
        limit: int | None = DEFAULT_RECOMMENDED_LIMIT,
        now: date | datetime | None = None,
    ) -> list[Movie]:
        ranked = self.rank_movies(movies, profile, now=now)
        return [s.movie for s in _take(ranked, limit)]

    def get_banner_movies(
        self,
        movies: Sequence[Movie],
        profile: PreferenceProfile | None = None,
        *,
        limit: int | None = DEFAULT_BANNER_LIMIT,
        now: date | datetime | None = None,
    ) -> list[Movie]:
        return self.get_recommended(movies, profile, limit=limit, now=now)

    def get_new_releases(
        self,
        movies: Sequence[Movie],
        *,
        only_recent: bool = True,
        recent_days: int | None = None,
        limit: int | None = DEFAULT_NEW_RELEASES_LIMIT,
        now: date | datetime | None = None,
    ) -> list[Movie]:
        """Newest first, by parsed release date.

        With ``only_recent`` the list is limited to movies released within
        ``recent_days`` (default: the new-release window). Without it every
        candidate is kept and movies with no readable date go last.
        """

        if only_recent:
            window = self.config.new_release_window_days if recent_days is None else recent_days
            today = self.today(now)
            candidates = [m for m in movies if _within_window(m, today, window)]
        else:
            candidates = list(movies)

        # Two stable passes: dated movies newest first, undated ones after in input order.
        dated = [(parse_release_date(m.release_date), m) for m in candidates]
        with_date = sorted(
            [(d, m) for d, m in dated if d is not None], key=lambda t: t[0], reverse=True
        )
        without_date = [m for d, m in dated if d is None]
        ordered = [m for _, m in with_date] + without_date
        return _take(ordered, limit)

    def get_trending(
        self,
        movies: Sequence[Movie],
        *,
        limit: int | None = DEFAULT_TRENDING_LIMIT,
    ) -> list[Movie]:
        """Raw popularity, highest first; ignores release dates and genres."""

        ordered = sorted(movies, key=lambda m: -coerce_popularity(m.popularity_score))
        return _take(ordered, limit)

    def get_now_showing(
        self,
        movies: Sequence[Movie],
        *,
        limit: int | None = DEFAULT_NOW_SHOWING_LIMIT,
        now: date | datetime | None = None,
    ) -> list[Movie]:
        today = self.today(now)
        window = self.config.now_showing_window_days
        showing = [m for m in movies if _within_window(m, today, window)]
        return self.get_trending(showing, limit=limit)

    def get_by_genre(
        self,
        movies: Sequence[Movie],
        genre: str,
        *,
        limit: int | None = DEFAULT_BY_GENRE_LIMIT,
    ) -> list[Movie]:
        """Movies tagged with ``genre`` (case-insensitive exact tag), most popular first."""

        wanted = _genre_key(genre)
        if not wanted:
            return []

        matching = [
            m
            for m in movies
            if any(_genre_key(g) == wanted for g in m.genres or [])
        ]
        return self.get_trending(matching, limit=limit)
