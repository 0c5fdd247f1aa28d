from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from showtime_recommender.core.catalog import Movie
from showtime_recommender.core.engine import RecommendationEngine
from showtime_recommender.core.preferences import PreferenceProfile

TODAY = date(2026, 3, 1)


def _days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


def _ids(movies: list[Movie]) -> list[str]:
    return [m.movie_id for m in movies]


@pytest.fixture()
def engine() -> RecommendationEngine:
    return RecommendationEngine(clock=lambda: TODAY)


@pytest.fixture()
def catalogue() -> list[Movie]:
    return [
        Movie("old-drama", "Old Drama", ["Drama"], _days_ago(90), 70.0),
        Movie("fresh-action", "Fresh Action", ["Action"], _days_ago(2), 40.0),
        Movie("mid-comedy", "Mid Comedy", ["Comedy"], _days_ago(30), 95.0),
        Movie("upcoming", "Upcoming", ["Action", "Sci-Fi"], TODAY + timedelta(days=5), 60.0),
        Movie("week-old", "Week Old", ["Horror"], _days_ago(7), 10.0),
        Movie("no-date", "No Date", ["Drama"], None, 20.0),
    ]


def test_empty_candidate_list_returns_empty_from_every_view(
    engine: RecommendationEngine,
) -> None:
    profile = PreferenceProfile({"Action": 3})

    assert engine.rank_movies([], profile) == []
    assert engine.get_recommended([], profile) == []
    assert engine.get_banner_movies([], profile) == []
    assert engine.get_new_releases([]) == []
    assert engine.get_new_releases([], only_recent=False) == []
    assert engine.get_trending([]) == []
    assert engine.get_now_showing([]) == []
    assert engine.get_by_genre([], "Action") == []


def test_rank_movies_is_a_permutation_of_the_input(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    ranked = engine.rank_movies(catalogue, PreferenceProfile({"Drama": 2}))

    assert len(ranked) == len(catalogue)
    assert sorted(id(s.movie) for s in ranked) == sorted(id(m) for m in catalogue)
    scores = [s.score for s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_equal_scores_keep_candidate_order_across_calls(engine: RecommendationEngine) -> None:
    twins = [
        Movie(f"twin-{i}", genres=["Drama"], release_date=_days_ago(20), popularity_score=50)
        for i in range(4)
    ]
    leader = Movie("leader", genres=["Drama"], release_date=TODAY, popularity_score=100)
    movies = [twins[0], twins[1], leader, twins[2], twins[3]]

    for _ in range(3):
        ranked = engine.rank_movies(movies)
        assert [s.movie.movie_id for s in ranked] == [
            "leader",
            "twin-0",
            "twin-1",
            "twin-2",
            "twin-3",
        ]

    reversed_ranked = engine.rank_movies(list(reversed(movies)))
    assert [s.movie.movie_id for s in reversed_ranked] == [
        "leader",
        "twin-3",
        "twin-2",
        "twin-1",
        "twin-0",
    ]


def test_recommended_and_banner_take_top_of_ranking(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    profile = PreferenceProfile({"Comedy": 1})
    ranked_ids = [s.movie.movie_id for s in engine.rank_movies(catalogue, profile)]

    assert _ids(engine.get_recommended(catalogue, profile)) == ranked_ids
    assert _ids(engine.get_recommended(catalogue, profile, limit=2)) == ranked_ids[:2]
    assert _ids(engine.get_banner_movies(catalogue, profile)) == ranked_ids[:5]


def test_default_limits() -> None:
    engine = RecommendationEngine(clock=lambda: TODAY)
    movies = [
        Movie(f"m{i}", genres=["Drama"], release_date=_days_ago(i % 3), popularity_score=i)
        for i in range(30)
    ]

    assert len(engine.get_recommended(movies)) == 10
    assert len(engine.get_banner_movies(movies)) == 5
    assert len(engine.get_new_releases(movies)) == 10
    assert len(engine.get_trending(movies)) == 10
    assert len(engine.get_now_showing(movies)) == 20
    assert len(engine.get_by_genre(movies, "drama")) == 10


def test_limit_none_returns_everything_and_negative_limit_returns_nothing(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    assert len(engine.get_trending(catalogue, limit=None)) == len(catalogue)
    assert engine.get_trending(catalogue, limit=-1) == []


def test_trending_sorts_by_raw_popularity(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    assert _ids(engine.get_trending(catalogue)) == [
        "mid-comedy",
        "old-drama",
        "upcoming",
        "fresh-action",
        "no-date",
        "week-old",
    ]


def test_trending_ignores_release_dates_and_genres(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    before = _ids(engine.get_trending(catalogue))

    shuffled_dates = [
        replace(m, release_date=_days_ago(i * 11), genres=["Western"])
        for i, m in enumerate(catalogue)
    ]
    assert _ids(engine.get_trending(shuffled_dates)) == before


def test_now_showing_window_boundaries(engine: RecommendationEngine) -> None:
    movies = [
        Movie("today", release_date=TODAY, popularity_score=1),
        Movie("day-60", release_date=_days_ago(60), popularity_score=2),
        Movie("day-61", release_date=_days_ago(61), popularity_score=3),
        Movie("tomorrow", release_date=TODAY + timedelta(days=1), popularity_score=4),
        Movie("garbage", release_date="soon", popularity_score=5),
    ]

    assert _ids(engine.get_now_showing(movies)) == ["day-60", "today"]


def test_new_releases_window_boundaries(engine: RecommendationEngine) -> None:
    movies = [
        Movie("day-7", release_date=_days_ago(7)),
        Movie("day-8", release_date=_days_ago(8)),
        Movie("future", release_date=TODAY + timedelta(days=2)),
        Movie("today", release_date=TODAY),
    ]

    assert _ids(engine.get_new_releases(movies, only_recent=True)) == ["today", "day-7"]


def test_new_releases_custom_window(engine: RecommendationEngine) -> None:
    movies = [Movie("day-3", release_date=_days_ago(3)), Movie("day-1", release_date=_days_ago(1))]

    assert _ids(engine.get_new_releases(movies, recent_days=2)) == ["day-1"]


def test_new_releases_without_filter_sorts_by_parsed_date(
    engine: RecommendationEngine,
) -> None:
    # As strings "2025-9-30" sorts after "2025-11-15"; as dates it is older.
    movies = [
        Movie("sep", release_date="2025-9-30"),
        Movie("feb", release_date="2026-2-9"),
        Movie("unknown", release_date="tbd"),
        Movie("oct", release_date="2025-10-01"),
        Movie("nov", release_date=date(2025, 11, 15)),
    ]

    assert _ids(engine.get_new_releases(movies, only_recent=False)) == [
        "feb",
        "nov",
        "oct",
        "sep",
        "unknown",
    ]


def test_by_genre_matches_exact_tags_case_insensitively(
    engine: RecommendationEngine, catalogue: list[Movie]
) -> None:
    assert _ids(engine.get_by_genre(catalogue, "action")) == ["upcoming", "fresh-action"]
    assert _ids(engine.get_by_genre(catalogue, "DRAMA")) == ["old-drama", "no-date"]
    # Exact tag match, not substring.
    assert engine.get_by_genre(catalogue, "Sci") == []
    assert engine.get_by_genre(catalogue, "  ") == []


def test_padded_genre_tags_match_in_scoring_and_by_genre(engine: RecommendationEngine) -> None:
    padded = Movie("padded", genres=[" Action ", "Drama"], popularity_score=10)
    profile = PreferenceProfile({"action ": 3})

    assert engine.score(padded, profile).genre_match_component == pytest.approx(0.5)
    assert _ids(engine.get_by_genre([padded], "Action")) == ["padded"]
    assert _ids(engine.get_by_genre([padded], " action")) == ["padded"]


def test_trending_ties_keep_candidate_order(engine: RecommendationEngine) -> None:
    movies = [
        Movie("b", popularity_score=50),
        Movie("top", popularity_score=90),
        Movie("a", popularity_score=50),
        Movie("c", popularity_score=50),
    ]

    assert _ids(engine.get_trending(movies)) == ["top", "b", "a", "c"]
    assert _ids(engine.get_trending(list(reversed(movies)))) == ["top", "c", "a", "b"]


def test_now_showing_ties_keep_candidate_order(engine: RecommendationEngine) -> None:
    movies = [
        Movie("late", release_date=_days_ago(40), popularity_score=5),
        Movie("early", release_date=_days_ago(1), popularity_score=5),
        Movie("stale", release_date=_days_ago(61), popularity_score=5),
        Movie("mid", release_date=_days_ago(10), popularity_score=5),
    ]

    assert _ids(engine.get_now_showing(movies)) == ["late", "early", "mid"]


def test_by_genre_ties_keep_candidate_order(engine: RecommendationEngine) -> None:
    movies = [
        Movie("x", genres=["Horror"], popularity_score=3),
        Movie("y", genres=["horror", "Comedy"], popularity_score=3),
        Movie("z", genres=["Comedy"], popularity_score=3),
        Movie("w", genres=["HORROR"], popularity_score=3),
    ]

    assert _ids(engine.get_by_genre(movies, "Horror")) == ["x", "y", "w"]


def test_new_releases_with_equal_dates_keep_candidate_order(
    engine: RecommendationEngine,
) -> None:
    movies = [
        Movie("second", release_date=_days_ago(3)),
        Movie("newest", release_date=_days_ago(1)),
        Movie("first", release_date=_days_ago(3).isoformat()),
        Movie("third", release_date=_days_ago(3)),
    ]

    assert _ids(engine.get_new_releases(movies)) == ["newest", "second", "first", "third"]
