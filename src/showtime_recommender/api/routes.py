from __future__ import annotations

from fastapi import APIRouter, HTTPException, Path, Query, Request
from fastapi.responses import Response

from showtime_recommender.core.catalog import (
    CatalogError,
    CatalogNotConfigured,
    Movie,
    coerce_popularity,
    parse_release_date,
)
from showtime_recommender.core.dataframe import build_ranking_df
from showtime_recommender.core.engine import (
    DEFAULT_BY_GENRE_LIMIT,
    DEFAULT_RECOMMENDED_LIMIT,
    RecommendationEngine,
)
from showtime_recommender.core.feed import available_genres, build_home_feed
from showtime_recommender.core.preferences import (
    PreferenceProfile,
    PreferenceStoreError,
)
from showtime_recommender.core.schemas import (
    BookingRequest,
    GenresResponse,
    HomeFeedResponse,
    MovieItem,
    MovieListResponse,
    PreferencesResponse,
    RankingResponse,
    ScoredMovieItem,
)

router = APIRouter()

# Keeps ids usable as single path segments in the data dir.
_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.\- ]{0,63}$"


def _movie_item(movie: Movie) -> MovieItem:
    released = parse_release_date(movie.release_date)
    return MovieItem(
        movie_id=movie.movie_id,
        title=movie.title,
        genres=list(movie.genres or []),
        release_date=released.isoformat() if released else None,
        popularity_score=coerce_popularity(movie.popularity_score),
        poster_url=movie.poster_url,
        banner_url=movie.banner_url,
        rating=movie.rating,
        language=movie.language,
        duration=movie.duration,
        certification=movie.certification,
    )


def _city_movies(request: Request, city: str) -> list[Movie]:
    try:
        return request.app.state.catalog_source.movies_for_city(city)
    except CatalogNotConfigured as e:
        raise HTTPException(status_code=404, detail=f"No catalogue for city '{city}'") from e
    except CatalogError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


def _profile(request: Request, user_id: str | None) -> PreferenceProfile:
    try:
        return request.app.state.preference_source.preferences_for(user_id)
    except PreferenceStoreError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


def _engine(request: Request) -> RecommendationEngine:
    return request.app.state.engine


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/cities/{city}/home", response_model=HomeFeedResponse)
def home(
    request: Request,
    city: str = Path(pattern=_ID_PATTERN),
    user_id: str | None = Query(default=None, pattern=_ID_PATTERN),
) -> HomeFeedResponse:
    movies = _city_movies(request, city)
    profile = _profile(request, user_id)
    feed = build_home_feed(movies, profile, engine=_engine(request))

    return HomeFeedResponse(
        city=city,
        user_id=user_id,
        banner=[_movie_item(m) for m in feed.banner],
        now_showing=[_movie_item(m) for m in feed.now_showing],
        new_releases=[_movie_item(m) for m in feed.new_releases],
        trending=[_movie_item(m) for m in feed.trending],
        recommended=[_movie_item(m) for m in feed.recommended],
    )


@router.get("/api/cities/{city}/ranking", response_model=RankingResponse)
def ranking(
    request: Request,
    city: str = Path(pattern=_ID_PATTERN),
    user_id: str | None = Query(default=None, pattern=_ID_PATTERN),
) -> RankingResponse:
    engine = _engine(request)
    scored = engine.rank_movies(_city_movies(request, city), _profile(request, user_id))

    return RankingResponse(
        city=city,
        user_id=user_id,
        ranking=[
            ScoredMovieItem(
                movie=_movie_item(s.movie),
                score=s.score,
                score_breakdown=s.score_breakdown(engine.config),
            )
            for s in scored
        ],
    )


@router.get("/api/cities/{city}/ranking.csv")
def ranking_csv(
    request: Request,
    city: str = Path(pattern=_ID_PATTERN),
    user_id: str | None = Query(default=None, pattern=_ID_PATTERN),
) -> Response:
    scored = _engine(request).rank_movies(
        _city_movies(request, city), _profile(request, user_id)
    )
    df = build_ranking_df(scored)
    return Response(content=df.to_csv(index=False), media_type="text/csv")


@router.get("/api/cities/{city}/recommended", response_model=MovieListResponse)
def recommended(
    request: Request,
    city: str = Path(pattern=_ID_PATTERN),
    user_id: str | None = Query(default=None, pattern=_ID_PATTERN),
    limit: int = Query(default=DEFAULT_RECOMMENDED_LIMIT, ge=1, le=50),
) -> MovieListResponse:
    movies = _engine(request).get_recommended(
        _city_movies(request, city), _profile(request, user_id), limit=limit
    )
    return MovieListResponse(city=city, movies=[_movie_item(m) for m in movies])


@router.get("/api/cities/{city}/genres", response_model=GenresResponse)
def genres(request: Request, city: str = Path(pattern=_ID_PATTERN)) -> GenresResponse:
    return GenresResponse(city=city, genres=available_genres(_city_movies(request, city)))


@router.get("/api/cities/{city}/genres/{genre}", response_model=MovieListResponse)
def by_genre(
    request: Request,
    genre: str,
    city: str = Path(pattern=_ID_PATTERN),
    limit: int = Query(default=DEFAULT_BY_GENRE_LIMIT, ge=1, le=50),
) -> MovieListResponse:
    movies = _engine(request).get_by_genre(_city_movies(request, city), genre, limit=limit)
    return MovieListResponse(city=city, movies=[_movie_item(m) for m in movies])


def _preferences_response(
    request: Request, user_id: str, profile: PreferenceProfile
) -> PreferencesResponse:
    return PreferencesResponse(
        user_id=user_id,
        genre_counts=[{"name": g, "count": c} for g, c in profile.genre_counts.items()],
        top_genres=profile.top_genres(_engine(request).config.top_genre_limit),
    )


@router.get("/api/users/{user_id}/preferences", response_model=PreferencesResponse)
def preferences(
    request: Request, user_id: str = Path(pattern=_ID_PATTERN)
) -> PreferencesResponse:
    return _preferences_response(request, user_id, _profile(request, user_id))


@router.post("/api/users/{user_id}/bookings", response_model=PreferencesResponse)
def booking(
    req: BookingRequest, request: Request, user_id: str = Path(pattern=_ID_PATTERN)
) -> PreferencesResponse:
    try:
        profile = request.app.state.preference_source.record_booking(user_id, req.genres)
    except PreferenceStoreError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return _preferences_response(request, user_id, profile)
