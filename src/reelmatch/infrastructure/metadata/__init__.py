from .cinemeta import HttpxCinemetaClient, absolute_from_season_counts
from .jikan import HttpxJikanClient, map_anime_episode, select_title_variations
from .tmdb import HttpxTmdbClient
from .trakt import HttpxTraktClient

__all__ = [
    "HttpxCinemetaClient",
    "HttpxJikanClient",
    "HttpxTmdbClient",
    "HttpxTraktClient",
    "absolute_from_season_counts",
    "map_anime_episode",
    "select_title_variations",
]
