from .anime_fallback import AnimeFallback
from .content_analysis import ContentAnalyzer
from .preparation import PreparedQuery, QueryPreparer
from .title_matching import TitleMatcher, TitleMatchingResult

__all__ = [
    "AnimeFallback",
    "ContentAnalyzer",
    "PreparedQuery",
    "QueryPreparer",
    "TitleMatcher",
    "TitleMatchingResult",
]
