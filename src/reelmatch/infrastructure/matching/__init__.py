from .title_matcher import (
    TitleMatch,
    match_term,
    merge_matches,
    prefilter_candidates,
)

__all__ = ["TitleMatch", "match_term", "merge_matches", "prefilter_candidates"]
