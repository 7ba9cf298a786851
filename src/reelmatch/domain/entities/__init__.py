from .media import (
    AlternateTitle,
    AnimeSeason,
    Candidate,
    ContentType,
    EpisodeMapping,
    FileKind,
    MatchedVideo,
    ParsedTitle,
    ProviderKind,
    RomanSeasonInfo,
    SearchOutcome,
    SearchPhase,
    SearchRequest,
    VideoFile,
)

__all__ = [
    "AlternateTitle",
    "AnimeSeason",
    "Candidate",
    "ContentType",
    "EpisodeMapping",
    "FileKind",
    "MatchedVideo",
    "ParsedTitle",
    "ProviderKind",
    "RomanSeasonInfo",
    "SearchOutcome",
    "SearchPhase",
    "SearchRequest",
    "VideoFile",
]
