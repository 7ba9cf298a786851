"""Release-name vocabularies: quality, source, codec, language, audio, tech tags.

Every table is an ordered list of ``(compiled_regex, value)``; the order
is the priority, first match wins unless a helper says otherwise.
"""

from __future__ import annotations

import re

_I = re.IGNORECASE

Vocabulary = list[tuple[re.Pattern[str], str]]

QUALITY_PATTERNS: Vocabulary = [
    (re.compile(r"(2160p|4K|UHD|UHDBD|UHD-BD|4K-UHD|3840x2160)", _I), "4K"),
    (re.compile(r"(1440p|2560x1440)", _I), "1440p"),
    (re.compile(r"(1080p|1920x1080)", _I), "1080p"),
    (re.compile(r"(720p|1280x720)", _I), "720p"),
    (re.compile(r"(576p|720x576)", _I), "576p"),
    (re.compile(r"(480p|720x480)", _I), "480p"),
    (re.compile(r"\b(DVD|DVDRIP)\b", _I), "DVD"),
]

# More specific sources first.
SOURCE_PATTERNS: Vocabulary = [
    (re.compile(r"\b(BDRIP|BD-RIP)(?:\d+p?)?\b", _I), "BDRip"),
    (re.compile(r"\b(BLURAY|BLU-RAY|BD)(?:\d+p?)?\b", _I), "BluRay"),
    (re.compile(r"\b(WEBDL|WEB-DL|WEB\.DL)(?:\d+p?)?\b", _I), "WEB-DL"),
    (re.compile(r"\b(WEBRIP|WEB-RIP|WEB\.RIP)(?:\d+p?)?\b", _I), "WEBRip"),
    (re.compile(r"\b(WEB)(?:\d+p?)?\b", _I), "WEB-DL"),
    (re.compile(r"\bHDTV\b", _I), "HDTV"),
]

CODEC_PATTERNS: Vocabulary = [
    (re.compile(r"\b(AV1)\b", _I), "AV1"),
    (re.compile(r"\b(x265)\b", _I), "x265"),
    (re.compile(r"\b(HEVC|H\.?265|h265)\b", _I), "HEVC"),
    (re.compile(r"\b(x264|H\.?264|AVC|h264)\b", _I), "x264"),
]

LANGUAGE_PATTERNS: Vocabulary = [
    (
        re.compile(
            r"\b(Multiple Subtitles?|Multi-Sub|MULTILINGUAL|MULTILANG)\b", _I
        ),
        "MULTI",
    ),
    (re.compile(r"\b(MULTi3|MULTi2|MULTi|MULTI)\b", _I), "MULTI"),
    (re.compile(r"\b(CUSTOM)\b", _I), "CUSTOM"),
    (re.compile(r"\bTRUEFRENCH\b", _I), "TrueFrench"),
    (re.compile(r"\bSUBFRENCH\b", _I), "SubFrench"),
    (re.compile(r"\bVOSTFR\b", _I), "VOSTFR"),
    (re.compile(r"\bVFF\b", _I), "VFF"),
    (re.compile(r"\bVF\b", _I), "VF"),
    (re.compile(r"\b(FRENCH|FRANCAIS|FRE|FRA|FR)\b", _I), "French"),
    (re.compile(r"\b(ENGLISH|ENG)\b", _I), "English"),
    (re.compile(r"\b(JAPANESE|JAP|JP)\b", _I), "Japanese"),
    (re.compile(r"\b(SPANISH|SPA)\b", _I), "Spanish"),
    (re.compile(r"\b(GERMAN|GER)\b", _I), "German"),
    (re.compile(r"\b(ITALIAN|ITA)\b", _I), "Italian"),
    (re.compile(r"\b(KOREAN|KOR)\b", _I), "Korean"),
    (re.compile(r"\b(CHINESE|CHI|CN)\b", _I), "Chinese"),
    (re.compile(r"\b(RUSSIAN|RUS)\b", _I), "Russian"),
    (re.compile(r"\b(PORTUGUESE|POR|PT)\b", _I), "Portuguese"),
]

AUDIO_PATTERNS: Vocabulary = [
    (re.compile(r"\b(E-?AC3[.\-]?5\.1[.\-]?ATMOS)\b", _I), "EAC3 5.1 Atmos"),
    (re.compile(r"\b(DDP5\.1[.\-]?ATMOS|DD\+5\.1[.\-]?ATMOS)", _I), "DD+ 5.1 Atmos"),
    (re.compile(r"\b(DOLBY[\s.\-]?ATMOS|ATMOS)\b", _I), "Atmos"),
    (re.compile(r"\b(DTS[\s\-:]?X|DTSX)\b", _I), "DTS:X"),
    (re.compile(r"\b(DTS[\s\-:]?HD[\s.\-]?MA)\b", _I), "DTS-HD MA"),
    (re.compile(r"\b(DTS[\s\-:]?HD)\b", _I), "DTS-HD"),
    (re.compile(r"\b(TRUE[\s.\-]?HD)\b", _I), "TrueHD"),
    (re.compile(r"\b(FLAC)\b", _I), "FLAC"),
    (re.compile(r"\b(LPCM)\b", _I), "LPCM"),
    (re.compile(r"\b(E-?AC3[.\-]?5\.1)\b", _I), "EAC3 5.1"),
    (re.compile(r"\b(EAC3|E-AC3|EAC-3)\b", _I), "EAC3"),
    (re.compile(r"\b(AC-?3[.\-]?5\.1)\b", _I), "AC3 5.1"),
    (re.compile(r"\b(AC3|AC-3)\b", _I), "AC3"),
    (re.compile(r"\b(DDP5\.1|DD\+5\.1|DDPLUS5\.1)", _I), "DD+ 5.1"),
    (re.compile(r"\b(DDP2\.0|DD\+2\.0|DDPLUS2\.0)", _I), "DD+ 2.0"),
    (re.compile(r"\b(HE-?AAC[.\-]?5\.1)\b", _I), "HE-AAC 5.1"),
    (re.compile(r"\b(AAC[.\-]?5\.1)\b", _I), "AAC 5.1"),
    (re.compile(r"\b(HE-AAC|HEAAC)\b", _I), "HE-AAC"),
    (re.compile(r"\b(AAC)\b", _I), "AAC"),
    (re.compile(r"\b(DTS)\b", _I), "DTS"),
    (re.compile(r"\b(OPUS)\b", _I), "Opus"),
    (re.compile(r"\b(MP3)\b", _I), "MP3"),
    (re.compile(r"\b(OGG)\b", _I), "OGG"),
    (re.compile(r"\b(7\.1)\b", _I), "7.1"),
    (re.compile(r"\b(5\.1)\b", _I), "5.1"),
    (re.compile(r"\b(2\.0)\b", _I), "2.0"),
]

HDR_PATTERNS: Vocabulary = [
    (re.compile(r"(HDR10\+|HDR10PLUS)", _I), "HDR10+"),
    (re.compile(r"HDR10(?!\+)", _I), "HDR10"),
    (re.compile(r"\b(HD[.\-]?LIGHT[.\-]?10BIT)\b", _I), "HDLight 10bit"),
    (re.compile(r"\b(HD[.\-]?LIGHT)\b", _I), "HDLight"),
    (re.compile(r"\b(HDR)\b", _I), "HDR"),
    (re.compile(r"\b(DOLBY\s*VISION|DV)\b", _I), "Dolby Vision"),
]

BIT_DEPTH_PATTERNS: Vocabulary = [
    (re.compile(r"\b(10BITS?)\b", _I), "10bit"),
    (re.compile(r"\b(12BITS?)\b", _I), "12bit"),
    (re.compile(r"\b(8BITS?)\b", _I), "8bit"),
]

FRAME_RATE_PATTERNS: Vocabulary = [
    (re.compile(r"\b(60FPS|60P)\b", _I), "60fps"),
    (re.compile(r"\b(50FPS|50P)\b", _I), "50fps"),
    (re.compile(r"\b(30FPS|30P)\b", _I), "30fps"),
    (re.compile(r"\b(24FPS|24P)\b", _I), "24fps"),
]

_CHANNEL_FALLBACK_RE = re.compile(r"DDP?(\d\.\d)|(\d\.\d)")
_LAYOUT_RE = re.compile(r"\d\.\d")

SERIES_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"[Ss]\d{1,2}[Ee]\d{1,3}"),
    re.compile(r"\d{1,2}x\d{1,3}"),
    re.compile(r"Episode\s*\d+", _I),
    re.compile(r"[Ee]p\d+", _I),
    re.compile(r"Season\s*\d+", _I),
]

_NUMBER_BEFORE_RELEASE_INFO_RE = re.compile(r"\d{2,4}\s*(?:multi|bluray)", _I)

VIDEO_EXTENSIONS: frozenset[str] = frozenset(
    {
        "3g2", "3gp", "avi", "flv", "mkv", "mk3d", "mov", "mp2", "mp4", "m4v",
        "mpe", "mpeg", "mpg", "mpv", "webm", "wmv", "ogm", "ts", "m2ts",
    }
)  # fmt: skip
SUBTITLE_EXTENSIONS: frozenset[str] = frozenset(
    {
        "aqt", "gsub", "jss", "sub", "ttxt", "pjs", "psb", "rt", "smi", "slt",
        "ssf", "srt", "ssa", "ass", "usf", "idx", "vtt",
    }
)  # fmt: skip

_EXTENSION_RE = re.compile(r"\.(\w{2,4})$")
VIDEO_EXTENSION_RE = re.compile(
    r"\.(?:" + "|".join(sorted(VIDEO_EXTENSIONS, key=len, reverse=True)) + r")$", _I
)


def first_match(vocabulary: Vocabulary, text: str) -> str | None:
    """Value of the first pattern in *vocabulary* that matches *text*."""
    for pattern, value in vocabulary:
        if pattern.search(text):
            return value
    return None


def all_matches(vocabulary: Vocabulary, text: str) -> list[str]:
    """Distinct values of every matching pattern, in priority order."""
    found: list[str] = []
    for pattern, value in vocabulary:
        if value not in found and pattern.search(text):
            found.append(value)
    return found


def extract_audio_channels(text: str) -> str | None:
    """Channel layout such as ``5.1``; falls back to any ``N.N`` token."""
    for pattern, value in AUDIO_PATTERNS:
        layout = _LAYOUT_RE.search(value)
        if layout and pattern.search(text):
            return layout.group(0)
    m = _CHANNEL_FALLBACK_RE.search(text)
    if m is None:
        return None
    return m.group(1) or m.group(2)


def has_obvious_episode_indicators(filename: str) -> bool:
    """True when the name carries an explicit episode/season marker."""
    if not filename:
        return False
    if any(p.search(filename) for p in SERIES_PATTERNS):
        return True
    return bool(_NUMBER_BEFORE_RELEASE_INFO_RE.search(filename))


def file_extension(name: str) -> str | None:
    m = _EXTENSION_RE.search(name)
    return m.group(1).lower() if m else None


def is_video(name: str) -> bool:
    """True for names ending in a known video extension."""
    return file_extension(name) in VIDEO_EXTENSIONS


def is_subtitle(name: str) -> bool:
    return file_extension(name) in SUBTITLE_EXTENSIONS


def strip_video_extension(name: str) -> str:
    return VIDEO_EXTENSION_RE.sub("", name)
