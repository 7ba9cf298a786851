from .absolute_episode import AbsoluteEpisodeProcessor
from .filename_parser import FilenameParser, parse_filename

__all__ = ["AbsoluteEpisodeProcessor", "FilenameParser", "parse_filename"]
