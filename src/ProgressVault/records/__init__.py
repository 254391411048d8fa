from .stats_parser import MatchDescriptor, ParsedStats, StatsParser, parse
from .patch_writer import PatchResult, PatchStatus, PatchTarget, SafePatchWriter

__all__ = [
    "MatchDescriptor",
    "ParsedStats",
    "StatsParser",
    "parse",
    "PatchResult",
    "PatchStatus",
    "PatchTarget",
    "SafePatchWriter",
]
