"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from .assembler import FeedAssembler
from .cursor import CursorError, FeedCursor, decode_cursor, encode_cursor
from .query import FeedFilters, FeedItem, FeedPage, FeedQueryError, SortKey
from .sessions import PaginationSession, PaginationSessionStore
from .source import (
    CandidateSource,
    FeedUnavailableError,
    InMemoryCandidateSource,
    ViewerNotFoundError,
    load_profiles,
)

__all__ = [
    "FeedAssembler",
    "CursorError",
    "FeedCursor",
    "decode_cursor",
    "encode_cursor",
    "FeedFilters",
    "FeedItem",
    "FeedPage",
    "FeedQueryError",
    "SortKey",
    "PaginationSession",
    "PaginationSessionStore",
    "CandidateSource",
    "FeedUnavailableError",
    "InMemoryCandidateSource",
    "ViewerNotFoundError",
    "load_profiles",
]
