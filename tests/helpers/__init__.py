"""Test helper utilities for Stickies tests.

Provides the in-memory fake store and small assertions on board state.
"""

from tests.helpers.board_helpers import (
    OWNER_ID,
    TODAY,
    assert_dense,
    ids,
    positions,
    titles,
)
from tests.helpers.fakes import FakeStore

__all__ = [
    "OWNER_ID",
    "TODAY",
    "FakeStore",
    "assert_dense",
    "ids",
    "positions",
    "titles",
]
