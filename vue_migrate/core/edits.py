"""
Byte-range edit lists.

Rewrites are collected as (start, end, replacement) ranges over the UTF-8
encoded source and applied back-to-front, so the offsets of edits that have
not been applied yet stay valid.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class Edit:
    start: int
    end: int
    replacement: str

    def overlaps(self, other: "Edit") -> bool:
        # zero-width inserts only collide with a range that strictly contains them
        return self.start < other.end and other.start < self.end


def insert(position: int, text: str) -> Edit:
    return Edit(position, position, text)


def apply_edits(data: bytes, edits: Iterable[Edit]) -> bytes:
    """
    Apply ``edits`` to ``data``.

    Edits are applied from the end of the buffer towards its start. When two
    edits overlap, the one that starts later wins and the other is dropped.
    """
    ordered = sorted(set(edits), key=lambda e: (e.start, e.end), reverse=True)
    applied: List[Edit] = []
    result = data
    for edit in ordered:
        if edit.start < 0 or edit.end > len(data) or edit.start > edit.end:
            logging.debug(f"Skipping out of range edit {edit}")
            continue
        if any(edit.overlaps(done) for done in applied):
            logging.debug(f"Skipping overlapping edit {edit}")
            continue
        result = result[:edit.start] + edit.replacement.encode("utf-8") + result[edit.end:]
        applied.append(edit)
    return result
