# backend/exam_logistics/services/allocation/room_slot_resolver.py

"""Map (room number, date) to the exam-room record that is current now.

Callers may hold stale exam-room ids; writes always go to the id resolved
here. When several exams share a room on a date the lowest link id wins.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from .types import ExamRoomRow, ResolvedRoomSlot

logger = logging.getLogger(__name__)


def normalise_room_number(room_number: str) -> str:
    return (room_number or "").strip().casefold()


def _sort_key(row: ExamRoomRow) -> Tuple[int, int, int]:
    # Rows without a link sort after linked rows
    return (row.link_id is None, row.link_id or 0, row.exam_room_id)


class RoomSlotResolver:
    def __init__(self, rows: Iterable[ExamRoomRow] = ()):
        self._index: Dict[Tuple[str, date], ExamRoomRow] = {}
        for row in rows:
            self.add(row)

    def add(self, row: ExamRoomRow) -> None:
        key = (normalise_room_number(row.room_number), row.exam_date)
        current = self._index.get(key)
        if current is None or _sort_key(row) < _sort_key(current):
            if current is not None and current.exam_room_id != row.exam_room_id:
                logger.warning(
                    f"Room {row.room_number} has several exam-room records on "
                    f"{row.exam_date}; using {row.exam_room_id}"
                )
            self._index[key] = row

    def resolve(self, room_number: str, exam_date: date) -> Optional[ResolvedRoomSlot]:
        row = self._index.get((normalise_room_number(room_number), exam_date))
        if row is None:
            return None
        return ResolvedRoomSlot(
            exam_room_id=row.exam_room_id,
            link_id=row.link_id,
            start_time=row.start_time,
            end_time=row.end_time,
            group_label=row.group_label,
        )
