# backend/exam_logistics/tests/unit/test_room_slot_resolver.py

from datetime import time

from exam_logistics.services.allocation.room_slot_resolver import RoomSlotResolver
from exam_logistics.tests.helpers import DAY_1, DAY_2, room_row


class TestRoomSlotResolver:
    def test_resolves_room_and_date(self):
        resolver = RoomSlotResolver([room_row(7, "B-101", DAY_1, group_label="Year 1")])
        resolved = resolver.resolve("B-101", DAY_1)
        assert resolved.exam_room_id == 7
        assert resolved.link_id == 70
        assert resolved.group_label == "Year 1"
        assert resolved.start_time == time(9, 0)

    def test_missing_date_resolves_to_none(self):
        resolver = RoomSlotResolver([room_row(7, "B-101", DAY_1)])
        assert resolver.resolve("B-101", DAY_2) is None
        assert resolver.resolve("B-102", DAY_1) is None

    def test_room_number_match_ignores_case_and_spaces(self):
        resolver = RoomSlotResolver([room_row(7, "b-101", DAY_1)])
        assert resolver.resolve("  B-101 ", DAY_1).exam_room_id == 7

    def test_lowest_link_wins_when_exams_share_a_room(self):
        resolver = RoomSlotResolver(
            [
                room_row(7, "B-101", DAY_1, link_id=31, start=time(14, 0)),
                room_row(7, "B-101", DAY_1, link_id=12, start=time(9, 0)),
            ]
        )
        resolved = resolver.resolve("B-101", DAY_1)
        assert resolved.link_id == 12
        assert resolved.start_time == time(9, 0)

    def test_same_room_different_dates_are_distinct(self):
        resolver = RoomSlotResolver(
            [room_row(7, "B-101", DAY_1), room_row(8, "B-101", DAY_2)]
        )
        assert resolver.resolve("B-101", DAY_1).exam_room_id == 7
        assert resolver.resolve("B-101", DAY_2).exam_room_id == 8
