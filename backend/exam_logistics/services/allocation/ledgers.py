# backend/exam_logistics/services/allocation/ledgers.py

"""Batch-scoped counters consulted and updated by the pairing engine.

All three ledgers belong to a single batch run and are discarded with it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, DefaultDict, Dict, Iterable, List, Mapping, Optional, Set

from .types import LedgerKey, PairRecord, PairTypeKey, RankLimits, Role, TeacherRecord

logger = logging.getLogger(__name__)


def check_rank_limits(limits: Optional[Mapping[str, Any]]) -> RankLimits:
    """Normalise a rank-to-max-periods mapping; absent ranks are unlimited."""
    checked: RankLimits = {}
    for rank, limit in (limits or {}).items():
        rank = str(rank).strip()
        if not rank:
            raise ValueError("Rank names in period limits must not be empty")
        if isinstance(limit, bool) or not isinstance(limit, (int, float)) or int(limit) != limit:
            raise ValueError(f"Period limit for '{rank}' must be a whole number")
        if limit < 0:
            raise ValueError(f"Period limit for '{rank}' must not be negative")
        checked[rank] = int(limit)
    return checked


class WorkloadLedger:
    """Live period counters keyed by teacher id.

    Seeded from the persisted counters; every pick commits immediately so the
    next slot evaluated in the same batch sees the new value.
    """

    def __init__(self, teachers: Iterable[TeacherRecord] = ()):
        self._periods: Dict[int, int] = {}
        self._ranks: Dict[int, str] = {}
        for teacher in teachers:
            self.register(teacher)

    def register(self, teacher: TeacherRecord) -> None:
        self._periods[teacher.teacher_id] = max(0, int(teacher.periods_assigned or 0))
        self._ranks[teacher.teacher_id] = teacher.rank

    def periods_of(self, teacher_id: int) -> int:
        return self._periods.get(teacher_id, 0)

    @staticmethod
    def limit_for(rank: Optional[str], rank_limits: RankLimits) -> Optional[int]:
        if rank is None:
            return None
        return rank_limits.get(rank)

    def eligible(self, teacher_id: int, rank_limits: RankLimits) -> bool:
        limit = self.limit_for(self._ranks.get(teacher_id), rank_limits)
        return limit is None or self.periods_of(teacher_id) < limit

    def remaining(self, teacher_id: int, rank_limits: RankLimits) -> Optional[int]:
        """Periods left under the rank limit, ``None`` when unlimited."""
        limit = self.limit_for(self._ranks.get(teacher_id), rank_limits)
        if limit is None:
            return None
        return max(0, limit - self.periods_of(teacher_id))

    def commit(self, teacher_id: int) -> int:
        if teacher_id not in self._periods:
            raise KeyError(f"Teacher {teacher_id} is not registered in the workload ledger")
        self._periods[teacher_id] += 1
        return self._periods[teacher_id]

    def snapshot(self) -> Dict[int, int]:
        return dict(self._periods)


class PairTypeFairnessLedger:
    """How often each pair-type was chosen, per date."""

    def __init__(self) -> None:
        self._usage: Dict[LedgerKey, int] = {}

    def usage_of(self, exam_date: date, pair_type: PairTypeKey) -> int:
        return self._usage.get((exam_date, pair_type), 0)

    def record(self, exam_date: date, pair_type: PairTypeKey) -> int:
        key = (exam_date, pair_type)
        self._usage[key] = self._usage.get(key, 0) + 1
        return self._usage[key]

    def usage_for_date(self, exam_date: date) -> Dict[PairTypeKey, int]:
        return {
            pair_type: count
            for (day, pair_type), count in self._usage.items()
            if day == exam_date
        }


class PairHistory:
    """Pairs already placed per room-group, oldest first.

    ``window`` limits "recent" to the last N entries of a group; ``None``
    means every pair placed in the run.
    """

    def __init__(self, window: Optional[int] = None):
        if window is not None and window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._pairs: DefaultDict[str, List[PairRecord]] = defaultdict(list)

    def past_pairs_for(self, group_key: str) -> List[PairRecord]:
        return list(self._pairs.get(group_key, ()))

    def append(self, group_key: str, pair: PairRecord) -> None:
        self._pairs[group_key].append(pair)

    def recent_ids(self, group_key: str, role: Role) -> Set[int]:
        pairs = self._pairs.get(group_key, [])
        if self.window is not None:
            pairs = pairs[-self.window :]
        attr = "supervisor_id" if role == Role.SUPERVISOR else "assistant_id"
        return {getattr(p, attr) for p in pairs if getattr(p, attr) is not None}
