# backend/exam_logistics/services/allocation/pairing_engine.py

"""Choose a supervisor and an assistant for one room-slot.

Selection order for a slot:

1. Eligible supervisors (rank, workload, not busy). None: nothing is placed.
2. Eligible assistants, same filters.
3. Viable pair-types: preference-ordered rank pairs with candidates on both
   sides. Last-resort (same-rank) pairs count only if nothing else does.
4. No viable pair-type: lowest-workload supervisor and any eligible assistant
   other than them (fallback, fairness not recorded).
5. Otherwise the viable pair-type least used on this date, ties going to the
   more preferred one; its usage is recorded.
6. Supervisor of that type: not recently paired in this room-group if
   possible, then lowest workload, ties by pool order.
7. Assistant of that type's rank, excluding the supervisor, same preferences.
8. If none, any eligible assistant other than the supervisor.
9. The pair is appended to the room-group's history.

The engine is synchronous and deterministic for a given input order.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .ledgers import PairHistory, PairTypeFairnessLedger, WorkloadLedger
from .rank_policy import RankPolicy
from .types import (
    IssueCode,
    PairingResult,
    PairRecord,
    PairTypeKey,
    RankLimits,
    Role,
    ShortfallCause,
    SlotIssue,
    TeacherRecord,
)

logger = logging.getLogger(__name__)


def _role_noun(role: Role, policy: RankPolicy) -> str:
    if role == Role.SUPERVISOR:
        ranks = sorted(policy.supervisor_ranks)
        return f"{ranks[0]}s" if len(ranks) == 1 else "supervisor-rank teachers"
    return "assistant-rank teachers"


class PairingPolicyEngine:
    def __init__(
        self,
        teachers: Dict[int, TeacherRecord],
        policy: RankPolicy,
        rank_limits: RankLimits,
        workload: WorkloadLedger,
        fairness: PairTypeFairnessLedger,
        history: PairHistory,
    ):
        self.teachers = teachers
        self.policy = policy
        self.rank_limits = dict(rank_limits)
        self.workload = workload
        self.fairness = fairness
        self.history = history

    def _rank(self, teacher_id: int) -> Optional[str]:
        teacher = self.teachers.get(teacher_id)
        return teacher.rank if teacher else None

    def _eligible(self, teacher_id: int, role: Role, busy: Set[int]) -> bool:
        return (
            teacher_id in self.teachers
            and self.policy.is_rank_eligible(self._rank(teacher_id), role)
            and self.workload.eligible(teacher_id, self.rank_limits)
            and teacher_id not in busy
        )

    def _lowest_workload(self, candidates: Sequence[int]) -> int:
        # min() keeps the first of equal keys, so pool order breaks ties
        return min(candidates, key=self.workload.periods_of)

    def _pick(self, candidates: Sequence[int], recent: Set[int]) -> Optional[int]:
        if not candidates:
            return None
        fresh = [c for c in candidates if c not in recent]
        return self._lowest_workload(fresh or candidates)

    def diagnose(
        self, role: Role, pool: Iterable[int], busy: Set[int], exclude: Optional[int] = None
    ) -> SlotIssue:
        """Explain why no teacher in ``pool`` can take ``role``."""
        code = (
            IssueCode.NO_ELIGIBLE_SUPERVISOR
            if role == Role.SUPERVISOR
            else IssueCode.NO_ELIGIBLE_ASSISTANT
        )
        noun = _role_noun(role, self.policy)
        of_rank = [
            tid
            for tid in pool
            if tid != exclude
            and tid in self.teachers
            and self.policy.is_rank_eligible(self._rank(tid), role)
        ]
        if not of_rank:
            return SlotIssue(
                code, f"No {noun} found", ShortfallCause.NO_CANDIDATES_OF_RANK
            )
        if all(tid in busy for tid in of_rank):
            return SlotIssue(
                code, f"All {noun} are already assigned", ShortfallCause.ALL_BUSY
            )
        return SlotIssue(
            code,
            f"All {noun} have reached their period limit",
            ShortfallCause.ALL_OVER_LIMIT,
        )

    def viable_pair_types(
        self, supervisors: Sequence[int], assistants: Sequence[int]
    ) -> List[PairTypeKey]:
        supervisor_ranks = {self._rank(t) for t in supervisors}
        assistant_ranks = {self._rank(t) for t in assistants}
        viable = [
            pt
            for pt in self.policy.pairing_preference_order()
            if pt.supervisor_rank in supervisor_ranks
            and pt.assistant_rank in assistant_ranks
        ]
        # Last-resort pairings only compete when nothing else is viable
        preferred = [pt for pt in viable if not self.policy.is_last_resort(pt)]
        return preferred or viable

    def pick_pair(
        self,
        supervisor_pool: Sequence[int],
        assistant_pool: Sequence[int],
        exam_date: date,
        group_key: str,
        busy_ids: Iterable[int] = (),
    ) -> PairingResult:
        busy = set(busy_ids)

        supervisors = [t for t in supervisor_pool if self._eligible(t, Role.SUPERVISOR, busy)]
        if not supervisors:
            issue = self.diagnose(Role.SUPERVISOR, supervisor_pool, busy)
            logger.debug(f"{group_key} on {exam_date}: {issue.message}")
            return PairingResult(issues=[issue])

        assistants = [t for t in assistant_pool if self._eligible(t, Role.ASSISTANT, busy)]
        recent_supervisors = self.history.recent_ids(group_key, Role.SUPERVISOR)
        recent_assistants = self.history.recent_ids(group_key, Role.ASSISTANT)

        viable = self.viable_pair_types(supervisors, assistants)
        result = PairingResult()

        if not viable:
            supervisor_id = self._pick(supervisors, recent_supervisors)
            assistant_id = self._pick(
                [a for a in assistants if a != supervisor_id], recent_assistants
            )
            result.used_fallback = True
            if assistant_id is not None:
                result.pair_type = PairTypeKey(
                    self._rank(supervisor_id), self._rank(assistant_id)
                )
        else:
            pair_type = min(viable, key=lambda pt: self.fairness.usage_of(exam_date, pt))
            self.fairness.record(exam_date, pair_type)
            result.pair_type = pair_type

            supervisor_id = self._pick(
                [s for s in supervisors if self._rank(s) == pair_type.supervisor_rank],
                recent_supervisors,
            )
            assistant_id = self._pick(
                [
                    a
                    for a in assistants
                    if a != supervisor_id and self._rank(a) == pair_type.assistant_rank
                ],
                recent_assistants,
            )
            if assistant_id is None:
                assistant_id = self._pick(
                    [a for a in assistants if a != supervisor_id], recent_assistants
                )
                result.used_fallback = True
                if assistant_id is not None:
                    result.pair_type = PairTypeKey(
                        pair_type.supervisor_rank, self._rank(assistant_id)
                    )

        result.supervisor_id = supervisor_id
        result.assistant_id = assistant_id
        if assistant_id is None:
            result.issues.append(
                self.diagnose(Role.ASSISTANT, assistant_pool, busy, exclude=supervisor_id)
            )
            result.label = self.policy.pair_label(None)
        else:
            result.label = self.policy.pair_label(result.pair_type, result.used_fallback)

        self.history.append(group_key, PairRecord(supervisor_id, assistant_id))
        logger.debug(
            f"{group_key} on {exam_date}: supervisor={supervisor_id} "
            f"assistant={assistant_id} ({result.label})"
        )
        return result
