# backend/exam_logistics/services/allocation/rank_policy.py

"""Which ranks may fill which role, and which rank pairings are preferred."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ...config import (
    DEFAULT_ASSISTANT_RANKS,
    DEFAULT_PAIRING_PREFERENCE,
    DEFAULT_SUPERVISOR_RANKS,
    Settings,
)
from .types import PairTypeKey, Role, TeacherRecord

logger = logging.getLogger(__name__)

ASSOCIATE_PROFESSOR = "Associate Professor"
LECTURER = "Lecturer"
ASSISTANT_LECTURER = "Assistant Lecturer"
ASSOCIATE_LECTURER = "Associate Lecturer"
TUTOR = "Tutor"

KNOWN_RANKS: Tuple[str, ...] = (
    ASSOCIATE_PROFESSOR,
    LECTURER,
    ASSISTANT_LECTURER,
    ASSOCIATE_LECTURER,
    TUTOR,
)

LIGHT_WORKLOAD = "Light"
MEDIUM_WORKLOAD = "Medium"
HIGH_WORKLOAD = "High"


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _default_pairs() -> Tuple[PairTypeKey, ...]:
    pairs = []
    for chunk in _csv(DEFAULT_PAIRING_PREFERENCE):
        supervisor_rank, _, assistant_rank = chunk.partition(":")
        pairs.append(PairTypeKey(supervisor_rank.strip(), assistant_rank.strip()))
    return tuple(pairs)


@dataclass(frozen=True)
class RankPolicy:
    supervisor_ranks: FrozenSet[str] = field(
        default_factory=lambda: frozenset(_csv(DEFAULT_SUPERVISOR_RANKS))
    )
    assistant_ranks: FrozenSet[str] = field(
        default_factory=lambda: frozenset(_csv(DEFAULT_ASSISTANT_RANKS))
    )
    preference_order: Tuple[PairTypeKey, ...] = field(default_factory=_default_pairs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RankPolicy":
        return cls(
            supervisor_ranks=frozenset(settings.supervisor_ranks),
            assistant_ranks=frozenset(settings.assistant_ranks),
            preference_order=tuple(
                PairTypeKey(sup, asst) for sup, asst in settings.pairing_preference
            ),
        )

    def is_eligible(self, teacher: TeacherRecord, role: Role) -> bool:
        return self.is_rank_eligible(teacher.rank, role)

    def is_rank_eligible(self, rank: Optional[str], role: Role) -> bool:
        if not rank:
            return False
        if role == Role.SUPERVISOR:
            return rank in self.supervisor_ranks
        return rank in self.assistant_ranks

    def eligible_roles(self, rank: Optional[str]) -> List[Role]:
        return [role for role in Role if self.is_rank_eligible(rank, role)]

    def pairing_preference_order(self) -> Tuple[PairTypeKey, ...]:
        return self.preference_order

    def is_last_resort(self, pair_type: PairTypeKey) -> bool:
        """Same-rank pairs are only used when nothing else is viable."""
        return pair_type.is_same_rank

    def pair_label(self, pair_type: Optional[PairTypeKey], fallback: bool = False) -> str:
        if pair_type is None:
            return "Supervisor only" if not fallback else "Any available rank (fallback)"
        label = str(pair_type)
        if self.is_last_resort(pair_type):
            label += " (last resort, no other rank available)"
        elif fallback:
            label += " (fallback)"
        return label


DEFAULT_POLICY = RankPolicy()


def is_eligible(teacher: TeacherRecord, role: Role, policy: RankPolicy = DEFAULT_POLICY) -> bool:
    return policy.is_eligible(teacher, role)


def pairing_preference_order(policy: RankPolicy = DEFAULT_POLICY) -> Sequence[PairTypeKey]:
    return policy.pairing_preference_order()


def workload_level(periods: int) -> str:
    """Bucket a teacher's assigned periods for display."""
    if periods >= 18:
        return HIGH_WORKLOAD
    if periods >= 12:
        return MEDIUM_WORKLOAD
    return LIGHT_WORKLOAD
