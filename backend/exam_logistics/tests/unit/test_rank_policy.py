# backend/exam_logistics/tests/unit/test_rank_policy.py

from datetime import time

import pytest

from exam_logistics.config import TestingSettings
from exam_logistics.services.allocation.rank_policy import (
    RankPolicy,
    is_eligible,
    pairing_preference_order,
    workload_level,
)
from exam_logistics.services.allocation.types import (
    ExamSession,
    PairTypeKey,
    Role,
    derive_session,
)
from exam_logistics.tests.helpers import AP, ASSISTANT_LECTURER, LECTURER, TUTOR, teacher


class TestRoleEligibility:
    """Which ranks may fill which role."""

    def test_only_associate_professors_supervise(self):
        assert is_eligible(teacher(1, AP), Role.SUPERVISOR)
        for rank in (LECTURER, ASSISTANT_LECTURER, TUTOR, "Associate Lecturer"):
            assert not is_eligible(teacher(2, rank), Role.SUPERVISOR)

    def test_assistant_ranks_include_associate_professor(self):
        for rank in (LECTURER, ASSISTANT_LECTURER, "Associate Lecturer", TUTOR, AP):
            assert is_eligible(teacher(1, rank), Role.ASSISTANT)

    def test_unknown_rank_is_eligible_for_nothing(self):
        policy = RankPolicy()
        assert policy.eligible_roles("Visiting Scholar") == []
        assert policy.eligible_roles(None) == []

    def test_eligible_roles_for_associate_professor(self):
        assert RankPolicy().eligible_roles(AP) == [Role.SUPERVISOR, Role.ASSISTANT]


class TestPairingPreference:
    def test_default_order_ends_with_same_rank_pair(self):
        order = list(pairing_preference_order())
        assert order[0] == PairTypeKey(AP, LECTURER)
        assert order[1] == PairTypeKey(AP, ASSISTANT_LECTURER)
        assert order[-1] == PairTypeKey(AP, AP)
        assert PairTypeKey(AP, TUTOR) in order

    def test_same_rank_pair_is_last_resort(self):
        policy = RankPolicy()
        assert policy.is_last_resort(PairTypeKey(AP, AP))
        assert not policy.is_last_resort(PairTypeKey(AP, LECTURER))

    def test_pair_labels(self):
        policy = RankPolicy()
        assert policy.pair_label(PairTypeKey(AP, LECTURER)) == f"{AP} + {LECTURER}"
        assert "last resort" in policy.pair_label(PairTypeKey(AP, AP))
        assert policy.pair_label(PairTypeKey(AP, TUTOR), fallback=True).endswith("(fallback)")
        assert policy.pair_label(None) == "Supervisor only"

    def test_policy_from_settings(self):
        settings = TestingSettings(
            SUPERVISOR_RANKS="Professor, Associate Professor",
            ASSISTANT_RANKS="Lecturer",
            PAIRING_PREFERENCE="Professor:Lecturer,Associate Professor:Lecturer",
        )
        policy = RankPolicy.from_settings(settings)
        assert policy.supervisor_ranks == frozenset({"Professor", AP})
        assert policy.preference_order == (
            PairTypeKey("Professor", LECTURER),
            PairTypeKey(AP, LECTURER),
        )


class TestWorkloadLevel:
    @pytest.mark.parametrize(
        "periods, level",
        [(0, "Light"), (11, "Light"), (12, "Medium"), (17, "Medium"), (18, "High"), (40, "High")],
    )
    def test_thresholds(self, periods, level):
        assert workload_level(periods) == level


class TestDeriveSession:
    def test_before_noon_is_morning(self):
        assert derive_session("09:00") == ExamSession.MORNING
        assert derive_session(time(11, 59)) == ExamSession.MORNING

    def test_noon_and_later_is_afternoon(self):
        assert derive_session("12:00:00") == ExamSession.AFTERNOON
        assert derive_session(time(14, 30)) == ExamSession.AFTERNOON

    def test_missing_or_garbled_defaults_to_morning(self):
        assert derive_session(None) == ExamSession.MORNING
        assert derive_session("not a time") == ExamSession.MORNING
        assert derive_session(None, default=ExamSession.AFTERNOON) == ExamSession.AFTERNOON
