"""Tests for theme reconciliation against the capped retained set."""

import random
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from journal_insights.insights.reconcile import (
    apply_reconciliation,
    coerce_candidate,
    prepare_candidates,
    reconcile,
)
from journal_insights.insights.schemas import CandidateTheme, Theme

CREATED = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
NOW = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)


def _theme(title: str, score: int, created_at: datetime = CREATED) -> Theme:
    return Theme(
        id=uuid4(),
        title=title,
        summary=f"Summary of {title}.",
        quotes=[f"Quote about {title}."],
        prominence_score=score,
        last_updated=created_at,
        created_at=created_at,
    )


def _candidate(title: str, score: int, summary: str = None) -> CandidateTheme:
    return CandidateTheme(
        title=title,
        summary=summary or f"Fresh summary of {title}.",
        quotes=[f"Fresh quote about {title}."],
        prominence_score=score,
    )


def _full_set(scores):
    return [
        _theme(f"Theme {i}", score, CREATED + timedelta(days=i))
        for i, score in enumerate(scores)
    ]


class TestMatching:
    def test_case_insensitive_exact_match_updates(self):
        existing = [_theme("fear of failure", 40)]
        result = reconcile(existing, [_candidate("Fear Of Failure", 75)], now=NOW)

        assert [t.id for t in result.updated] == [existing[0].id]
        updated = result.updated[0]
        assert updated.title == "fear of failure"
        assert updated.prominence_score == 75
        assert updated.summary == "Fresh summary of Fear Of Failure."
        assert updated.quotes == ["Fresh quote about Fear Of Failure."]
        assert updated.last_updated == NOW
        assert updated.created_at == existing[0].created_at
        assert result.created == []

    def test_similar_title_does_not_match(self):
        existing = [_theme("Fear of Failure", 40)]
        result = reconcile(existing, [_candidate("Fear of Failing", 75)], now=NOW)

        assert result.updated == []
        assert [t.title for t in result.created] == ["Fear of Failing"]
        assert result.created[0].id != existing[0].id

    def test_update_may_lower_score(self):
        existing = [_theme("Work Anxiety", 80)]
        result = reconcile(existing, [_candidate("work anxiety", 20)], now=NOW)

        assert result.updated[0].prominence_score == 20

    def test_duplicate_candidate_titles_keep_the_strongest(self):
        result = reconcile([], [_candidate("Solitude", 60), _candidate("solitude", 80)], now=NOW)

        assert [(t.title, t.prominence_score) for t in result.created] == [("solitude", 80)]
        assert [(c.title, c.prominence_score) for c in result.skipped] == [("Solitude", 60)]


class TestCapacity:
    def test_no_eviction_below_capacity(self):
        existing = [_theme("A", 30), _theme("B", 40), _theme("C", 50)]
        result = reconcile(existing, [_candidate("New One", 10), _candidate("New Two", 5)], now=NOW)

        assert [t.title for t in result.created] == ["New One", "New Two"]
        assert {t.id for t in result.created}.isdisjoint({t.id for t in existing})
        assert all(t.created_at == NOW and t.last_updated == NOW for t in result.created)
        assert result.updated == []
        assert result.evicted == []

    def test_inserts_stop_at_capacity_then_evict(self):
        existing = _full_set([50] * 8)
        candidates = [_candidate("X", 90), _candidate("Y", 80), _candidate("Z", 70)]
        result = reconcile(existing, candidates, now=NOW)

        assert [t.title for t in result.created] == ["X", "Y", "Z"]
        # X and Y fill the two free slots, Z recycles a retained theme
        assert [t.title for t in result.evicted] == ["Theme 7"]
        assert len(apply_reconciliation(existing, result)) == 10

    def test_existing_over_capacity_is_rejected(self):
        with pytest.raises(ValueError):
            reconcile(_full_set([50] * 11), [_candidate("X", 90)], now=NOW)

    @pytest.mark.parametrize("seed", range(20))
    def test_cardinality_never_exceeds_limit(self, seed):
        rng = random.Random(seed)
        existing = _full_set([rng.randint(1, 100) for _ in range(rng.randint(0, 10))])
        titles = [t.title for t in existing] + [f"Candidate {i}" for i in range(20)]
        candidates = [
            _candidate(rng.choice(titles).upper() if rng.random() < 0.3 else rng.choice(titles), rng.randint(1, 100))
            for _ in range(rng.randint(0, 15))
        ]

        result = reconcile(existing, candidates, now=NOW)
        retained = apply_reconciliation(existing, result)

        assert len(retained) <= 10
        assert len({t.id for t in retained}) == len(retained)


class TestEviction:
    def test_requires_strictly_higher_score(self):
        existing = _full_set([90] * 10)
        result = reconcile(existing, [_candidate("Newcomer", 90)], now=NOW)

        assert result.created == []
        assert result.updated == []
        assert [c.title for c in result.skipped] == ["Newcomer"]

    def test_targets_lowest_scorer(self):
        existing = _full_set([10, 20, 30, 40, 50, 60, 70, 80, 90, 100])
        lowest = existing[0]
        result = reconcile(existing, [_candidate("Newcomer", 95)], now=NOW)

        assert len(result.created) == 1
        replaced = result.created[0]
        assert replaced.id == lowest.id
        assert replaced.title == "Newcomer"
        assert replaced.prominence_score == 95
        assert replaced.created_at == lowest.created_at
        assert replaced.last_updated == NOW
        assert result.evicted == [lowest]

    def test_tie_evicts_most_recently_created(self):
        existing = _full_set([50] * 8) + [
            _theme("Old Low", 10, CREATED - timedelta(days=30)),
            _theme("New Low", 10, CREATED + timedelta(days=30)),
        ]
        result = reconcile(existing, [_candidate("Newcomer", 11)], now=NOW)

        assert [t.title for t in result.evicted] == ["New Low"]

    def test_replaced_theme_is_not_evicted_again(self):
        existing = _full_set([50] * 9) + [_theme("Weakest", 5)]
        result = reconcile(existing, [_candidate("First", 60), _candidate("Second", 55)], now=NOW)

        assert [t.title for t in result.evicted] == ["Weakest", "Theme 8"]
        retained_titles = {t.title for t in apply_reconciliation(existing, result)}
        assert {"First", "Second"} <= retained_titles

    def test_updated_theme_is_not_an_eviction_target(self):
        existing = _full_set([50] * 8) + [_theme("Low", 5), _theme("Mid", 30)]
        result = reconcile(existing, [_candidate("low", 45), _candidate("Newcomer", 40)], now=NOW)

        assert [t.title for t in result.updated] == ["Low"]
        assert [t.title for t in result.evicted] == ["Mid"]

    def test_skips_when_every_theme_was_refreshed(self):
        existing = [_theme("A", 10), _theme("B", 10)]
        candidates = [_candidate("A", 99), _candidate("B", 98), _candidate("C", 97)]
        result = reconcile(existing, candidates, now=NOW, max_themes=2)

        assert [t.title for t in result.updated] == ["A", "B"]
        assert [c.title for c in result.skipped] == ["C"]

    def test_candidate_matching_evicted_title_does_not_update_replacement(self):
        existing = _full_set([50] * 9) + [_theme("Fading", 5)]
        result = reconcile(existing, [_candidate("Rising", 70), _candidate("Fading", 60)], now=NOW)

        # Once its slot is recycled the old title no longer matches
        assert [t.title for t in result.evicted] == ["Fading", "Theme 8"]
        assert result.updated == []


class TestWorkAnxietyScenario:
    def test_work_anxiety_update_and_new_theme_replacement(self):
        existing = [_theme("Work Anxiety", 60)] + _full_set([15, 20, 25, 30, 35, 40, 45, 50, 55])
        lowest = existing[1]
        candidates = [_candidate("New Theme X", 50), _candidate("Work Anxiety", 70)]

        result = reconcile(existing, candidates, now=NOW)

        assert [(t.title, t.prominence_score) for t in result.updated] == [("Work Anxiety", 70)]
        assert [(t.id, t.title) for t in result.created] == [(lowest.id, "New Theme X")]
        retained = apply_reconciliation(existing, result)
        assert len(retained) == 10
        assert "New Theme X" in {t.title for t in retained}
        assert lowest.title not in {t.title for t in retained}


class TestStability:
    def test_second_identical_run_updates_same_themes_with_same_values(self):
        existing = _full_set([10, 20, 30, 40, 50, 60, 70, 80, 90, 100])
        candidates = [_candidate("Newcomer", 95), _candidate("Theme 9", 100), _candidate("Theme 4", 55)]

        first = reconcile(existing, candidates, now=NOW)
        after_first = apply_reconciliation(existing, first)
        second = reconcile(after_first, candidates, now=NOW + timedelta(days=7))
        after_second = apply_reconciliation(after_first, second)

        assert second.created == []
        assert second.skipped == []
        assert {t.title for t in second.updated} == {"Newcomer", "Theme 9", "Theme 4"}

        def _values(themes):
            return {t.id: (t.title, t.summary, tuple(t.quotes), t.prominence_score) for t in themes}

        assert _values(after_second) == _values(after_first)

    def test_inputs_are_not_mutated(self):
        existing = _full_set([10, 20, 30, 40, 50, 60, 70, 80, 90, 100])
        snapshot = [t.model_dump() for t in existing]

        reconcile(existing, [_candidate("Newcomer", 95), _candidate("theme 3", 1)], now=NOW)

        assert [t.model_dump() for t in existing] == snapshot

    def test_ties_keep_received_order(self):
        result = reconcile([], [_candidate("B", 50), _candidate("A", 50), _candidate("C", 70)], now=NOW)

        assert [t.title for t in result.created] == ["C", "B", "A"]

    def test_empty_candidates_is_a_no_op(self):
        result = reconcile(_full_set([50] * 10), [], now=NOW)

        assert result.is_empty()
        assert result.evicted == []


class TestCandidateRecords:
    def test_malformed_records_are_dropped(self):
        records = [
            {"summary": "no title", "prominence_score": 80},
            {"title": "   ", "prominence_score": 80},
            {"title": "Word score", "prominence_score": "high"},
            {"title": "Zero", "prominence_score": 0},
            {"title": "Negative", "prominence_score": -5},
            {"title": "Boolean", "prominence_score": True},
            {"title": "Missing score"},
            "not a record",
            {"title": "Kept", "prominence_score": 42},
        ]

        assert [c.title for c in prepare_candidates(records)] == ["Kept"]

    def test_scores_are_rounded_and_clamped(self):
        assert coerce_candidate({"title": "High", "prominence_score": 150}).prominence_score == 100
        assert coerce_candidate({"title": "Fraction", "prominence_score": 72.6}).prominence_score == 73
        assert coerce_candidate({"title": "Half", "prominence_score": 72.5}).prominence_score == 73

    @pytest.mark.parametrize("score", [0.4, 0.5, 0.01])
    def test_small_positive_scores_count_as_one(self, score):
        assert coerce_candidate({"title": "Faint", "prominence_score": score}).prominence_score == 1

    def test_optional_fields_are_normalized(self):
        candidate = coerce_candidate(
            {"title": "  Restlessness  ", "prominence_score": 30, "summary": None, "quotes": ["ok", 3, ""]}
        )

        assert candidate.title == "Restlessness"
        assert candidate.summary == ""
        assert candidate.quotes == ["ok"]

    def test_reconcile_accepts_raw_records(self):
        result = reconcile([], [{"title": "Raw", "prominence_score": 30}, {"title": "Bad"}], now=NOW)

        assert [t.title for t in result.created] == ["Raw"]
