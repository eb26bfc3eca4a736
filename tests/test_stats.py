"""Unit tests for quiz statistics and the stats store."""
import random
import pytest
from pydantic import ValidationError
from app.constants import STATS_KEY
from app.services.stats import (
    CharacterStat,
    QuizStats,
    ResetNotConfirmedError,
    StatsStore,
    default_stats,
    mark_played,
    record_answer,
    reset_stats,
)


class TestRecordAnswer:
    """Tests for applying one answer to the stats."""

    def test_correct_answer(self):
        stats = default_stats()
        result = record_answer(stats, "h1", True)

        assert stats.total_answered == 1
        assert stats.correct_answers == 1
        assert stats.streak == 1
        assert stats.best_streak == 1
        assert stats.character_stats["h1"] == CharacterStat(attempts=1, correct=1)
        assert result["character"] == {"attempts": 1, "correct": 1}

    def test_wrong_answer_resets_streak_keeps_best(self):
        stats = default_stats()
        for _ in range(3):
            record_answer(stats, "h1", True)
        record_answer(stats, "h2", False)

        assert stats.streak == 0
        assert stats.best_streak == 3
        assert stats.total_answered == 4
        assert stats.correct_answers == 3
        assert stats.character_stats["h2"] == CharacterStat(attempts=1, correct=0)

    def test_best_streak_is_high_water_mark(self):
        stats = default_stats()
        for outcome in [True, True, False, True]:
            record_answer(stats, "k1", outcome)

        assert stats.streak == 1
        assert stats.best_streak == 2

    def test_invariants_hold_for_random_sequences(self):
        rng = random.Random(11)
        stats = default_stats()

        for _ in range(500):
            record_answer(stats, f"h{rng.randint(1, 10)}", rng.random() < 0.6)

            assert stats.correct_answers <= stats.total_answered
            assert stats.best_streak >= stats.streak
            for entry in stats.character_stats.values():
                assert entry.correct <= entry.attempts

        assert sum(e.attempts for e in stats.character_stats.values()) == stats.total_answered


class TestQuizStatsModel:
    """Tests for the stats document shape."""

    def test_document_uses_camel_case_keys(self):
        stats = default_stats()
        record_answer(stats, "h1", True)

        document = stats.to_document()

        assert set(document) == {
            "totalAnswered", "correctAnswers", "streak", "bestStreak", "lastPlayed", "characterStats"
        }
        assert document["characterStats"] == {"h1": {"attempts": 1, "correct": 1}}
        assert isinstance(document["lastPlayed"], str)

    def test_round_trip_from_document(self):
        stats = default_stats()
        record_answer(stats, "k3", False)

        restored = QuizStats.model_validate(stats.to_document())

        assert restored == stats

    def test_rejects_correct_above_total(self):
        with pytest.raises(ValidationError):
            QuizStats(totalAnswered=1, correctAnswers=2)

    def test_rejects_best_below_streak(self):
        with pytest.raises(ValidationError):
            QuizStats(streak=3, bestStreak=1)

    def test_rejects_negative_counters(self):
        with pytest.raises(ValidationError):
            CharacterStat(attempts=-1, correct=0)

    def test_accuracy(self):
        assert default_stats().accuracy is None
        assert QuizStats(totalAnswered=4, correctAnswers=3).accuracy == 0.75


class TestStatsStore:
    """Tests for the durable slot."""

    def test_get_with_default(self, store):
        assert store.get(STATS_KEY) is None
        assert store.get(STATS_KEY, {"x": 1}) == {"x": 1}

    def test_load_defaults_on_first_use(self, store):
        stats = store.load()

        assert stats.total_answered == 0
        assert stats.character_stats == {}

    def test_put_overwrites(self, store):
        store.put("other", {"a": 1})
        store.put("other", {"b": 2})

        assert store.get("other") == {"b": 2}

    def test_survives_new_store_instance(self, test_db, store, test_learner):
        with store.transaction() as stats:
            record_answer(stats, "h1", True)

        reloaded = StatsStore(test_db, test_learner.id).load()

        assert reloaded.total_answered == 1
        assert reloaded.character_stats["h1"].correct == 1

    def test_transaction_writes_nothing_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as stats:
                record_answer(stats, "h1", True)
                raise RuntimeError("boom")

        assert store.get(STATS_KEY) is None

    def test_slots_are_per_learner(self, test_db, store):
        with store.transaction() as stats:
            record_answer(stats, "h1", True)

        other = StatsStore(test_db, "kana_someone_else")

        assert other.load().total_answered == 0

    def test_mark_played_keeps_counters(self, store):
        with store.transaction() as stats:
            record_answer(stats, "h1", True)
        before = store.load().last_played

        mark_played(store)

        stats = store.load()
        assert stats.total_answered == 1
        assert stats.last_played >= before


class TestResetStats:
    """Tests for the confirmed reset."""

    def test_reset_wipes_everything(self, store):
        with store.transaction() as stats:
            for i in range(5):
                record_answer(stats, f"h{i}", i % 2 == 0)

        result = reset_stats(store, confirmed=True)

        stats = store.load()
        for snapshot in (result, stats):
            assert snapshot.total_answered == 0
            assert snapshot.correct_answers == 0
            assert snapshot.streak == 0
            assert snapshot.best_streak == 0
            assert snapshot.character_stats == {}

    def test_reset_requires_confirmation(self, store):
        with store.transaction() as stats:
            record_answer(stats, "h1", True)

        with pytest.raises(ResetNotConfirmedError):
            reset_stats(store, confirmed=False)

        assert store.load().total_answered == 1

    def test_reset_on_fresh_store(self, store):
        stats = reset_stats(store, confirmed=True)

        assert stats.total_answered == 0
        assert store.get(STATS_KEY) is not None
