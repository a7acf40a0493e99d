"""
Tests for QuizSession and QuizSessionEngine in studymate.quiz_engine.
"""

import random
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from studymate.exceptions import (
    NoFlashcardsError,
    NothingToRetestError,
    QuizCancelled,
    QuizSessionError,
    SessionError,
    SubjectNotFoundError,
)
from studymate.models import Flashcard, QuizMode
from studymate.quiz_engine import QuizSession, QuizSessionEngine, answers_match


@pytest.mark.parametrize(
    "given,expected,match",
    [
        ("4", "4", True),
        ("  paris ", "Paris", True),
        ("PARIS", "paris", True),
        ("Pari", "Paris", False),
        ("", "Paris", False),
        ("New  York", "New York", False),
    ],
)
def test_answers_match(given, expected, match):
    assert answers_match(given, expected) is match


class TestQuizSession:
    @pytest.fixture
    def session(self, fixed_now):
        cards = [
            Flashcard(id=1, question="2+2", answer="4"),
            Flashcard(id=2, question="3+3", answer="6"),
        ]
        return QuizSession("Math", QuizMode.FULL, cards, clock=lambda: fixed_now)

    def test_walks_cards_in_order(self, session):
        assert session.total == 2
        assert session.position == 1
        assert session.get_next_card().id == 1

        outcome = session.submit_answer("4")
        assert outcome.is_correct
        assert session.position == 2
        assert session.remaining == 1

        outcome = session.submit_answer("7")
        assert not outcome.is_correct
        assert outcome.expected_answer == "6"
        assert session.is_finished
        assert session.get_next_card() is None

    def test_get_next_card_does_not_advance(self, session):
        assert session.get_next_card() == session.get_next_card()
        assert session.remaining == 2

    def test_build_result(self, session, fixed_now):
        session.submit_answer("4")
        session.submit_answer("7")
        result = session.build_result()
        assert result.subject_name == "Math"
        assert result.total_questions == 2
        assert result.correct_answers == 1
        assert result.wrong_answer_ids == frozenset({2})
        assert result.quiz_date == fixed_now
        assert [o.flashcard_id for o in session.outcomes] == [1, 2]

    def test_build_result_before_finish_raises(self, session):
        session.submit_answer("4")
        with pytest.raises(QuizSessionError, match="unanswered"):
            session.build_result()

    def test_submit_after_finish_raises(self, session):
        session.submit_answer("4")
        session.submit_answer("6")
        with pytest.raises(QuizSessionError):
            session.submit_answer("extra")

    def test_default_clock_is_utc(self):
        session = QuizSession("Math", QuizMode.FULL, [])
        result = session.build_result()
        assert result.total_questions == 0
        assert result.quiz_date.tzinfo is not None
        assert result.quiz_date <= datetime.now(timezone.utc)


class TestStart:
    def test_full_session_has_every_card_once(self, engine):
        session = engine.start("Math")
        assert sorted(c.id for c in session.flashcards) == [1, 2]
        assert session.mode is QuizMode.FULL

    def test_subject_name_is_canonical(self, engine):
        session = engine.start("  mAtH ")
        assert session.subject_name == "Math"

    def test_accepts_mode_value(self, engine):
        assert engine.start("Math", "full").mode is QuizMode.FULL

    def test_shuffle_does_not_touch_store(self, engine, math_store):
        engine.rng = random.Random(7)
        for _ in range(5):
            engine.start("Math")
        assert [c.id for c in math_store.get_subject("Math").flashcards] == [1, 2]

    def test_same_seed_same_order(self, math_store, ledger):
        for n in range(3, 11):
            math_store.add_flashcard("Math", f"{n}+{n}", str(2 * n))

        def order(seed):
            engine = QuizSessionEngine(math_store, ledger, rng=random.Random(seed))
            return [c.id for c in engine.start("Math").flashcards]

        assert order(42) == order(42)
        assert sorted(order(42)) == list(range(1, 11))

    def test_uses_rng_shuffle(self, math_store, ledger):
        rng = MagicMock()
        engine = QuizSessionEngine(math_store, ledger, rng=rng)
        engine.start("Math")
        rng.shuffle.assert_called_once()

    def test_unknown_subject(self, engine):
        with pytest.raises(SubjectNotFoundError):
            engine.start("Physics")

    def test_empty_subject(self, engine, math_store):
        math_store.add_subject("Empty")
        with pytest.raises(NoFlashcardsError):
            engine.start("Empty")

    def test_errors_share_a_base(self):
        for error_class in (SubjectNotFoundError, NoFlashcardsError, NothingToRetestError):
            assert issubclass(error_class, SessionError)


class TestRetest:
    def test_retest_without_wrong_answers(self, engine):
        with pytest.raises(NothingToRetestError):
            engine.start("Math", QuizMode.RETEST)

    def test_retest_asks_only_flagged_cards(self, engine, ledger, make_result):
        ledger.record(make_result(wrong=(2,)))
        session = engine.start("Math", QuizMode.RETEST)
        assert [c.id for c in session.flashcards] == [2]
        assert session.mode is QuizMode.RETEST

    def test_retest_skips_deleted_cards(self, engine, math_store, ledger, make_result):
        ledger.record(make_result(total=2, correct=0, wrong=(1, 2)))
        math_store.remove_flashcard("Math", 1)
        session = engine.start("Math", QuizMode.RETEST)
        assert [c.id for c in session.flashcards] == [2]

    def test_retest_when_all_flagged_cards_deleted(
        self, engine, math_store, ledger, make_result
    ):
        ledger.record(make_result(wrong=(2,)))
        math_store.remove_flashcard("Math", 2)
        with pytest.raises(NothingToRetestError):
            engine.start("Math", QuizMode.RETEST)

    def test_retest_never_exceeds_wrong_set(self, engine, math_store, ledger, make_result):
        for n in range(3, 8):
            math_store.add_flashcard("Math", f"{n}+{n}", str(2 * n))
        ledger.record(make_result(total=7, correct=4, wrong=(2, 5, 7)))
        session = engine.start("Math", QuizMode.RETEST)
        ids = {c.id for c in session.flashcards}
        assert ids == {2, 5, 7}
        assert session.total <= len(ledger.wrong_ids("Math"))


class TestRunSession:
    def test_full_quiz_scenario(self, engine, answer_key, math_store, fixed_now):
        ask = answer_key(math_store, "Math", wrong_ids={2})
        result = engine.run_session("Math", QuizMode.FULL, ask)

        assert result.total_questions == 2
        assert result.correct_answers == 1
        assert result.wrong_answer_ids == frozenset({2})
        assert result.score == pytest.approx(50.0)
        assert result.quiz_date == fixed_now

    def test_answers_typed_by_the_user(self, engine, math_store):
        answers = {"2+2": "4", "3+3": "7"}

        def ask(card, position, total):
            return answers[card.question]

        result = engine.run_session("Math", QuizMode.FULL, ask)
        assert result.correct_answers == 1
        assert result.wrong_answer_ids == frozenset({2})

    def test_run_session_does_not_record(self, engine, answer_key, math_store, ledger):
        engine.run_session("Math", QuizMode.FULL, answer_key(math_store, "Math"))
        assert ledger.history == ()
        assert not ledger.path.exists()

    def test_recorded_result_drives_retest(self, engine, answer_key, math_store, ledger):
        result = engine.run_session(
            "Math", QuizMode.FULL, answer_key(math_store, "Math", wrong_ids={2})
        )
        ledger.record(result)

        asked = []

        def ask(card, position, total):
            asked.append((card.id, position, total))
            return card.answer

        retest = engine.run_session("Math", QuizMode.RETEST, ask)

        assert asked == [(2, 1, 1)]
        assert retest.total_questions == 1
        assert retest.correct_answers == 1
        assert retest.wrong_answer_ids == frozenset()

    def test_all_correct(self, engine, answer_key, math_store):
        result = engine.run_session("Math", QuizMode.FULL, answer_key(math_store, "Math"))
        assert result.correct_answers == result.total_questions == 2
        assert result.wrong_answer_ids == frozenset()
        assert result.score == pytest.approx(100.0)

    def test_single_card_subject(self, engine, math_store):
        math_store.add_subject("Solo")
        math_store.add_flashcard("Solo", "Only question?", "yes")
        result = engine.run_session("Solo", QuizMode.FULL, lambda c, p, t: "no")
        assert result.total_questions == 1
        assert result.correct_answers == 0
        assert result.wrong_answer_ids == frozenset({1})
        assert result.score == 0.0

    def test_positions_are_one_based(self, engine, answer_key, math_store):
        seen = []
        inner = answer_key(math_store, "Math")

        def ask(card, position, total):
            seen.append((position, total))
            return inner(card, position, total)

        engine.run_session("Math", QuizMode.FULL, ask)
        assert seen == [(1, 2), (2, 2)]

    def test_on_answer_called_per_question(self, engine, answer_key, math_store):
        listener = MagicMock()
        engine.run_session(
            "Math",
            QuizMode.FULL,
            answer_key(math_store, "Math", wrong_ids={1}),
            on_answer=listener,
        )
        assert listener.call_count == 2
        outcomes = {call.args[0].flashcard_id: call.args[0] for call in listener.call_args_list}
        assert not outcomes[1].is_correct
        assert outcomes[2].is_correct

    def test_cancel_produces_no_result(self, engine, ledger):
        def ask(card, position, total):
            if position == 2:
                raise QuizCancelled()
            return card.answer

        with pytest.raises(QuizCancelled):
            engine.run_session("Math", QuizMode.FULL, ask)
        assert ledger.history == ()

    def test_start_errors_propagate(self, engine):
        with pytest.raises(SubjectNotFoundError):
            engine.run_session("Physics", QuizMode.FULL, lambda c, p, t: "")
