"""
Tests for the quiz session state machine.
Run: python -m pytest tests/test_quiz_session.py -v
"""

import pytest

from conftest import make_pool, make_question
from quiz_session import (
    Complete, Empty, LoadError, Loading, QuizSession, Ready, Submitted, new_session_id,
)


def loaded(pool, recorder=None, rng=None, mode="balanced", size=None):
    session = QuizSession(mode=mode, size=size or len(pool), recorder=recorder, rng=rng)
    session.load(pool)
    return session


def answer(session, choice):
    session.select_answer(choice)
    return session.submit()


@pytest.fixture
def three(rng, recorder):
    # every question's correct answer is index 0
    return loaded(make_pool(easy=1, medium=1, hard=1), recorder=recorder, rng=rng)


class TestLoading:
    def test_new_session_waits_for_questions(self):
        session = QuizSession()
        assert isinstance(session.state, Loading)
        assert session.current_question is None
        assert session.question_view() is None

    def test_load_starts_at_first_question(self, three):
        assert three.state == Ready(0)
        assert three.total == 3
        assert (three.correct, three.attempted, three.incorrect_ids) == (0, 0, [])

    def test_load_respects_size(self, rng):
        session = loaded(make_pool(easy=10, medium=10, hard=10), rng=rng, size=5)
        assert session.total == 5

    def test_empty_pool_is_empty_state(self):
        session = loaded([], size=10)
        assert isinstance(session.state, Empty)
        assert session.current_question is None

    def test_fail_is_load_error(self, three):
        three.fail("connection refused")
        assert three.state == LoadError("connection refused")
        assert three.total == 0

    def test_reload_mints_new_identity(self, three):
        before = three.session_id
        three.load(make_pool(easy=2))
        assert three.session_id != before

    def test_configure_reports_changes(self):
        session = QuizSession()
        assert session.configure(mode="balanced", size=25, domain="all") is False
        assert session.configure(mode="exam") is True
        assert session.configure(size=10) is True
        assert session.configure(domain="Printers") is True
        assert (session.mode, session.size, session.domain) == ("exam", 10, "Printers")

    def test_configure_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            QuizSession().configure(mode="cram")


class TestNoQuestionGuards:
    @pytest.mark.parametrize("action", [
        lambda s: s.select_answer(0),
        lambda s: s.advance(),
        lambda s: s.restart(),
        lambda s: s.reshuffle(),
        lambda s: s.retry_incorrect(),
        lambda s: s.jump_to("q1"),
        lambda s: s.back_to_quiz(),
    ])
    def test_actions_are_noops(self, action):
        session = loaded([], size=5)
        assert action(session) is False
        assert isinstance(session.state, Empty)

    def test_submit_without_questions(self):
        assert loaded([], size=5).submit() is None


class TestAnswering:
    def test_select_records_choice(self, three):
        assert three.select_answer(2) is True
        assert three.state == Ready(0, 2)

    def test_select_ignores_out_of_range(self, three):
        assert three.select_answer(4) is False
        assert three.state == Ready(0)

    def test_submit_requires_choice(self, three, recorder):
        assert three.submit() is None
        assert three.attempted == 0
        assert recorder.outcomes == []

    def test_correct_submit(self, three, recorder):
        outcome = answer(three, 0)
        assert outcome.is_correct is True
        assert (three.correct, three.attempted) == (1, 1)
        assert three.incorrect_ids == []
        assert three.state == Submitted(0, 0)
        assert recorder.outcomes == [outcome]
        assert outcome.session_id == three.session_id
        assert outcome.selected_choice == "A"

    def test_wrong_submit_tracks_id(self, three):
        q = three.current_question
        outcome = answer(three, 3)
        assert outcome.is_correct is False
        assert (three.correct, three.attempted) == (0, 1)
        assert three.incorrect_ids == [q.id]

    def test_submit_is_idempotent(self, three, recorder):
        answer(three, 3)
        assert three.submit() is None
        assert three.attempted == 1
        assert len(three.incorrect_ids) == 1
        assert len(recorder.outcomes) == 1

    def test_no_reselect_after_submit(self, three):
        answer(three, 1)
        assert three.select_answer(0) is False
        assert three.state == Submitted(0, 1)

    def test_missed_question_not_listed_twice(self, three):
        q = three.current_question
        for c in (3, 0, 0):
            answer(three, c)
            three.advance()
        assert three.jump_to(q.id) is True
        answer(three, 2)
        assert three.incorrect_ids.count(q.id) == 1
        assert three.attempted == 4


class TestProgression:
    def test_advance_before_submit_is_noop(self, three):
        three.select_answer(0)
        assert three.advance() is False
        assert three.state == Ready(0, 0)

    def test_advance_resets_choice(self, three):
        answer(three, 0)
        assert three.advance() is True
        assert three.state == Ready(1)

    def test_last_submit_completes(self, three):
        for _ in range(2):
            answer(three, 0)
            three.advance()
        answer(three, 1)
        assert three.is_complete
        assert three.state == Complete(2, 1)

    def test_back_to_quiz_then_finish(self, three):
        for _ in range(3):
            answer(three, 0)
            three.advance()
        assert three.back_to_quiz() is True
        assert three.state == Submitted(2, 0)
        assert three.advance() is True
        assert three.is_complete

    def test_progress_pct(self, rng):
        session = loaded(make_pool(easy=3), rng=rng)
        assert session.progress_pct == 33
        answer(session, 0)
        session.advance()
        assert session.progress_pct == 67


class TestNewRuns:
    def finish(self, session, choices):
        for c in choices:
            answer(session, c)
            session.advance()

    def test_restart_keeps_order(self, three):
        order = [q.id for q in three.questions]
        before = three.session_id
        self.finish(three, [0, 1, 2])
        assert three.restart() is True
        assert [q.id for q in three.questions] == order
        assert three.state == Ready(0)
        assert (three.correct, three.attempted, three.incorrect_ids) == (0, 0, [])
        assert three.session_id != before

    def test_reshuffle_keeps_members(self, three):
        ids = {q.id for q in three.questions}
        answer(three, 1)
        assert three.reshuffle() is True
        assert {q.id for q in three.questions} == ids
        assert three.state == Ready(0)
        assert three.attempted == 0

    def test_retry_incorrect_narrows_set(self, rng):
        session = loaded(make_pool(easy=2, medium=2, hard=1), rng=rng)
        self.finish(session, [1, 0, 2, 0, 3])
        missed = set(session.incorrect_ids)
        before = session.session_id
        assert len(missed) == 3
        assert session.retry_incorrect() is True
        assert session.total == 3
        assert {q.id for q in session.questions} == missed
        assert (session.correct, session.attempted, session.incorrect_ids) == (0, 0, [])
        assert session.session_id != before
        assert session.state == Ready(0)

    def test_retry_with_no_misses_is_disabled(self, three):
        self.finish(three, [0, 0, 0])
        assert three.can_retry_incorrect is False
        assert three.retry_incorrect() is False
        assert three.total == 3

    def test_jump_to_missed_question(self, three):
        target = three.questions[1]
        self.finish(three, [0, 3, 0])
        assert three.jump_to(target.id) is True
        assert three.state == Ready(1)
        assert (three.correct, three.attempted) == (2, 3)

    def test_jump_outside_review_is_noop(self, three):
        assert three.jump_to(three.questions[2].id) is False

    def test_jump_to_unknown_id(self, three):
        self.finish(three, [0, 0, 0])
        assert three.jump_to("nope") is False
        assert three.is_complete


class TestFeedbackPolicy:
    def test_balanced_reveals_after_submit(self, rng):
        session = loaded([make_question("easy", correct_index=2)], rng=rng)
        # last question, so reveal by stepping back from review
        answer(session, 1)
        session.back_to_quiz()
        view = session.question_view()
        assert view.submitted and view.revealed
        assert view.correct_index == 2
        assert view.is_correct is False
        assert view.explanation

    def test_balanced_hides_before_submit(self, three):
        three.select_answer(0)
        view = three.question_view()
        assert not view.revealed
        assert view.selected == 0
        assert (view.position, view.total) == (1, 3)

    def test_exam_hides_after_submit(self, rng):
        session = loaded(make_pool(easy=2, hard=2), rng=rng, mode="exam")
        answer(session, 3)
        view = session.question_view()
        assert view.submitted
        assert view.correct_index is None
        assert view.is_correct is None
        assert view.explanation is None

    def test_exam_hides_running_score_until_review(self, rng):
        session = loaded(make_pool(easy=1, hard=1), rng=rng, mode="exam")
        answer(session, 3)
        assert session.live_score is None
        assert session.attempted == 1
        session.advance()
        answer(session, 0)
        assert session.is_complete
        assert session.live_score == (1, 2)

    def test_balanced_shows_running_score(self, three):
        answer(three, 3)
        assert three.live_score == (0, 1)

    def test_exam_review_reveals_every_miss(self, rng):
        session = loaded(make_pool(easy=2, hard=2), rng=rng, mode="exam")
        for c in (3, 0, 2, 1):
            answer(session, c)
            session.advance()
        summary = session.review()
        assert summary.mode == "exam"
        assert (summary.correct, summary.total, summary.missed) == (1, 4, 3)
        for item in summary.items:
            assert item.correct_letter == "A"
            assert item.correct_text == "one"
            assert item.explanation.startswith("Because")

    def test_review_only_when_complete(self, three):
        assert three.review() is None


def test_session_ids_are_unique():
    assert len({new_session_id() for _ in range(50)}) == 50


def test_session_id_fallback(monkeypatch):
    import uuid

    def no_entropy():
        raise NotImplementedError

    monkeypatch.setattr(uuid, "uuid4", no_entropy)
    assert new_session_id().startswith("sess_")
