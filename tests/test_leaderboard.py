from datetime import datetime, timedelta

import pytz

from quizhub.schemas.attempt_schemas import Attempt, AttemptDraft
from quizhub.schemas.quiz_schemas import QuizDraft
from quizhub.services.attempts import AttemptRecorder
from quizhub.services.leaderboard import LeaderboardRanker, rank_attempts
from quizhub.services.quizzes import QuizRepository
from quizhub.utils.timestamps import to_iso

from tests.conftest import FixedClock, SequentialIds

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=pytz.UTC)


def make_attempt(attempt_id, score, minutes, quiz_id="Q1"):
    return Attempt(
        id=attempt_id,
        quiz_id=quiz_id,
        user_id=f"user-{attempt_id}",
        score=score,
        completed_at=to_iso(T0 + timedelta(minutes=minutes))
    )


def test_higher_score_first_then_earlier_completion():
    attempts = [
        make_attempt("a", 50, 1),
        make_attempt("b", 80, 2),
        make_attempt("c", 80, 3),
        make_attempt("d", 30, 4),
    ]

    entries = rank_attempts(attempts)

    assert [(e.rank, e.attempt.id) for e in entries] == [(1, "b"), (2, "c"), (3, "a"), (4, "d")]


def test_input_order_does_not_matter_for_distinct_keys():
    attempts = [make_attempt("c", 80, 3), make_attempt("a", 50, 1), make_attempt("b", 80, 2)]

    assert [e.attempt.id for e in rank_attempts(attempts)] == ["b", "c", "a"]


def test_full_ties_keep_input_order_with_distinct_ranks():
    attempts = [make_attempt("x", 70, 5), make_attempt("y", 70, 5), make_attempt("z", 70, 5)]

    entries = rank_attempts(attempts)

    assert [(e.rank, e.attempt.id) for e in entries] == [(1, "x"), (2, "y"), (3, "z")]


def test_filter_by_quiz_and_limit():
    attempts = [
        make_attempt("a", 10, 1, quiz_id="Q1"),
        make_attempt("b", 99, 2, quiz_id="Q2"),
        make_attempt("c", 20, 3, quiz_id="Q1"),
        make_attempt("d", 30, 4, quiz_id="Q1"),
    ]

    assert [e.attempt.id for e in rank_attempts(attempts, quiz_id="Q1")] == ["d", "c", "a"]
    assert [e.attempt.id for e in rank_attempts(attempts, quiz_id="Q1", limit=2)] == ["d", "c"]
    assert [e.attempt.id for e in rank_attempts(attempts)] == ["b", "d", "c", "a"]
    assert [e.attempt.id for e in rank_attempts(attempts, quiz_id="")] == ["b", "d", "c", "a"]


def test_no_matching_attempts_is_empty():
    assert rank_attempts([]) == []
    assert rank_attempts([make_attempt("a", 10, 1)], quiz_id="other") == []


def test_mixed_timestamp_formats_compare_chronologically():
    utc_z = Attempt(id="z", quiz_id="Q1", score=5, completed_at="2024-05-01T09:58:00Z")
    # 11:00 по UTC+2 это 09:00 UTC, раньше чем 09:58Z
    offset = Attempt(id="o", quiz_id="Q1", score=5, completed_at="2024-05-01T11:00:00+02:00")

    assert [e.attempt.id for e in rank_attempts([utc_z, offset])] == ["o", "z"]


async def test_rank_is_deterministic(memory_store):
    recorder = AttemptRecorder(memory_store, clock=FixedClock(T0))
    for score in (40, 60, 60, 20):
        await recorder.record(AttemptDraft(quiz_id="Q1", score=score))
    ranker = LeaderboardRanker(recorder)

    first = await ranker.rank("Q1")
    second = await ranker.rank("Q1")

    assert [e.attempt.id for e in first] == [e.attempt.id for e in second]
    assert [e.rank for e in first] == [1, 2, 3, 4]


async def test_capitals_scenario(memory_store):
    clock = FixedClock(datetime(2024, 5, 1, 10, 0, tzinfo=pytz.UTC))
    repository = QuizRepository(memory_store, origin="https://quiz.example", id_factory=lambda: "Q1", clock=clock)
    quiz = await repository.create(QuizDraft(
        title="Capitals",
        difficulty="easy",
        created_by="author",
        questions=[
            {"question": "France?", "options": ["Paris", "Nice"], "correct_answer": 0},
            {"question": "Spain?", "options": ["Madrid", "Porto"], "correct_answer": 0},
            {"question": "Italy?", "options": ["Milan", "Rome"], "correct_answer": 1},
        ]
    ))
    assert quiz.id == "Q1"
    assert quiz.share_link.endswith("/quiz/Q1")

    recorder = AttemptRecorder(memory_store, id_factory=SequentialIds("A"), clock=clock)
    ten_o_clock = await recorder.record(AttemptDraft(quiz_id="Q1", user_id="u1", score=90))
    clock.now = datetime(2024, 5, 1, 9, 58, tzinfo=pytz.UTC)
    two_minutes_earlier = await recorder.record(AttemptDraft(quiz_id="Q1", user_id="u2", score=90))

    entries = await LeaderboardRanker(recorder).rank("Q1")

    assert [e.attempt.id for e in entries] == [two_minutes_earlier.id, ten_o_clock.id]
    assert entries[0].rank == 1


async def test_rank_on_read_failure_is_empty(failing_store):
    recorder = AttemptRecorder(failing_store)
    await recorder.record(AttemptDraft(quiz_id="Q1", score=1))
    failing_store.fail_reads = True

    assert await LeaderboardRanker(recorder).rank("Q1") == []
