import os
import random
import sys
import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from question_store import Base, QuestionStore
from quiz_models import Question

_ids = itertools.count(1)


def make_question(difficulty="medium", domain="Networking", mode="balanced", correct_index=0, qid=None):
    n = next(_ids)
    return Question(
        id=qid or f"q{n}",
        domain=domain,
        difficulty=difficulty,
        mode=mode,
        text=f"Question {n}?",
        choices=("one", "two", "three", "four"),
        correct_index=correct_index,
        explanation=f"Because {n}.",
    )


def make_pool(easy=0, medium=0, hard=0, **kwargs):
    return (
        [make_question("easy", **kwargs) for _ in range(easy)]
        + [make_question("medium", **kwargs) for _ in range(medium)]
        + [make_question("hard", **kwargs) for _ in range(hard)]
    )


def question_row(domain="Networking", difficulty="easy", mode="balanced", correct="B", **extra):
    row = {
        "domain": domain,
        "difficulty": difficulty,
        "mode": mode,
        "question": "Which port does HTTPS use?",
        "choice_a": "80",
        "choice_b": "443",
        "choice_c": "22",
        "choice_d": "25",
        "correct_choice": correct,
        "explanation": "HTTPS listens on 443.",
    }
    row.update(extra)
    return row


class FakeRecorder:
    def __init__(self):
        self.outcomes = []

    def record(self, outcome):
        self.outcomes.append(outcome)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield QuestionStore(engine)
    engine.dispose()
