"""
Quiz session state machine.

One QuizSession lives in ``st.session_state`` for the current run. The state
is a single tagged value (Loading, LoadError, Empty, Ready, Submitted,
Complete) instead of a handful of booleans, so combinations such as
"submitted but nothing selected" cannot be represented.

Every action quietly does nothing when its precondition is not met and
returns False (or None), which keeps button handlers in the UI simple.
"""

import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import sampler
from quiz_models import ALL_DOMAINS, MODES, index_to_letter

logger = logging.getLogger(__name__)


def new_session_id():
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        # os.urandom unavailable, e.g. a WASI build without a random_get import
        return f"sess_{int(time.time() * 1000)}_{random.getrandbits(52):x}"


# ─────────────────────────────────────────────────────────────────────────────
# STATES
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class LoadError:
    message: str


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Ready:
    index:  int
    choice: Optional[int] = None


@dataclass(frozen=True)
class Submitted:
    index:  int
    choice: int


@dataclass(frozen=True)
class Complete:
    index:  int
    choice: int


# ─────────────────────────────────────────────────────────────────────────────
# VIEWS
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AttemptOutcome:
    question:   object
    selected:   int
    is_correct: bool
    mode:       str
    session_id: str

    @property
    def selected_choice(self):
        return index_to_letter(self.selected)


@dataclass(frozen=True)
class QuestionView:
    text:          str
    choices:       tuple
    domain:        str
    difficulty:    str
    position:      int
    total:         int
    selected:      Optional[int]
    submitted:     bool
    correct_index: Optional[int] = None
    is_correct:    Optional[bool] = None
    explanation:   Optional[str] = None

    @property
    def revealed(self):
        return self.correct_index is not None


@dataclass(frozen=True)
class ReviewItem:
    question_id:    str
    domain:         str
    difficulty:     str
    text:           str
    correct_letter: str
    correct_text:   str
    explanation:    str


@dataclass(frozen=True)
class ReviewSummary:
    mode:    str
    domain:  str
    correct: int
    total:   int
    items:   tuple

    @property
    def missed(self):
        return len(self.items)


# ─────────────────────────────────────────────────────────────────────────────
# SESSION
# ─────────────────────────────────────────────────────────────────────────────
class QuizSession:
    def __init__(self, mode="balanced", size=sampler.DEFAULT_SIZE, domain=ALL_DOMAINS,
                 recorder=None, rng=None):
        if mode not in MODES:
            raise ValueError(f"unknown mode {mode!r}")
        self.mode       = mode
        self.size       = sampler.clamp_size(size)
        self.domain     = domain
        self.recorder   = recorder
        self.rng        = rng
        self.questions  = ()
        self.state      = Loading()
        self.correct    = 0
        self.attempted  = 0
        self.incorrect_ids = []
        self.session_id = new_session_id()

    # ── queries ──────────────────────────────────────────────────────────
    @property
    def total(self):
        return len(self.questions)

    @property
    def current_question(self):
        if isinstance(self.state, (Ready, Submitted, Complete)):
            return self.questions[self.state.index]
        return None

    @property
    def is_complete(self):
        return isinstance(self.state, Complete)

    @property
    def can_retry_incorrect(self):
        return bool(self.incorrect_ids) and bool(self.questions)

    @property
    def progress_pct(self):
        if not self.total or not isinstance(self.state, (Ready, Submitted, Complete)):
            return 0
        return sampler.round_half_up((self.state.index + 1) / self.total * 100)

    @property
    def live_score(self):
        """(correct, attempted) while answering; None in exam mode until the review."""
        if self.mode == "exam" and not self.is_complete:
            return None
        return self.correct, self.attempted

    def missed_questions(self):
        missed = set(self.incorrect_ids)
        return [q for q in self.questions if q.id in missed]

    # ── loading ──────────────────────────────────────────────────────────
    def configure(self, mode=None, size=None, domain=None):
        """Change quiz settings. Returns True when the caller should reload."""
        changed = False
        if mode is not None and mode != self.mode:
            if mode not in MODES:
                raise ValueError(f"unknown mode {mode!r}")
            self.mode, changed = mode, True
        if size is not None and sampler.clamp_size(size) != self.size:
            self.size, changed = sampler.clamp_size(size), True
        if domain is not None and domain != self.domain:
            self.domain, changed = domain, True
        return changed

    def begin_loading(self):
        self.state = Loading()
        return True

    def fail(self, message):
        self.questions = ()
        self.state = LoadError(str(message))
        return True

    def load(self, pool):
        picked = sampler.select(pool, self.size, self.mode, self.rng) if pool else []
        self.questions = tuple(picked)
        self._reset()
        if not self.questions:
            self.state = Empty()
        logger.debug("loaded %d of %d questions (mode=%s domain=%s)",
                     self.total, len(pool), self.mode, self.domain)
        return True

    def _reset(self):
        self.state      = Ready(0)
        self.correct    = 0
        self.attempted  = 0
        self.incorrect_ids = []
        self.session_id = new_session_id()

    # ── answering ────────────────────────────────────────────────────────
    def select_answer(self, choice):
        if not isinstance(self.state, Ready) or choice not in (0, 1, 2, 3):
            return False
        self.state = Ready(self.state.index, choice)
        return True

    def submit(self):
        state = self.state
        if not isinstance(state, Ready) or state.choice is None:
            return None
        q = self.questions[state.index]
        is_correct = state.choice == q.correct_index

        self.attempted += 1
        if is_correct:
            self.correct += 1
        elif q.id not in self.incorrect_ids:
            self.incorrect_ids.append(q.id)

        if state.index == self.total - 1:
            self.state = Complete(state.index, state.choice)
        else:
            self.state = Submitted(state.index, state.choice)

        outcome = AttemptOutcome(q, state.choice, is_correct, self.mode, self.session_id)
        if self.recorder is not None:
            self.recorder.record(outcome)
        return outcome

    def advance(self):
        state = self.state
        if not isinstance(state, Submitted):
            return False
        if state.index < self.total - 1:
            self.state = Ready(state.index + 1)
        else:
            self.state = Complete(state.index, state.choice)
        return True

    # ── new runs over the loaded set ─────────────────────────────────────
    def restart(self):
        if not self.questions or not isinstance(self.state, (Ready, Submitted, Complete)):
            return False
        self._reset()
        logger.debug("session restarted as %s", self.session_id)
        return True

    def reshuffle(self):
        if not self.questions or not isinstance(self.state, (Ready, Submitted, Complete)):
            return False
        self.questions = tuple(sampler.shuffled(self.questions, self.rng))
        return self.restart()

    def retry_incorrect(self):
        if not self.can_retry_incorrect:
            return False
        self.questions = tuple(sampler.shuffled(self.missed_questions(), self.rng))
        return self.restart()

    # ── review navigation ────────────────────────────────────────────────
    def jump_to(self, question_id):
        if not isinstance(self.state, Complete):
            return False
        for i, q in enumerate(self.questions):
            if q.id == question_id:
                self.state = Ready(i)
                return True
        return False

    def back_to_quiz(self):
        if not isinstance(self.state, Complete):
            return False
        self.state = Submitted(self.state.index, self.state.choice)
        return True

    # ── what the UI may show ─────────────────────────────────────────────
    def question_view(self):
        state = self.state
        if not isinstance(state, (Ready, Submitted)):
            return None
        q = self.questions[state.index]
        submitted = isinstance(state, Submitted)
        view = dict(
            text=q.text, choices=q.choices, domain=q.domain, difficulty=q.difficulty,
            position=state.index + 1, total=self.total,
            selected=state.choice, submitted=submitted,
        )
        # exam mode keeps correctness for the review screen
        if submitted and self.mode == "balanced":
            view.update(
                correct_index=q.correct_index,
                is_correct=state.choice == q.correct_index,
                explanation=q.explanation,
            )
        return QuestionView(**view)

    def review(self):
        if not isinstance(self.state, Complete):
            return None
        items = tuple(
            ReviewItem(
                question_id=q.id, domain=q.domain, difficulty=q.difficulty, text=q.text,
                correct_letter=q.correct_choice, correct_text=q.correct_text,
                explanation=q.explanation,
            )
            for q in self.missed_questions()
        )
        return ReviewSummary(self.mode, self.domain, self.correct, self.total, items)
