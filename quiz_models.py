"""
Question model and shared constants for CertPrep.
This module does not import Streamlit.
"""

from dataclasses import dataclass

# ─────────────────────────────────────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────────────────────────────────────
DIFFICULTIES = {
    "easy":   {"label": "Foundational", "emoji": "🟢"},
    "medium": {"label": "Applied",      "emoji": "🟡"},
    "hard":   {"label": "Expert",       "emoji": "🔴"},
}

MODES = {
    "balanced": {"label": "Balanced", "hint": "Feedback after every question"},
    "exam":     {"label": "Exam",     "hint": "Exam mode hides feedback until the end"},
}

LETTERS = ("A", "B", "C", "D")

ALL_DOMAINS = "all"
NO_EXPLANATION = "No explanation provided."


def index_to_letter(index):
    return LETTERS[index]


def letter_to_index(letter):
    try:
        return LETTERS.index(str(letter).strip().upper())
    except ValueError:
        raise ValueError(f"correct choice must be one of A-D, got {letter!r}") from None


@dataclass(frozen=True)
class Question:
    id:            str
    domain:        str
    difficulty:    str
    mode:          str
    text:          str
    choices:       tuple
    correct_index: int
    explanation:   str = NO_EXPLANATION

    def __post_init__(self):
        object.__setattr__(self, "choices", tuple(self.choices))
        if len(self.choices) != 4:
            raise ValueError(f"question {self.id} needs exactly 4 choices, got {len(self.choices)}")
        if self.correct_index not in (0, 1, 2, 3):
            raise ValueError(f"question {self.id} correct index must be 0-3, got {self.correct_index}")
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"question {self.id} has unknown difficulty {self.difficulty!r}")

    @property
    def correct_choice(self):
        return index_to_letter(self.correct_index)

    @property
    def correct_text(self):
        return self.choices[self.correct_index]

    @classmethod
    def from_row(cls, row):
        """Build a Question from a ``questions`` row mapping (choice_a..choice_d, correct_choice)."""
        return cls(
            id=str(row["id"]),
            domain=row["domain"],
            difficulty=row["difficulty"],
            mode=row["mode"],
            text=row["question"],
            choices=(row["choice_a"], row["choice_b"], row["choice_c"], row["choice_d"]),
            correct_index=letter_to_index(row["correct_choice"]),
            explanation=row.get("explanation") or NO_EXPLANATION,
        )


def resolve_domain(selected, options):
    """Fall back to all domains when the selected one is no longer offered."""
    if selected != ALL_DOMAINS and selected not in options:
        return ALL_DOMAINS
    return selected
