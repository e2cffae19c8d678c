"""
Question authoring with Claude.

Writes new four-option questions for a domain/difficulty/mode and returns
them shaped like ``questions`` rows, ready for QuestionStore.add_questions.
"""

import json
import logging
import time
import uuid

import anthropic

from quiz_models import DIFFICULTIES, MODES, index_to_letter

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
MAX_ATTEMPTS  = 3
RETRY_PAUSE   = 1.5

DIFF_GUIDE = {
    "easy":   "A basic recall or definition question. The correct answer is clear to anyone who has read the study material.",
    "medium": "A scenario-based question. Describe a realistic workplace situation and ask what the technician should do.",
    "hard":   "A complex question with competing priorities or subtle distinctions. Every option should look plausible.",
}


class GenerationError(RuntimeError):
    pass


def build_prompt(domain, difficulty, topic=None):
    focus = f"Topic: {topic}\n" if topic else ""
    return (
        f"Write one certification exam practice question.\n"
        f"Domain: {domain}\n"
        f"{focus}"
        f"Difficulty: {difficulty} — {DIFF_GUIDE[difficulty]}\n\n"
        f"Rules:\n"
        f"- 4 options only\n"
        f"- Use BEST / MOST / FIRST where appropriate\n"
        f"- All wrong options must be plausible\n"
        f"- answer = 0-based index of correct option (0,1,2, or 3)\n"
        f"- explanation = 2-3 sentences: why correct, why others are wrong\n\n"
        f"Reply with ONLY this JSON and nothing else:\n"
        f'{{"question":"...","options":["A","B","C","D"],"answer":0,"explanation":"..."}}'
    )


def parse_reply(raw):
    """Pull the question JSON out of a model reply and validate it."""
    raw = raw.strip().replace("```json", "").replace("```", "").strip()
    if not raw.startswith("{"):
        idx = raw.find("{")
        if idx != -1:
            raw = raw[idx:]
    data = json.loads(raw)

    for key in ("question", "options", "answer", "explanation"):
        if key not in data:
            raise ValueError(f"missing {key}")
    if not isinstance(data["options"], list) or len(data["options"]) != 4:
        raise ValueError("need exactly 4 options")
    answer = data["answer"]
    if not isinstance(answer, int) or isinstance(answer, bool) or answer not in (0, 1, 2, 3):
        raise ValueError("answer must be 0-3")
    return data


class QuestionWriter:
    def __init__(self, client, model=DEFAULT_MODEL, pause=time.sleep):
        self.client = client
        self.model  = model
        self.pause  = pause

    @classmethod
    def from_api_key(cls, api_key, model=DEFAULT_MODEL):
        return cls(anthropic.Anthropic(api_key=api_key), model=model)

    def generate(self, domain, difficulty, mode, topic=None):
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty {difficulty!r}")
        if mode not in MODES:
            raise ValueError(f"unknown mode {mode!r}")
        prompt = build_prompt(domain, difficulty, topic)

        last_error = None
        for attempt_num in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self.client.messages.create(
                    model=self.model,
                    max_tokens=600,
                    messages=[{"role": "user", "content": prompt}],
                )
                data = parse_reply(response.content[0].text)
            except (anthropic.APIError, ValueError, KeyError, IndexError, AttributeError) as exc:
                last_error = str(exc)
                logger.warning("question generation attempt %d/%d failed: %s",
                               attempt_num, MAX_ATTEMPTS, exc)
                if attempt_num < MAX_ATTEMPTS:
                    self.pause(RETRY_PAUSE)
                continue

            a, b, c, d = (str(o) for o in data["options"])
            return {
                "id":             str(uuid.uuid4()),
                "domain":         domain,
                "difficulty":     difficulty,
                "mode":           mode,
                "question":       data["question"],
                "choice_a":       a,
                "choice_b":       b,
                "choice_c":       c,
                "choice_d":       d,
                "correct_choice": index_to_letter(int(data["answer"])),
                "explanation":    data["explanation"],
            }

        raise GenerationError(
            f"Could not generate question after {MAX_ATTEMPTS} attempts. "
            f"Last error: {last_error}"
        )

    def generate_batch(self, domain, difficulty, mode, count, topic=None):
        return [self.generate(domain, difficulty, mode, topic) for _ in range(count)]
