"""
Weighted difficulty sampling.

Picks a quiz from a larger pool so the easy/medium/hard mix follows the
mode's weight targets. Buckets that run short are topped up from whatever
is left in the other buckets, so the requested size is met whenever the
pool is large enough.
"""

import math
import random

from quiz_models import MODES

WEIGHTS = {
    "balanced": {"easy": 0.30, "medium": 0.50, "hard": 0.20},
    "exam":     {"easy": 0.10, "medium": 0.45, "hard": 0.45},
}

QUIZ_SIZES = (5, 10, 25, 50)
DEFAULT_SIZE = 25
MAX_SIZE = 500


def round_half_up(x):
    return int(math.floor(x + 0.5))


def clamp_size(n, low=1, high=MAX_SIZE):
    return max(low, min(high, int(n)))


def targets(size, mode):
    """Per-difficulty counts for ``size``; hard takes the remainder so totals never drift."""
    if mode not in WEIGHTS:
        raise ValueError(f"unknown mode {mode!r}, expected one of {sorted(MODES)}")
    w = WEIGHTS[mode]
    easy   = round_half_up(size * w["easy"])
    medium = round_half_up(size * w["medium"])
    return {"easy": easy, "medium": medium, "hard": size - easy - medium}


def shuffled(items, rng=None):
    out = list(items)
    (rng or random).shuffle(out)
    return out


def select(pool, size, mode, rng=None):
    """Return ``min(size, len(pool))`` questions drawn without replacement."""
    if size < 1:
        raise ValueError(f"quiz size must be at least 1, got {size}")
    want = targets(size, mode)

    buckets = {"easy": [], "medium": [], "hard": []}
    for q in pool:
        buckets[q.difficulty].append(q)
    for d in buckets:
        buckets[d] = shuffled(buckets[d], rng)

    picked, leftover = [], []
    for d, bucket in buckets.items():
        take = min(want[d], len(bucket))
        picked.extend(bucket[:take])
        leftover.extend(bucket[take:])

    if len(picked) < size:
        picked.extend(shuffled(leftover, rng)[:size - len(picked)])

    return shuffled(picked, rng)[:size]
