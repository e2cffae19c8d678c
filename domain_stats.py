"""Accuracy figures for the per-domain statistics page."""

from sampler import round_half_up

SORT_KEYS = ("accuracy", "attempts", "domain")


def accuracy(correct, attempts):
    if not attempts:
        return 0
    return round_half_up(correct / attempts * 100)


def overall(rows):
    attempts = sum(r.total_attempts or 0 for r in rows)
    correct  = sum(r.total_correct or 0 for r in rows)
    return attempts, correct, accuracy(correct, attempts)


def sort_rows(rows, key="accuracy", descending=True):
    if key == "domain":
        keyfunc = lambda r: r.domain.lower()
    elif key == "attempts":
        keyfunc = lambda r: r.total_attempts
    elif key == "accuracy":
        keyfunc = lambda r: accuracy(r.total_correct, r.total_attempts)
    else:
        raise ValueError(f"unknown sort key {key!r}, expected one of {SORT_KEYS}")
    return sorted(rows, key=keyfunc, reverse=descending)
