"""
Background persistence of answered questions.

Saving an attempt must never hold up the quiz, so each outcome is written on
a worker thread. Failures are logged and dropped.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait

from question_store import StoreError

logger = logging.getLogger(__name__)


class AttemptRecorder:
    def __init__(self, store, max_workers=2):
        self.store    = store
        self._pool    = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="attempts")
        self._lock    = threading.Lock()
        self._futures = set()

    @property
    def pending(self):
        with self._lock:
            return sum(1 for f in self._futures if not f.done())

    def record(self, outcome):
        """Queue the attempt and domain total update. Returns the Future; nobody has to wait on it."""
        fut = self._pool.submit(self._persist, outcome)
        with self._lock:
            self._futures.add(fut)
        fut.add_done_callback(self._forget)
        return fut

    def _forget(self, fut):
        with self._lock:
            self._futures.discard(fut)

    def _persist(self, outcome):
        q = outcome.question
        try:
            self.store.record_attempt(
                question_id=q.id,
                domain=q.domain,
                mode=outcome.mode,
                difficulty=q.difficulty,
                selected_choice=outcome.selected_choice,
                correct_choice=q.correct_choice,
                is_correct=outcome.is_correct,
                session_id=outcome.session_id,
            )
            self.store.upsert_domain_stats(
                domain=q.domain,
                attempts_inc=1,
                correct_inc=1 if outcome.is_correct else 0,
                mode=outcome.mode,
            )
        except StoreError as exc:
            logger.error("could not save attempt for question %s: %s", q.id, exc)
            return False
        return True

    def flush(self, timeout=None):
        with self._lock:
            futures = list(self._futures)
        done, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self):
        self._pool.shutdown(wait=True)
