"""Spaced-repetition review schedule.

The wait before the next review grows with the square of the previous
interval:

  last_review  next_review   wait
  -----------  -----------   ----------------------------------
  unset        unset         1 day
  unset        set           1 day
  set          unset         1 day
  set          set           floor(gap ** 2) if gap > 1 else 2

where ``gap`` is whole days from ``last_review`` to ``next_review``.
After a review, ``last_review`` takes the old ``next_review``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta

from papers.paper import LoadedPaper, PaperMeta, now_naive

REVIEW_POWER = 2.0


def next_review_date(meta: PaperMeta, now: datetime | None = None) -> datetime:
    """Compute when *meta* should next be reviewed, if reviewed at *now*."""
    now = now or now_naive()
    last, nxt = meta.last_review, meta.next_review
    if last is None or nxt is None:
        wait_days = 1
    else:
        gap = (nxt - last).days
        if gap > 1:
            wait_days = math.floor(gap**REVIEW_POWER)
        else:
            wait_days = 2
    return now + timedelta(days=wait_days)


def update_review(meta: PaperMeta, now: datetime | None = None) -> None:
    """Record a review of *meta* at *now* (in place)."""
    next_date = next_review_date(meta, now)
    meta.last_review = meta.next_review
    meta.next_review = next_date


def is_reviewable(meta: PaperMeta, now: datetime | None = None) -> bool:
    """True when no review is scheduled, or the scheduled time has passed."""
    if meta.next_review is None:
        return True
    return meta.next_review < (now or now_naive())


def reviewable(papers: Iterable[LoadedPaper], now: datetime | None = None) -> list[LoadedPaper]:
    """Reviewable papers, never-scheduled first, then most overdue."""
    now = now or now_naive()
    due = [p for p in papers if is_reviewable(p.meta, now)]
    return sorted(due, key=lambda p: (p.meta.next_review is not None, p.meta.next_review or now))
