"""Champion selection across all participants."""

from typing import Dict, List, Optional, Sequence

from ..models import DailyProgressRecord, User
from .streaks import calculate_streaks, total_days_run


def determine_winner(
    users: Sequence[User],
    progress_by_user: Dict[int, List[DailyProgressRecord]],
) -> Optional[User]:
    """Pick a single winner, or None when there are no users.

    Tie-breaks, in order:
    1. Still active beats eliminated; among eliminated only, the most
       recently eliminated comes first.
    2. Most completed days, if strictly ahead of the runner-up.
    3. Longest streak.

    Step 3 stands in for a pace-improvement comparison. Every sort is stable,
    so deeper ties go to whoever the previous ordering put first.
    """
    active = [u for u in users if u.elimination_date is None]
    eliminated = sorted(
        (u for u in users if u.elimination_date is not None),
        key=lambda u: u.elimination_date,
        reverse=True,
    )

    # Any active participant outranks every eliminated one
    candidates = active if active else eliminated
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    by_days = sorted(
        candidates,
        key=lambda u: total_days_run(progress_by_user.get(u.id, [])),
        reverse=True,
    )
    top_days = total_days_run(progress_by_user.get(by_days[0].id, []))
    runner_up_days = total_days_run(progress_by_user.get(by_days[1].id, []))
    if top_days > runner_up_days:
        return by_days[0]

    by_streak = sorted(
        by_days,
        key=lambda u: calculate_streaks(progress_by_user.get(u.id, [])).longest_streak,
        reverse=True,
    )
    return by_streak[0]
