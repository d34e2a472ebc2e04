import random
from typing import List, Sequence, Tuple


def clamp_winner_count(requested: int, participant_count: int) -> int:
    return max(1, min(requested, participant_count))


def shuffle_ids(ids: Sequence[int], rng=random) -> List[int]:
    """Fisher-Yates shuffle returning a new list; ``ids`` is left untouched."""
    result = list(ids)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def select_winners(participant_ids: Sequence[int], winner_count: int, rng=random) -> Tuple[List[int], List[int]]:
    """Split participants into winners and the order losers are revealed in.

    Both lists come from one uniform permutation: winners are its first
    ``clamp(winner_count, 1, N)`` ids, losers the rest in permutation order.
    """
    if not participant_ids:
        raise ValueError("cannot select winners from an empty participant set")
    shuffled = shuffle_ids(participant_ids, rng)
    kept = clamp_winner_count(winner_count, len(shuffled))
    return shuffled[:kept], shuffled[kept:]
