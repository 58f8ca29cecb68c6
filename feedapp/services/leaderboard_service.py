"""Business logic for the points leaderboard."""
from typing import Dict, List, Optional

from ..repositories.post_repository import PostRepository


class LeaderboardService:
    """Ranks posters by the Fetch points their posts earned.

    Rankings are recomputed from the feed on every call, so they always
    reflect the current posts.  Entries are ordered by points (descending),
    then flip count (descending), then username; ranks are 1-based positions
    in that order.  The top entry holds the week's crown.
    """

    def __init__(self, repository: PostRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_rankings(self, limit: int = 20) -> List[Dict]:
        """Return up to *limit* leaderboard entries.

        Each entry has ``rank``, ``username``, ``userAvatar``, ``points``,
        ``flipsCount`` and ``crowns`` keys.
        """
        totals: Dict[str, Dict] = {}
        for post in self._repo.all():
            name = post.get('name') or 'Unknown'
            entry = totals.setdefault(name, {
                'username': name,
                'userAvatar': post.get('avatar', ''),
                'points': 0,
                'flipsCount': 0,
            })
            entry['points'] += int(post.get('points') or 0)
            entry['flipsCount'] += 1

        ordered = sorted(totals.values(),
                         key=lambda e: (-e['points'], -e['flipsCount'], e['username']))
        for rank, entry in enumerate(ordered, start=1):
            entry['rank'] = rank
            entry['crowns'] = 1 if rank == 1 else 0
        return ordered[:max(0, int(limit))]

    def get_entry(self, username: str) -> Optional[Dict]:
        """Return the leaderboard entry for *username*, or ``None``."""
        for entry in self.get_rankings(limit=10 ** 6):
            if entry['username'] == username:
                return entry
        return None
