"""Repository for feed posts ({"posts": [post, ...]}, newest first)."""
import copy
import datetime
import os
from typing import Dict, List, Optional

from .base import BaseRepository


def _seed_posts() -> List[Dict]:
    """Return the demo posts written to a brand-new data file."""
    now = datetime.datetime.now(datetime.timezone.utc).isoformat()
    seeds = [
        ('1', 1, 'Emily S.', 'Completed 8 receipts this week',
         'Check out my latest grocery haul! 🥑', '', 24, 15),
        ('2', 5, 'Marcus T.', 'Top earner this month',
         'Just hit 500 points! Who else is crushing it? 🎯',
         'https://picsum.photos/seed/groceries2/800/600', 42, 25),
        ('3', 9, 'Sarah L.', 'Completed 3 receipts today',
         'Healthy shopping spree! Meal prep Sunday 🥗',
         'https://picsum.photos/seed/groceries3/800/600', 18, 12),
        ('4', 12, 'David K.', 'Completed 15 receipts this week',
         "Stocked up for the week! Let's go Fetch fam 💪",
         'https://picsum.photos/seed/groceries4/800/600', 31, 20),
    ]
    return [
        {
            'id': post_id,
            'avatar': f'https://i.pravatar.cc/100?img={img}',
            'name': name,
            'subline': subline,
            'caption': caption,
            'imageSource': {'uri': uri},
            'initialLikes': likes,
            'initialComments': 0,
            'points': points,
            'isLiked': False,
            'comments': [],
            'createdAt': now,
        }
        for post_id, img, name, subline, caption, uri, likes, points in seeds
    ]


class PostRepository(BaseRepository):
    """Persists the feed to a single JSON file.

    Schema::

        {
            "posts": [
                {"id": <str>, "name": <str>, "caption": <str>,
                 "initialLikes": <int>, "comments": [<comment>, ...], ...}
            ]
        }

    A missing file is created with the demo posts.  A corrupt file is left
    untouched on disk and the demo posts are served from memory until the
    next write replaces it.
    """

    def __init__(self, file_path: str = 'posts.json', seed: bool = True) -> None:
        super().__init__(file_path)
        default = {'posts': _seed_posts() if seed else []}
        existed = os.path.exists(self._path)
        self.data: Dict[str, List[Dict]] = self._load(default)
        if not isinstance(self.data, dict) or not isinstance(self.data.get('posts'), list):
            self._log.warning("Ignoring malformed feed file %s", self._path)
            self.data = default
        if not existed:
            self.save()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def all(self) -> List[Dict]:
        """Return a deep copy of every post, newest first."""
        with self._lock:
            return copy.deepcopy(self.data['posts'])

    def find(self, post_id: str) -> Optional[Dict]:
        """Return a deep copy of the post with *post_id*, or ``None``."""
        with self._lock:
            index = self._index(post_id)
            if index is None:
                return None
            return copy.deepcopy(self.data['posts'][index])

    def insert_first(self, post: Dict) -> None:
        """Put *post* at the front of the feed."""
        with self.transaction() as data:
            data['posts'].insert(0, post)

    def replace(self, post_id: str, post: Dict) -> bool:
        """Swap the stored post for *post*.  Returns ``False`` if missing."""
        with self.transaction() as data:
            index = self._index(post_id)
            if index is None:
                return False
            data['posts'][index] = post
            return True

    def remove(self, post_id: str) -> Optional[Dict]:
        """Delete the post with *post_id* and return it, or ``None``."""
        with self.transaction() as data:
            index = self._index(post_id)
            if index is None:
                return None
            return data['posts'].pop(index)

    def _index(self, post_id: str) -> Optional[int]:
        for i, post in enumerate(self.data['posts']):
            if str(post.get('id')) == str(post_id):
                return i
        return None
