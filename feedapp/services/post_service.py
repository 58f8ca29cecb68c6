"""Business logic for feed posts ("flips")."""
import copy
import datetime
import logging
import uuid
from typing import Dict, List, Optional

from ..errors import ValidationError
from .comment_service import count_comments
from ..repositories.post_repository import PostRepository

logger = logging.getLogger('fetchfeed.posts')

# Points awarded per share kind: (in-app only, also shared externally)
SHARE_POINTS = {
    'haul': (25, 35),
    'roast': (30, 40),
    'review': (40, 50),
}

# Fields the server owns; updates never overwrite them.
_IMMUTABLE_FIELDS = ('id', 'createdAt')


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _check_tree(comments) -> None:
    """Raise ValidationError unless *comments* is a list of comment objects."""
    if not isinstance(comments, list):
        raise ValidationError('comments must be a list')
    for comment in comments:
        if not isinstance(comment, dict):
            raise ValidationError('comments must be a list of objects')
        _check_tree(comment.get('replies') or [])


class PostService:
    """Validates and applies post operations, delegating persistence to
    :class:`~feedapp.repositories.post_repository.PostRepository`.

    Rules
    -----
    * The server assigns ``id`` and ``createdAt``; callers cannot change them.
    * ``initialComments`` is always the node count of ``comments``.
    * New posts go to the front of the feed.
    * Likes have set semantics: ``like`` on a liked post and ``unlike`` on an
      unliked post change nothing, and ``initialLikes`` never goes negative.
    """

    def __init__(self, repository: PostRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_posts(self) -> List[Dict]:
        """Return every post, newest first."""
        return self._repo.all()

    def get(self, post_id: str) -> Optional[Dict]:
        """Return the post with *post_id*, or ``None``."""
        return self._repo.find(str(post_id))

    def create(self, data: Dict) -> Dict:
        """Store a new post built from *data* and return it.

        Raises:
            ValidationError: *data* is not a dict or ``comments`` is malformed.
        """
        if not isinstance(data, dict):
            raise ValidationError('Post body must be a JSON object')
        post = copy.deepcopy(data)
        post.setdefault('initialLikes', 0)
        post.setdefault('points', 0)
        post.setdefault('isLiked', False)
        post.setdefault('comments', [])
        _check_tree(post['comments'])
        post['initialComments'] = count_comments(post['comments'])
        post['id'] = uuid.uuid4().hex
        post['createdAt'] = _now()
        self._repo.insert_first(post)
        logger.info("Created post %s by %s", post['id'], post.get('name', '?'))
        return post

    def update(self, post_id: str, data: Dict) -> Optional[Dict]:
        """Shallow-merge *data* into the stored post.

        Returns:
            The updated post, or ``None`` when *post_id* does not exist.
        """
        if not isinstance(data, dict):
            raise ValidationError('Post body must be a JSON object')
        if 'comments' in data:
            _check_tree(data['comments'])
        with self._repo.transaction():
            post = self._repo.find(str(post_id))
            if post is None:
                return None
            for key, value in data.items():
                if key not in _IMMUTABLE_FIELDS:
                    post[key] = value
            post['initialComments'] = count_comments(post.get('comments') or [])
            self._repo.replace(str(post_id), post)
        return post

    def delete(self, post_id: str) -> Optional[Dict]:
        """Remove and return the post, or ``None`` when it does not exist."""
        removed = self._repo.remove(str(post_id))
        if removed is not None:
            logger.info("Deleted post %s", post_id)
        return removed

    def like(self, post_id: str) -> Optional[Dict]:
        """Mark the post as liked.  No-op when it already is."""
        return self._set_liked(post_id, True)

    def unlike(self, post_id: str) -> Optional[Dict]:
        """Clear the like on the post.  No-op when it is not liked."""
        return self._set_liked(post_id, False)

    def toggle_like(self, post_id: str) -> Optional[Dict]:
        """Flip the like state; two calls restore the original post."""
        with self._repo.transaction():
            post = self._repo.find(str(post_id))
            if post is None:
                return None
            return self._set_liked(post_id, not post.get('isLiked', False))

    def share(self, kind: str, data: Dict, share_external: bool = False) -> Dict:
        """Build a haul, roast or review post from share-screen *data*.

        Points follow :data:`SHARE_POINTS`; sharing externally earns the
        higher amount.

        Raises:
            ValidationError: unknown *kind* or missing kind-specific fields.
        """
        if kind not in SHARE_POINTS:
            raise ValidationError(
                f"type must be one of: {', '.join(sorted(SHARE_POINTS))}")
        if not isinstance(data, dict):
            raise ValidationError('Share body must be a JSON object')
        points = SHARE_POINTS[kind][1 if share_external else 0]
        post: Dict = {
            'avatar': data.get('avatar', ''),
            'name': data.get('name', 'You'),
            'points': points,
            'initialLikes': 0,
            'initialComments': 0,
            'receiptItems': list(data.get('receiptItems') or []),
        }

        if kind == 'haul':
            media = data.get('media') or data.get('image') or ''
            post.update({
                'subline': 'Shared a haul video' if data.get('mediaType') == 'video'
                           else 'Just posted',
                'caption': data.get('caption', ''),
                'imageSource': {'uri': media},
                'storeName': data.get('storeName'),
            })
        elif kind == 'roast':
            roast_text = data.get('roastText')
            if not roast_text:
                raise ValidationError('roastText is required for roast posts')
            post.update({
                'subline': 'AI Roasted their receipt 🔥',
                'caption': roast_text,
                'imageSource': {'uri': ''},
                'isRoast': True,
                'roastText': roast_text,
                'roastEmoji': data.get('roastEmoji', '🔥'),
            })
        else:
            product = data.get('productName')
            if not product:
                raise ValidationError('productName is required for review posts')
            rating = data.get('rating')
            try:
                rating = int(rating)
            except (TypeError, ValueError):
                raise ValidationError('rating must be an integer between 1 and 5')
            if not 1 <= rating <= 5:
                raise ValidationError('rating must be an integer between 1 and 5')
            post.update({
                'subline': f'Reviewed {product}',
                'caption': '',
                'imageSource': {'uri': ''},
                'isReview': True,
                'productName': product,
                'rating': rating,
                'reviewText': data.get('reviewText')
                              or f'Great product! {rating}/5 stars!',
                'reviewMedia': data.get('media'),
                'storeName': data.get('storeName'),
            })
        return self.create(post)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_liked(self, post_id: str, liked: bool) -> Optional[Dict]:
        with self._repo.transaction():
            post = self._repo.find(str(post_id))
            if post is None:
                return None
            if bool(post.get('isLiked')) != liked:
                likes = int(post.get('initialLikes') or 0)
                post['isLiked'] = liked
                post['initialLikes'] = likes + 1 if liked else max(0, likes - 1)
                self._repo.replace(str(post_id), post)
        return post
