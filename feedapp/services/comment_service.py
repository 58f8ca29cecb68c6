"""Business logic for post comments and their nested replies.

Comments are stored inline on each post as a list of nodes, each carrying its
own ``replies`` list, so a thread can nest to any depth.  The module-level
helpers are pure: they never mutate their input and always hand back new
lists, which lets the service swap the whole tree in one repository write.
"""
import datetime
import logging
import uuid
from typing import Dict, List, Optional, Tuple

from ..errors import NotFoundError, ValidationError
from ..repositories.post_repository import PostRepository

logger = logging.getLogger('fetchfeed.comments')

MAX_COMMENT_LENGTH = 1000


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def find_comment(comments: List[Dict], comment_id: str) -> Optional[Dict]:
    """Return the node with *comment_id* anywhere in the tree, or ``None``."""
    for comment in comments:
        if comment.get('id') == comment_id:
            return comment
        found = find_comment(comment.get('replies') or [], comment_id)
        if found is not None:
            return found
    return None


def add_reply(comments: List[Dict], parent_id: str,
              reply: Dict) -> Optional[List[Dict]]:
    """Append *reply* under *parent_id* at whatever depth the parent sits.

    Returns:
        A new comment list, or ``None`` when no node has *parent_id*.
    """
    result = []
    attached = False
    for comment in comments:
        if not attached and comment.get('id') == parent_id:
            comment = dict(comment, replies=list(comment.get('replies') or []) + [reply])
            attached = True
        elif not attached and comment.get('replies'):
            replies = add_reply(comment['replies'], parent_id, reply)
            if replies is not None:
                comment = dict(comment, replies=replies)
                attached = True
        result.append(comment)
    return result if attached else None


def remove_comment(comments: List[Dict],
                   comment_id: str) -> Tuple[List[Dict], Optional[Dict]]:
    """Drop the node with *comment_id* together with its whole subtree.

    Returns:
        ``(new_list, removed_node)``; ``removed_node`` is ``None`` and the
        list is an unchanged copy when nothing matched.
    """
    result = []
    removed = None
    for comment in comments:
        if removed is None and comment.get('id') == comment_id:
            removed = comment
            continue
        if removed is None and comment.get('replies'):
            replies, removed = remove_comment(comment['replies'], comment_id)
            if removed is not None:
                comment = dict(comment, replies=replies)
        result.append(comment)
    return result, removed


def toggle_comment_like(comments: List[Dict],
                        comment_id: str) -> Tuple[List[Dict], Optional[Dict]]:
    """Flip ``isLiked`` on *comment_id* and move ``likes`` by one.

    Calling this twice leaves the node as it started.  ``likes`` never drops
    below zero.

    Returns:
        ``(new_list, updated_node)``; ``updated_node`` is ``None`` when the
        comment was not found.
    """
    result = []
    updated = None
    for comment in comments:
        if updated is None and comment.get('id') == comment_id:
            liked = bool(comment.get('isLiked'))
            likes = int(comment.get('likes') or 0)
            comment = dict(comment, isLiked=not liked,
                           likes=max(0, likes - 1) if liked else likes + 1)
            updated = comment
        elif updated is None and comment.get('replies'):
            replies, updated = toggle_comment_like(comment['replies'], comment_id)
            if updated is not None:
                comment = dict(comment, replies=replies)
        result.append(comment)
    return result, updated


def count_comments(comments: List[Dict]) -> int:
    """Count every comment in the tree, replies included."""
    return sum(1 + count_comments(c.get('replies') or []) for c in comments)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class CommentService:
    """Applies comment operations to posts stored in a
    :class:`~feedapp.repositories.post_repository.PostRepository`.

    Rules
    -----
    * ``text`` is required, stripped, and at most 1000 characters.
    * Top-level comments go to the front of the list; replies are appended
      to their parent's ``replies`` at any depth.
    * Deleting a comment deletes all of its replies.
    * After every change the post's ``initialComments`` equals the number
      of nodes in its tree.
    """

    def __init__(self, repository: PostRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list(self, post_id: str) -> List[Dict]:
        """Return the comment tree of *post_id*."""
        post = self._repo.find(post_id)
        if post is None:
            raise NotFoundError('Post not found')
        return post.get('comments') or []

    def add(self, post_id: str, data: Dict) -> Dict:
        """Create a comment (or a reply when ``data['parentId']`` is set).

        Raises:
            ValidationError: missing or over-long ``text``.
            NotFoundError:   unknown post or parent comment.
        """
        if not isinstance(data, dict):
            raise ValidationError('Comment body must be a JSON object')
        text = str(data.get('text') or '').strip()
        if not text:
            raise ValidationError('Comment text is required')
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                f'Comment text must be at most {MAX_COMMENT_LENGTH} characters')

        parent_id = data.get('parentId') or None
        comment = {
            'id': uuid.uuid4().hex,
            'avatar': data.get('avatar', ''),
            'name': data.get('name', 'You'),
            'text': text,
            'likes': 0,
            'isLiked': False,
            'isOwner': bool(data.get('isOwner', True)),
            'replies': [],
            'createdAt': datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        if parent_id:
            comment['parentId'] = parent_id

        with self._repo.transaction():
            post = self._require_post(post_id)
            comments = post.get('comments') or []
            if parent_id:
                updated = add_reply(comments, parent_id, comment)
                if updated is None:
                    raise NotFoundError('Parent comment not found')
            else:
                updated = [comment] + comments
            self._store(post_id, post, updated)

        logger.debug("Added comment %s to post %s (parent=%s)",
                     comment['id'], post_id, parent_id)
        return comment

    def delete(self, post_id: str, comment_id: str) -> Dict:
        """Delete *comment_id* and its replies; return the removed node."""
        with self._repo.transaction():
            post = self._require_post(post_id)
            updated, removed = remove_comment(post.get('comments') or [], comment_id)
            if removed is None:
                raise NotFoundError('Comment not found')
            self._store(post_id, post, updated)
        return removed

    def like(self, post_id: str, comment_id: str) -> Dict:
        """Toggle the like on *comment_id*; return the updated node."""
        with self._repo.transaction():
            post = self._require_post(post_id)
            updated, comment = toggle_comment_like(post.get('comments') or [], comment_id)
            if comment is None:
                raise NotFoundError('Comment not found')
            self._store(post_id, post, updated)
        return comment

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_post(self, post_id: str) -> Dict:
        post = self._repo.find(post_id)
        if post is None:
            raise NotFoundError('Post not found')
        return post

    def _store(self, post_id: str, post: Dict, comments: List[Dict]) -> None:
        post['comments'] = comments
        post['initialComments'] = count_comments(comments)
        self._repo.replace(post_id, post)
