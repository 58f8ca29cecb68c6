"""Business logic for user accounts and profiles."""
import re
from typing import Dict, List, Optional

from ..errors import DatabaseUnavailableError, NotFoundError, ValidationError

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_BIO_LENGTH = 500


class UserService:
    """Validates user input and delegates storage to the ``database``
    module's helper functions.

    All methods accept a *db* SQLAlchemy session as the first argument so
    that callers (Flask route handlers) control the session lifecycle.
    Results are returned as camelCase dicts ready for JSON.
    """

    def __init__(self, db_module) -> None:
        """
        Args:
            db_module: The imported ``database`` module (or any object that
                exposes ``create_user``, ``get_user``, ``get_user_by_email``,
                ``get_all_users``, ``update_user_profile`` and
                ``user_to_dict``).
        """
        self._db = db_module

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, db, email: str, name: str) -> Dict:
        """Register a new user.

        Raises:
            ValidationError: bad email, empty name, or email already taken.
            DatabaseUnavailableError: the insert failed.
        """
        email = (email or '').strip().lower()
        name = (name or '').strip()
        if not _EMAIL_RE.match(email):
            raise ValidationError('A valid email is required')
        if not name:
            raise ValidationError('name must not be empty')
        if self._db.get_user_by_email(db, email) is not None:
            raise ValidationError('A user with that email already exists')
        user = self._db.create_user(db, email, name)
        if user is None:
            raise DatabaseUnavailableError('Could not save user')
        return self._db.user_to_dict(user)

    def get(self, db, user_id: str) -> Optional[Dict]:
        """Return the user dict for *user_id*, or ``None``."""
        user = self._db.get_user(db, user_id)
        return self._db.user_to_dict(user) if user else None

    def get_all(self, db) -> List[Dict]:
        """Return every registered user."""
        return [self._db.user_to_dict(u) for u in self._db.get_all_users(db)]

    def update_profile(self, db, user_id: str, data: Dict) -> Dict:
        """Apply a partial profile update from camelCase *data*.

        Raises:
            ValidationError: empty name or over-long bio.
            NotFoundError:   unknown *user_id*.
        """
        if not isinstance(data, dict):
            raise ValidationError('Profile body must be a JSON object')
        name = data.get('name')
        if name is not None and not str(name).strip():
            raise ValidationError('name must not be empty')
        bio = data.get('bio')
        if bio is not None and len(str(bio)) > MAX_BIO_LENGTH:
            raise ValidationError(f'bio must be at most {MAX_BIO_LENGTH} characters')
        points = data.get('totalPoints')
        if points is not None:
            try:
                points = int(points)
            except (TypeError, ValueError):
                raise ValidationError('totalPoints must be an integer')
            if points < 0:
                raise ValidationError('totalPoints must not be negative')

        user = self._db.update_user_profile(
            db, user_id,
            name=str(name).strip() if name is not None else None,
            display_name=data.get('displayName'),
            bio=bio,
            avatar=data.get('avatar'),
            total_points=points,
        )
        if user is None:
            raise NotFoundError('User not found')
        return self._db.user_to_dict(user)
