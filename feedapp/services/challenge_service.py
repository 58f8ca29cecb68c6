"""Business logic for sprint challenges."""
import datetime
from typing import Dict, List, Optional

from ..errors import DatabaseUnavailableError, NotFoundError, ValidationError


def _parse_date(value, field: str) -> Optional[datetime.datetime]:
    if value in (None, ''):
        return None
    try:
        parsed = datetime.datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'{field} must be an ISO-8601 date')
    # Stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


class ChallengeService:
    """Manages challenges, delegating persistence to the ``database``
    module's helper functions.

    Rules
    -----
    * ``type`` is one of ``threshold_unlock``, ``leaderboard``, ``timed``.
    * ``status`` is one of ``upcoming``, ``live``, ``completed``.
    * ``threshold_unlock`` challenges need a positive ``threshold`` and
      complete automatically once progress reaches it.
    * ``endDate`` may not precede ``startDate``.
    """

    def __init__(self, db_module) -> None:
        self._db = db_module

    def list(self, db, status: str = None) -> List[Dict]:
        """Return challenges, optionally only those with *status*."""
        if status and status not in self._db.CHALLENGE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(self._db.CHALLENGE_STATUSES)}")
        return [self._db.challenge_to_dict(c)
                for c in self._db.get_challenges(db, status=status)]

    def get(self, db, challenge_id: str) -> Optional[Dict]:
        challenge = self._db.get_challenge(db, challenge_id)
        return self._db.challenge_to_dict(challenge) if challenge else None

    def create(self, db, data: Dict) -> Dict:
        """Validate camelCase *data* and insert a challenge."""
        if not isinstance(data, dict):
            raise ValidationError('Challenge body must be a JSON object')
        name = str(data.get('name') or '').strip()
        if not name:
            raise ValidationError('name is required')
        challenge_type = data.get('type', 'threshold_unlock')
        if challenge_type not in self._db.CHALLENGE_TYPES:
            raise ValidationError(
                f"type must be one of: {', '.join(self._db.CHALLENGE_TYPES)}")
        status = data.get('status', 'upcoming')
        if status not in self._db.CHALLENGE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(self._db.CHALLENGE_STATUSES)}")

        threshold = data.get('threshold')
        if threshold is not None:
            try:
                threshold = int(threshold)
            except (TypeError, ValueError):
                raise ValidationError('threshold must be an integer')
        if challenge_type == 'threshold_unlock' and (threshold is None or threshold <= 0):
            raise ValidationError('threshold_unlock challenges need a positive threshold')

        start = _parse_date(data.get('startDate'), 'startDate')
        end = _parse_date(data.get('endDate'), 'endDate')
        if start and end and end < start:
            raise ValidationError('endDate must not be before startDate')

        rules = data.get('rules') or []
        if not isinstance(rules, list):
            raise ValidationError('rules must be a list of strings')

        challenge = self._db.create_challenge(
            db, name,
            description=data.get('description', ''),
            challenge_type=challenge_type,
            status=status,
            start_date=start,
            end_date=end,
            threshold=threshold,
            prize=data.get('prize'),
            rules=[str(r) for r in rules],
            image_url=data.get('imageUrl'),
        )
        if challenge is None:
            raise DatabaseUnavailableError('Could not save challenge')
        return self._db.challenge_to_dict(challenge)

    def record_progress(self, db, challenge_id: str, amount: int,
                        joined: bool = False) -> Dict:
        """Add *amount* of progress; completed challenges are rejected."""
        try:
            amount = int(amount)
        except (TypeError, ValueError):
            raise ValidationError('amount must be an integer')
        if amount < 0:
            raise ValidationError('amount must not be negative')
        current = self._db.get_challenge(db, challenge_id)
        if current is None:
            raise NotFoundError('Challenge not found')
        if current.status == 'completed':
            raise ValidationError('Challenge is already completed')
        challenge = self._db.add_challenge_progress(db, challenge_id, amount, joined=joined)
        if challenge is None:
            raise NotFoundError('Challenge not found')
        return self._db.challenge_to_dict(challenge)
