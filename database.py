#!/usr/bin/env python3
"""
Database models and configuration for FetchFeed.
Handles SQL storage for user accounts/profiles and sprint challenges.
"""

import os
import json
import uuid
from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime
import logging

logger = logging.getLogger('fetchfeed.database')

# Database URL - any SQLAlchemy URL works; SQLite keeps local runs simple
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///fetchfeed.db')

CHALLENGE_TYPES = ('threshold_unlock', 'leaderboard', 'timed')
CHALLENGE_STATUSES = ('upcoming', 'live', 'completed')

Base = declarative_base()

try:
    engine = create_engine(DATABASE_URL, echo=False)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
except Exception as e:
    logger.warning(f"Database engine not available: {e}")
    engine = None
    SessionLocal = None


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """User account with public profile fields."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    bio = Column(String(500), nullable=True)
    avatar = Column(String(1000), nullable=True)
    total_points = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Challenge(Base):
    """A sprint challenge users can join (threshold, leaderboard or timed)."""
    __tablename__ = "challenges"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, default='')
    type = Column(String(50), default='threshold_unlock')
    status = Column(String(20), default='upcoming', index=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    current_progress = Column(Integer, default=0)
    threshold = Column(Integer, nullable=True)
    prize = Column(String(500), nullable=True)
    rules = Column(Text, default='[]')  # JSON array of strings
    participants = Column(Integer, default=0)
    image_url = Column(String(1000), nullable=True)


def get_db():
    """Get database session."""
    if SessionLocal:
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()
    else:
        yield None


def init_db():
    """Initialize database tables."""
    if engine:
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables initialized successfully")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            return False
    return False


def _iso(value):
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Serialise a :class:`User` row to the camelCase API shape."""
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'displayName': user.display_name or user.name,
        'bio': user.bio or '',
        'avatar': user.avatar,
        'totalPoints': user.total_points or 0,
        'createdAt': _iso(user.created_at),
        'updatedAt': _iso(user.updated_at),
    }


def get_user(db, user_id: str):
    """Get user by id."""
    if not db:
        return None
    try:
        return db.query(User).filter(User.id == user_id).first()
    except Exception as e:
        logger.error(f"Error getting user: {e}")
        return None


def get_user_by_email(db, email: str):
    """Get user by (case-insensitive) email."""
    if not db:
        return None
    try:
        return db.query(User).filter(User.email == email.strip().lower()).first()
    except Exception as e:
        logger.error(f"Error getting user by email: {e}")
        return None


def create_user(db, email: str, name: str):
    """Create a user.

    Returns:
        The new :class:`User`, or ``None`` on failure (e.g. duplicate email).
    """
    if not db:
        return None
    try:
        user = User(email=email.strip().lower(), name=name.strip())
        db.add(user)
        db.commit()
        return user
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        db.rollback()
        return None


def get_all_users(db):
    """Get all users ordered by creation time."""
    if not db:
        return []
    try:
        return db.query(User).order_by(User.created_at).all()
    except Exception as e:
        logger.error(f"Error getting all users: {e}")
        return []


def update_user_profile(db, user_id: str, **fields):
    """Update editable profile fields; ``None`` values are left unchanged.

    Accepted keys: ``name``, ``display_name``, ``bio``, ``avatar``,
    ``total_points``.

    Returns:
        The updated :class:`User`, or ``None`` if missing or on failure.
    """
    if not db:
        return None
    allowed = ('name', 'display_name', 'bio', 'avatar', 'total_points')
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            return None
        for key in allowed:
            if fields.get(key) is not None:
                setattr(user, key, fields[key])
        user.updated_at = datetime.utcnow()
        db.commit()
        return user
    except Exception as e:
        logger.error(f"Error updating user profile: {e}")
        db.rollback()
        return None


def delete_user(db, user_id: str):
    """Delete a user from the database."""
    if not db:
        return False
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user:
            db.delete(user)
            db.commit()
            return True
        return False
    except Exception as e:
        logger.error(f"Error deleting user: {e}")
        db.rollback()
        return False


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------

def challenge_to_dict(challenge: Challenge) -> dict:
    """Serialise a :class:`Challenge` row to the camelCase API shape."""
    try:
        rules = json.loads(challenge.rules or '[]')
    except ValueError:
        rules = []
    return {
        'id': challenge.id,
        'name': challenge.name,
        'description': challenge.description or '',
        'type': challenge.type,
        'status': challenge.status,
        'startDate': _iso(challenge.start_date),
        'endDate': _iso(challenge.end_date),
        'currentProgress': challenge.current_progress or 0,
        'threshold': challenge.threshold,
        'prize': challenge.prize,
        'rules': rules,
        'participants': challenge.participants or 0,
        'imageUrl': challenge.image_url,
    }


def create_challenge(db, name: str, description: str = '',
                     challenge_type: str = 'threshold_unlock', status: str = 'upcoming',
                     start_date=None, end_date=None, threshold=None,
                     prize=None, rules=None, image_url=None):
    """Insert a challenge and return it, or ``None`` on failure."""
    if not db:
        return None
    try:
        challenge = Challenge(
            name=name,
            description=description,
            type=challenge_type,
            status=status,
            start_date=start_date,
            end_date=end_date,
            threshold=threshold,
            prize=prize,
            rules=json.dumps(list(rules or [])),
            image_url=image_url,
        )
        db.add(challenge)
        db.commit()
        return challenge
    except Exception as e:
        logger.error(f"Error creating challenge: {e}")
        db.rollback()
        return None


def get_challenge(db, challenge_id: str):
    """Get challenge by id."""
    if not db:
        return None
    try:
        return db.query(Challenge).filter(Challenge.id == challenge_id).first()
    except Exception as e:
        logger.error(f"Error getting challenge: {e}")
        return None


def get_challenges(db, status: str = None):
    """Get challenges, optionally filtered by *status*, soonest first."""
    if not db:
        return []
    try:
        query = db.query(Challenge)
        if status:
            query = query.filter(Challenge.status == status)
        return query.order_by(Challenge.start_date, Challenge.name).all()
    except Exception as e:
        logger.error(f"Error getting challenges: {e}")
        return []


def add_challenge_progress(db, challenge_id: str, amount: int, joined: bool = False):
    """Add *amount* to a challenge's progress.

    A threshold challenge flips to ``completed`` once its progress reaches
    the threshold.  *joined* also bumps the participant count.

    Returns:
        The updated :class:`Challenge`, or ``None`` if missing or on failure.
    """
    if not db:
        return None
    try:
        challenge = db.query(Challenge).filter(Challenge.id == challenge_id).first()
        if not challenge:
            return None
        challenge.current_progress = (challenge.current_progress or 0) + int(amount)
        if joined:
            challenge.participants = (challenge.participants or 0) + 1
        if (challenge.type == 'threshold_unlock' and challenge.threshold is not None
                and challenge.current_progress >= challenge.threshold):
            challenge.status = 'completed'
        db.commit()
        return challenge
    except Exception as e:
        logger.error(f"Error updating challenge progress: {e}")
        db.rollback()
        return None
