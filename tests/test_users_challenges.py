#!/usr/bin/env python3
"""
Tests for the SQL-backed user profiles and challenges:
  - database helper functions
  - UserService / ChallengeService validation

Run with:
    python -m pytest tests/test_users_challenges.py
"""
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from feedapp.errors import NotFoundError, ValidationError
from feedapp.services import ChallengeService, UserService
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


# ---------------------------------------------------------------------------
# In-memory DB helper
# ---------------------------------------------------------------------------

def _make_session():
    engine = create_engine('sqlite:///:memory:', connect_args={"check_same_thread": False})
    database.Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


class _DBCase(unittest.TestCase):

    def setUp(self):
        self.db = _make_session()

    def tearDown(self):
        self.db.close()


# ===========================================================================
# database helpers
# ===========================================================================

class TestUserHelpers(_DBCase):

    def test_create_and_get(self):
        user = database.create_user(self.db, ' Alex@Example.com ', ' Alex ')
        self.assertEqual(user.email, 'alex@example.com')
        self.assertEqual(database.get_user(self.db, user.id).name, 'Alex')

    def test_get_by_email_case_insensitive(self):
        database.create_user(self.db, 'alex@example.com', 'Alex')
        self.assertIsNotNone(database.get_user_by_email(self.db, 'ALEX@example.com'))

    def test_duplicate_email_returns_none(self):
        database.create_user(self.db, 'alex@example.com', 'Alex')
        self.assertIsNone(database.create_user(self.db, 'alex@example.com', 'Other'))

    def test_update_profile_skips_none(self):
        user = database.create_user(self.db, 'alex@example.com', 'Alex')
        database.update_user_profile(self.db, user.id, bio='Hi', name=None)
        refreshed = database.get_user(self.db, user.id)
        self.assertEqual(refreshed.bio, 'Hi')
        self.assertEqual(refreshed.name, 'Alex')

    def test_update_missing_user(self):
        self.assertIsNone(database.update_user_profile(self.db, 'nope', bio='x'))

    def test_delete_user(self):
        user = database.create_user(self.db, 'alex@example.com', 'Alex')
        self.assertTrue(database.delete_user(self.db, user.id))
        self.assertFalse(database.delete_user(self.db, user.id))

    def test_user_to_dict_camel_case(self):
        user = database.create_user(self.db, 'alex@example.com', 'Alex')
        data = database.user_to_dict(user)
        self.assertEqual(data['displayName'], 'Alex')
        self.assertEqual(data['totalPoints'], 0)
        self.assertIn('createdAt', data)

    def test_helpers_tolerate_missing_session(self):
        self.assertIsNone(database.get_user(None, 'x'))
        self.assertEqual(database.get_all_users(None), [])
        self.assertIsNone(database.create_challenge(None, 'x'))


class TestChallengeHelpers(_DBCase):

    def test_rules_round_trip_as_list(self):
        c = database.create_challenge(self.db, 'Sprint', rules=['Scan 5 receipts'])
        self.assertEqual(database.challenge_to_dict(c)['rules'], ['Scan 5 receipts'])

    def test_filter_by_status(self):
        database.create_challenge(self.db, 'A', status='live')
        database.create_challenge(self.db, 'B', status='upcoming')
        live = database.get_challenges(self.db, status='live')
        self.assertEqual([c.name for c in live], ['A'])

    def test_progress_completes_threshold_challenge(self):
        c = database.create_challenge(self.db, 'Unlock', threshold=10, status='live')
        database.add_challenge_progress(self.db, c.id, 6, joined=True)
        updated = database.add_challenge_progress(self.db, c.id, 4)
        self.assertEqual(updated.current_progress, 10)
        self.assertEqual(updated.participants, 1)
        self.assertEqual(updated.status, 'completed')

    def test_progress_on_leaderboard_challenge_never_completes(self):
        c = database.create_challenge(self.db, 'Top', challenge_type='leaderboard',
                                      threshold=1, status='live')
        updated = database.add_challenge_progress(self.db, c.id, 100)
        self.assertEqual(updated.status, 'live')

    def test_progress_missing(self):
        self.assertIsNone(database.add_challenge_progress(self.db, 'nope', 1))


# ===========================================================================
# Services
# ===========================================================================

class TestUserService(_DBCase):

    def setUp(self):
        super().setUp()
        self.service = UserService(database)

    def test_create(self):
        user = self.service.create(self.db, 'Sam@Example.com', 'Sam')
        self.assertEqual(user['email'], 'sam@example.com')
        self.assertEqual(len(self.service.get_all(self.db)), 1)

    def test_create_rejects_bad_email(self):
        for email in ('', 'nope', 'a@b', 'a b@c.d'):
            with self.assertRaises(ValidationError):
                self.service.create(self.db, email, 'Sam')

    def test_create_rejects_empty_name(self):
        with self.assertRaises(ValidationError):
            self.service.create(self.db, 'sam@example.com', '   ')

    def test_create_rejects_duplicate(self):
        self.service.create(self.db, 'sam@example.com', 'Sam')
        with self.assertRaises(ValidationError):
            self.service.create(self.db, 'SAM@example.com', 'Sammy')

    def test_get_missing(self):
        self.assertIsNone(self.service.get(self.db, 'nope'))

    def test_update_profile(self):
        user = self.service.create(self.db, 'sam@example.com', 'Sam')
        updated = self.service.update_profile(self.db, user['id'], {
            'displayName': 'Sammy', 'bio': 'Receipt hoarder', 'totalPoints': '120',
        })
        self.assertEqual(updated['displayName'], 'Sammy')
        self.assertEqual(updated['bio'], 'Receipt hoarder')
        self.assertEqual(updated['totalPoints'], 120)

    def test_update_profile_validation(self):
        user = self.service.create(self.db, 'sam@example.com', 'Sam')
        for bad in ({'name': ' '}, {'bio': 'x' * 501}, {'totalPoints': -1},
                    {'totalPoints': 'lots'}):
            with self.assertRaises(ValidationError):
                self.service.update_profile(self.db, user['id'], bad)

    def test_update_missing_user(self):
        with self.assertRaises(NotFoundError):
            self.service.update_profile(self.db, 'nope', {'bio': 'hi'})


class TestChallengeService(_DBCase):

    def setUp(self):
        super().setUp()
        self.service = ChallengeService(database)

    def _create(self, **overrides):
        data = {'name': 'Scan Sprint', 'type': 'threshold_unlock', 'threshold': 100,
                'status': 'live', 'startDate': '2025-03-01T00:00:00Z',
                'endDate': '2025-03-08T00:00:00Z', 'rules': ['Scan receipts']}
        data.update(overrides)
        return self.service.create(self.db, data)

    def test_create(self):
        challenge = self._create()
        self.assertEqual(challenge['type'], 'threshold_unlock')
        self.assertEqual(challenge['startDate'], '2025-03-01T00:00:00')
        self.assertEqual(challenge['rules'], ['Scan receipts'])

    def test_create_validation(self):
        for bad in ({'name': ''}, {'type': 'raffle'}, {'status': 'paused'},
                    {'threshold': None}, {'threshold': 0}, {'threshold': 'ten'},
                    {'startDate': 'soon'}, {'endDate': '2025-02-01T00:00:00Z'},
                    {'rules': 'not a list'}):
            with self.assertRaises(ValidationError, msg=str(bad)):
                self._create(**bad)

    def test_leaderboard_challenge_needs_no_threshold(self):
        challenge = self._create(type='leaderboard', threshold=None)
        self.assertIsNone(challenge['threshold'])

    def test_list_by_status(self):
        self._create(name='Live one')
        self._create(name='Later', status='upcoming')
        names = [c['name'] for c in self.service.list(self.db, status='upcoming')]
        self.assertEqual(names, ['Later'])
        self.assertEqual(len(self.service.list(self.db)), 2)

    def test_list_rejects_unknown_status(self):
        with self.assertRaises(ValidationError):
            self.service.list(self.db, status='paused')

    def test_get(self):
        challenge = self._create()
        self.assertEqual(self.service.get(self.db, challenge['id'])['name'], 'Scan Sprint')
        self.assertIsNone(self.service.get(self.db, 'nope'))

    def test_record_progress(self):
        challenge = self._create()
        updated = self.service.record_progress(self.db, challenge['id'], 40, joined=True)
        self.assertEqual(updated['currentProgress'], 40)
        self.assertEqual(updated['participants'], 1)

    def test_record_progress_completes_then_rejects(self):
        challenge = self._create(threshold=10)
        done = self.service.record_progress(self.db, challenge['id'], 10)
        self.assertEqual(done['status'], 'completed')
        with self.assertRaises(ValidationError):
            self.service.record_progress(self.db, challenge['id'], 1)

    def test_record_progress_validation(self):
        challenge = self._create()
        with self.assertRaises(ValidationError):
            self.service.record_progress(self.db, challenge['id'], -5)
        with self.assertRaises(NotFoundError):
            self.service.record_progress(self.db, 'nope', 1)


if __name__ == '__main__':
    unittest.main()
