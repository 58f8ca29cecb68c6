#!/usr/bin/env python3
"""
Unit tests for feedapp/repositories.

Run with:
    python -m pytest tests/test_repositories.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from feedapp.repositories import PostRepository


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory for each test and cd's into it."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self._orig = os.getcwd()
        os.chdir(self.tmp)

    def tearDown(self):
        os.chdir(self._orig)
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)


class TestPostRepositorySeeding(TmpDirMixin):

    def test_new_file_is_seeded_with_demo_posts(self):
        repo = PostRepository(self._path('posts.json'))
        posts = repo.all()
        self.assertEqual([p['id'] for p in posts], ['1', '2', '3', '4'])
        self.assertEqual(posts[1]['name'], 'Marcus T.')
        self.assertEqual(posts[1]['initialLikes'], 42)

    def test_seed_posts_start_unliked_without_comments(self):
        for post in PostRepository(self._path('posts.json')).all():
            self.assertFalse(post['isLiked'])
            self.assertEqual(post['comments'], [])

    def test_new_file_written_immediately(self):
        path = self._path('posts.json')
        PostRepository(path)
        self.assertTrue(os.path.exists(path))
        with open(path, encoding='utf-8') as f:
            self.assertEqual(len(json.load(f)['posts']), 4)

    def test_seed_disabled_starts_empty(self):
        repo = PostRepository(self._path('posts.json'), seed=False)
        self.assertEqual(repo.all(), [])

    def test_existing_file_is_not_reseeded(self):
        path = self._path('posts.json')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({'posts': [{'id': 'x', 'name': 'Solo'}]}, f)
        repo = PostRepository(path)
        self.assertEqual([p['id'] for p in repo.all()], ['x'])

    def test_corrupt_file_serves_defaults_and_is_left_alone(self):
        path = self._path('posts.json')
        with open(path, 'w') as f:
            f.write('NOT JSON')
        repo = PostRepository(path)
        self.assertEqual(len(repo.all()), 4)
        with open(path) as f:
            self.assertEqual(f.read(), 'NOT JSON')

    def test_wrong_shape_falls_back_to_defaults(self):
        path = self._path('posts.json')
        with open(path, 'w') as f:
            json.dump(['not', 'a', 'dict'], f)
        repo = PostRepository(path, seed=False)
        self.assertEqual(repo.all(), [])

    def test_creates_missing_directory(self):
        path = self._path(os.path.join('nested', 'dir', 'posts.json'))
        PostRepository(path, seed=False)
        self.assertTrue(os.path.exists(path))


class TestPostRepositoryCrud(TmpDirMixin):

    def _make(self):
        return PostRepository(self._path('posts.json'), seed=False)

    def test_insert_first_puts_post_at_front(self):
        repo = self._make()
        repo.insert_first({'id': 'a'})
        repo.insert_first({'id': 'b'})
        self.assertEqual([p['id'] for p in repo.all()], ['b', 'a'])

    def test_find_by_id(self):
        repo = self._make()
        repo.insert_first({'id': 'a', 'caption': 'hi'})
        self.assertEqual(repo.find('a')['caption'], 'hi')

    def test_find_missing_returns_none(self):
        self.assertIsNone(self._make().find('nope'))

    def test_find_returns_copy(self):
        repo = self._make()
        repo.insert_first({'id': 'a', 'comments': []})
        repo.find('a')['comments'].append({'id': 'c'})
        self.assertEqual(repo.find('a')['comments'], [])

    def test_all_returns_copy(self):
        repo = self._make()
        repo.insert_first({'id': 'a'})
        repo.all().clear()
        self.assertEqual(len(repo.all()), 1)

    def test_replace(self):
        repo = self._make()
        repo.insert_first({'id': 'a', 'caption': 'old'})
        self.assertTrue(repo.replace('a', {'id': 'a', 'caption': 'new'}))
        self.assertEqual(repo.find('a')['caption'], 'new')

    def test_replace_missing_returns_false(self):
        self.assertFalse(self._make().replace('nope', {'id': 'nope'}))

    def test_remove_returns_post(self):
        repo = self._make()
        repo.insert_first({'id': 'a'})
        self.assertEqual(repo.remove('a')['id'], 'a')
        self.assertIsNone(repo.find('a'))

    def test_remove_missing_returns_none(self):
        self.assertIsNone(self._make().remove('nope'))

    def test_persisted_across_instances(self):
        path = self._path('posts.json')
        PostRepository(path, seed=False).insert_first({'id': 'a'})
        self.assertIsNotNone(PostRepository(path).find('a'))

    def test_numeric_ids_match_strings(self):
        repo = self._make()
        repo.insert_first({'id': 7})
        self.assertIsNotNone(repo.find('7'))


class TestTransactions(TmpDirMixin):

    def _make(self):
        return PostRepository(self._path('posts.json'), seed=False)

    def test_failed_transaction_writes_nothing(self):
        repo = self._make()
        path = repo.path
        with open(path, encoding='utf-8') as f:
            before = f.read()
        with self.assertRaises(RuntimeError):
            with repo.transaction() as data:
                data['posts'].append({'id': 'ghost'})
                raise RuntimeError('boom')
        with open(path, encoding='utf-8') as f:
            self.assertEqual(f.read(), before)
        self.assertIsNone(repo.find('ghost'))

    def test_failed_save_rolls_back_memory(self):
        repo = self._make()
        repo.insert_first({'id': 'kept'})
        with patch.object(repo, '_save', side_effect=OSError('disk full')):
            with self.assertRaises(OSError):
                repo.insert_first({'id': 'unsaved'})
            with self.assertRaises(OSError):
                repo.remove('kept')
        self.assertEqual([p['id'] for p in repo.all()], ['kept'])

    def test_failed_outer_transaction_undoes_nested_writes(self):
        repo = self._make()
        with self.assertRaises(RuntimeError):
            with repo.transaction():
                repo.insert_first({'id': 'a'})
                raise RuntimeError('boom')
        self.assertEqual(repo.all(), [])

    def test_nested_transaction_saves_once(self):
        repo = self._make()
        with patch.object(repo, '_save', wraps=repo._save) as spy:
            with repo.transaction():
                repo.insert_first({'id': 'a'})
                repo.insert_first({'id': 'b'})
            self.assertEqual(spy.call_count, 1)

    def test_no_temp_files_left_behind(self):
        repo = self._make()
        repo.insert_first({'id': 'a'})
        leftovers = [n for n in os.listdir(self.tmp) if n.endswith('.tmp')]
        self.assertEqual(leftovers, [])

    def test_unicode_written_verbatim(self):
        repo = self._make()
        repo.insert_first({'id': 'a', 'caption': 'Meal prep 🥗'})
        with open(repo.path, encoding='utf-8') as f:
            self.assertIn('🥗', f.read())


if __name__ == '__main__':
    unittest.main()
