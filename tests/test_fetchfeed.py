#!/usr/bin/env python3
"""
Tests for fetchfeed.py: configuration loading, FetchFeed wiring and the CLI.

Run with:
    python -m pytest tests/test_fetchfeed.py
"""
import contextlib
import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import fetchfeed
from weather_client import WeatherAPIError

# Env vars that would leak into load_config from the developer's shell
_CLEAN_ENV = {name: '' for name in fetchfeed._ENV_OVERRIDES}


class TmpDirMixin(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)

    def _write_config(self, data) -> str:
        path = self._path('config.json')
        with open(path, 'w', encoding='utf-8') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path


# ===========================================================================
# load_config
# ===========================================================================

@patch.dict(os.environ, _CLEAN_ENV)
class TestLoadConfig(TmpDirMixin):

    def test_defaults_when_file_missing(self):
        config = fetchfeed.load_config(self._path('missing.json'))
        self.assertEqual(config['port'], 3000)
        self.assertEqual(config['data_file'], 'posts.json')
        self.assertEqual(config['leaderboard_size'], 20)

    def test_file_overrides_defaults(self):
        path = self._write_config({'port': 4000, 'seed_posts': False})
        config = fetchfeed.load_config(path)
        self.assertEqual(config['port'], 4000)
        self.assertFalse(config['seed_posts'])
        self.assertEqual(config['host'], '127.0.0.1')

    def test_env_overrides_file(self):
        path = self._write_config({'port': 4000})
        with patch.dict(os.environ, {'FETCHFEED_PORT': '5050',
                                     'FETCHFEED_DATA_FILE': '/data/feed.json'}):
            config = fetchfeed.load_config(path)
        self.assertEqual(config['port'], 5050)
        self.assertEqual(config['data_file'], '/data/feed.json')

    def test_invalid_json(self):
        path = self._write_config('{not json')
        with self.assertRaises(ValueError):
            fetchfeed.load_config(path)

    def test_non_object_json(self):
        path = self._write_config([1, 2, 3])
        with self.assertRaises(ValueError):
            fetchfeed.load_config(path)

    def test_bad_env_value(self):
        with patch.dict(os.environ, {'FETCHFEED_PORT': 'eighty'}):
            with self.assertRaises(ValueError):
                fetchfeed.load_config(None)

    def test_defaults_not_mutated(self):
        path = self._write_config({'port': 1})
        fetchfeed.load_config(path)
        self.assertEqual(fetchfeed.DEFAULT_CONFIG['port'], 3000)


# ===========================================================================
# FetchFeed wiring
# ===========================================================================

class TestFetchFeed(TmpDirMixin):

    def test_services_share_one_repository(self):
        feed = fetchfeed.FetchFeed({'data_file': self._path('posts.json')})
        post = feed.post_service.create({'name': 'Alex', 'points': 99})
        feed.comment_service.add(post['id'], {'text': 'hi'})
        self.assertEqual(feed.leaderboard_service.get_rankings()[0]['username'], 'Alex')
        self.assertEqual(feed.post_service.get(post['id'])['initialComments'], 1)

    def test_seed_posts_flag(self):
        feed = fetchfeed.FetchFeed({'data_file': self._path('posts.json'),
                                    'seed_posts': False})
        self.assertEqual(feed.post_service.list_posts(), [])

    def test_weather_client_from_config(self):
        feed = fetchfeed.FetchFeed({'data_file': self._path('posts.json'),
                                    'weather_api_url': 'https://weather.test/f',
                                    'api_timeout_seconds': 2})
        self.assertEqual(feed.weather_client._base_url, 'https://weather.test/f')
        self.assertEqual(feed.weather_client._timeout, 2)


# ===========================================================================
# CLI
# ===========================================================================

@patch.dict(os.environ, _CLEAN_ENV)
class TestCli(TmpDirMixin):

    def setUp(self):
        super().setUp()
        self.config_path = self._write_config({'data_file': self._path('posts.json')})

    def _run(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = fetchfeed.main(['--config', self.config_path] + list(argv))
        return code, out.getvalue()

    def test_no_command_prints_help(self):
        code, output = self._run()
        self.assertEqual(code, 1)
        self.assertIn('usage', output.lower())

    def test_posts(self):
        code, output = self._run('posts', '--limit', '2')
        self.assertEqual(code, 0)
        self.assertIn('Emily S.', output)
        self.assertIn('Marcus T.', output)
        self.assertNotIn('Sarah L.', output)

    def test_leaderboard(self):
        code, output = self._run('leaderboard')
        self.assertEqual(code, 0)
        self.assertIn('Marcus T.', output)
        self.assertIn('👑', output)

    def test_roast(self):
        code, output = self._run('roast')
        self.assertEqual(code, 0)
        self.assertIn('Target', output)

    def test_weather(self):
        payload = {"latitude": 1, "longitude": 2, "timezone": "UTC",
                   "daily": {"time": ["2025-03-01"], "temperature_2m_max": [5],
                             "temperature_2m_min": [1],
                             "precipitation_probability_max": [30],
                             "weather_code": [61]}}
        with patch('weather_client.WeatherClient.get_forecast', return_value=payload):
            code, output = self._run('weather', '--lat', '1', '--lon', '2')
        self.assertEqual(code, 0)
        self.assertIn('Light rain', output)

    def test_weather_failure(self):
        with patch('weather_client.WeatherClient.get_forecast',
                   side_effect=WeatherAPIError('HTTP 500')):
            code, output = self._run('weather', '--lat', '1', '--lon', '2')
        self.assertEqual(code, 1)
        self.assertIn('Could not fetch weather', output)

    def test_bad_config(self):
        self._write_config('{oops')
        code, output = self._run('posts')
        self.assertEqual(code, 1)
        self.assertIn('Error', output)

    def test_serve_delegates_to_server(self):
        with patch('fetchfeed_server.main', return_value=0) as serve:
            code, _ = self._run('serve', '--port', '8080')
        self.assertEqual(code, 0)
        self.assertEqual(serve.call_args[1]['port'], 8080)


if __name__ == '__main__':
    unittest.main()
