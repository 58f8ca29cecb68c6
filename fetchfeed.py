#!/usr/bin/env python3
"""
FetchFeed - Fetch Student Sprint social feed backend
Posts, nested comment threads, likes, receipt roasts, leaderboards and a
weather map, served over a small JSON REST API.
"""

import json
import logging
import os
import sys
import argparse
from typing import Dict, Optional
from colorama import init, Fore, Style

from feedapp.repositories import PostRepository
from feedapp.services import (
    PostService, CommentService, RoastService, ReceiptService,
    LeaderboardService, UserService, ChallengeService, MapService,
)
from weather_client import WeatherClient, WeatherAPIError, DEFAULT_BASE_URL, daily_rows

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root FetchFeed logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('fetchfeed')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


# Module-level logger used throughout fetchfeed.py
logger = setup_logging(os.getenv('FETCHFEED_LOG_LEVEL', 'WARNING'))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict = {
    'data_file': 'posts.json',
    'seed_posts': True,
    'host': '127.0.0.1',
    'port': 3000,
    'log_level': 'WARNING',
    'weather_api_url': DEFAULT_BASE_URL,
    'api_timeout_seconds': 10,
    'leaderboard_size': 20,
}

# Environment variable -> (config key, converter)
_ENV_OVERRIDES = {
    'FETCHFEED_DATA_FILE': ('data_file', str),
    'FETCHFEED_HOST': ('host', str),
    'FETCHFEED_PORT': ('port', int),
    'FETCHFEED_LOG_LEVEL': ('log_level', str),
    'WEATHER_API_URL': ('weather_api_url', str),
}


def load_config(config_path: Optional[str] = 'config.json') -> Dict:
    """Load configuration with environment variable support.

    Values come from, in increasing precedence: :data:`DEFAULT_CONFIG`,
    the JSON file at *config_path* (optional; a missing file is fine), and
    the environment variables listed in ``_ENV_OVERRIDES``.

    Raises:
        ValueError: The config file exists but is not a JSON object, or an
            environment override cannot be converted.
    """
    config = dict(DEFAULT_CONFIG)
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing config file {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ValueError(f"Config file {config_path} must contain a JSON object")
        config.update(file_config)

    for env_name, (key, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw:
            try:
                config[key] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e
    return config


# ---------------------------------------------------------------------------
# Integration point
# ---------------------------------------------------------------------------

class FetchFeed:
    """Wires repositories and services together from one config dict.

    Route handlers and the CLI use the public service attributes
    (``post_service``, ``comment_service`` ...) instead of touching
    repositories directly.  The user and challenge services are bound to
    the ``database`` module; pass *db_module* to swap it out.
    """

    def __init__(self, config: Optional[Dict] = None, db_module=None,
                 weather_client=None):
        self._log = logging.getLogger('fetchfeed.app')
        self.config = dict(DEFAULT_CONFIG, **(config or {}))

        # Re-apply log level from config (allows "log_level": "DEBUG" in config.json)
        setup_logging(self.config.get('log_level', 'WARNING'))

        self.post_repository = PostRepository(self.config['data_file'],
                                              seed=self.config.get('seed_posts', True))
        self.post_service = PostService(self.post_repository)
        self.comment_service = CommentService(self.post_repository)
        self.leaderboard_service = LeaderboardService(self.post_repository)
        self.roast_service = RoastService()
        self.receipt_service = ReceiptService()

        if weather_client is None:
            weather_client = WeatherClient(
                base_url=self.config['weather_api_url'],
                timeout=self.config.get('api_timeout_seconds', 10),
            )
        self.weather_client = weather_client
        self.map_service = MapService(weather_client)

        if db_module is None:
            import database as db_module
        self.db = db_module
        self.user_service = UserService(db_module)
        self.challenge_service = ChallengeService(db_module)

        self._log.info("FetchFeed ready (data file: %s)", self.post_repository.path)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _print_posts(feed: FetchFeed, limit: int) -> None:
    posts = feed.post_service.list_posts()
    if not posts:
        print(f"{Fore.YELLOW}The feed is empty.")
        return
    for post in posts[:limit]:
        comments = post.get('initialComments', 0)
        print(f"{Fore.CYAN}{Style.BRIGHT}{post.get('name', '?')}"
              f"{Style.RESET_ALL} {Fore.WHITE}{post.get('subline', '')}")
        print(f"  {post.get('caption', '')}")
        print(f"  {Fore.MAGENTA}♥ {post.get('initialLikes', 0)}  "
              f"💬 {comments}  {Fore.GREEN}+{post.get('points', 0)} pts"
              f"{Style.DIM}  [{post['id']}]")


def _print_leaderboard(feed: FetchFeed, limit: int) -> None:
    entries = feed.leaderboard_service.get_rankings(limit=limit)
    print(f"{Fore.CYAN}{Style.BRIGHT}{'Rank':<6}{'User':<24}{'Points':>8}{'Flips':>8}")
    for entry in entries:
        crown = ' 👑' if entry['crowns'] else ''
        print(f"{entry['rank']:<6}{entry['username']:<24}"
              f"{Fore.GREEN}{entry['points']:>8}{Style.RESET_ALL}{entry['flipsCount']:>8}{crown}")


def _print_roasts(feed: FetchFeed) -> None:
    receipt = feed.receipt_service.next_receipt()
    summary = feed.receipt_service.summarize(receipt)
    print(f"{Fore.CYAN}{Style.BRIGHT}{summary['storeName']}{Style.RESET_ALL} "
          f"receipt: {len(summary['items'])} items, ${summary['totalPrice']:.2f}, "
          f"{Fore.GREEN}{summary['totalPoints']} pts")
    for roast in feed.roast_service.generate(summary['items']):
        print(f"  {roast['emoji']}  {roast['text']}")


def _print_weather(feed: FetchFeed, lat: float, lon: float) -> int:
    try:
        forecast = feed.weather_client.get_forecast(lat, lon)
    except ValueError as e:
        print(f"{Fore.RED}Error: {e}")
        return 2
    except WeatherAPIError as e:
        print(f"{Fore.RED}Could not fetch weather: {e}")
        return 1
    print(f"{Fore.CYAN}{Style.BRIGHT}Forecast for {forecast.get('latitude')}, "
          f"{forecast.get('longitude')} ({forecast.get('timezone', '?')})")
    for row in daily_rows(forecast):
        print(f"  {row['date']}  {Fore.RED}{str(row['high']):>6}°{Style.RESET_ALL} / "
              f"{Fore.BLUE}{str(row['low']):>6}°{Style.RESET_ALL}  "
              f"rain {row['precipitation_probability']}%  {row['summary']}")
    return 0


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='FetchFeed - Fetch Student Sprint feed backend',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 fetchfeed.py serve                       # Run the REST API
  python3 fetchfeed.py posts --limit 5             # Show the latest posts
  python3 fetchfeed.py roast                       # Roast the next mock receipt
  python3 fetchfeed.py leaderboard                 # Show the points leaderboard
  python3 fetchfeed.py weather --lat 43.07 --lon -89.40
        """
    )
    parser.add_argument(
        '--config', '-c',
        default='config.json',
        help='Path to config file (default: config.json)'
    )
    sub = parser.add_subparsers(dest='command')

    serve = sub.add_parser('serve', help='Run the REST API server')
    serve.add_argument('--host', help='Bind address (default from config)')
    serve.add_argument('--port', type=int, help='Port (default from config)')
    serve.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

    posts = sub.add_parser('posts', help='List posts in the feed')
    posts.add_argument('--limit', type=int, default=10, help='Posts to show (default: 10)')

    sub.add_parser('roast', help='Roast the next mock receipt')

    board = sub.add_parser('leaderboard', help='Show the points leaderboard')
    board.add_argument('--limit', type=int, default=10, help='Entries to show (default: 10)')

    weather = sub.add_parser('weather', help='Show the daily forecast for a location')
    weather.add_argument('--lat', type=float, required=True, help='Latitude')
    weather.add_argument('--lon', type=float, required=True, help='Longitude')

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"{Fore.RED}Error: {e}")
        return 1

    if args.command == 'serve':
        import fetchfeed_server
        return fetchfeed_server.main(config, host=args.host, port=args.port,
                                     debug=args.debug)

    feed = FetchFeed(config)
    if args.command == 'posts':
        _print_posts(feed, args.limit)
    elif args.command == 'roast':
        _print_roasts(feed)
    elif args.command == 'leaderboard':
        _print_leaderboard(feed, args.limit)
    elif args.command == 'weather':
        return _print_weather(feed, args.lat, args.lon)
    return 0


if __name__ == "__main__":
    sys.exit(main())
