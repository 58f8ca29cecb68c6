#!/usr/bin/env python3
"""
FetchFeed Server - JSON REST API for the Fetch Student Sprint feed.
Serves posts, nested comments, likes, roasts, receipts, leaderboards,
users, challenges and the weather map to the mobile client.
"""

import contextlib
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import fetchfeed
from feedapp.errors import DatabaseUnavailableError, FeedError, NotFoundError, ValidationError
from openapi_spec import build_spec
from weather_client import WeatherAPIError

load_dotenv()

# Initialize logging early so database module logs are captured
log_level = os.getenv('FETCHFEED_LOG_LEVEL', 'INFO')
fetchfeed.setup_logging(log_level)
server_logger = logging.getLogger('fetchfeed.server')
try:
    os.makedirs('logs', exist_ok=True)
    fh = logging.FileHandler('logs/fetchfeed_server.log')
    fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
    fh.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    server_logger.addHandler(fh)
except OSError:
    server_logger.warning('Could not create log file handler')

app = Flask(__name__)
CORS(app)

# Global feed instance, created on first use
feed: Optional[fetchfeed.FetchFeed] = None
feed_lock = threading.Lock()

# Set once the feed's database tables exist; retried on each request until then
DB_AVAILABLE = False
db_lock = threading.Lock()


def init_feed(config: Optional[Dict] = None, **kwargs) -> fetchfeed.FetchFeed:
    """(Re)build the global :class:`fetchfeed.FetchFeed` from *config*."""
    global feed, DB_AVAILABLE
    with feed_lock:
        feed = fetchfeed.FetchFeed(config or fetchfeed.load_config(), **kwargs)
        DB_AVAILABLE = False
        return feed


def get_feed() -> fetchfeed.FetchFeed:
    """Return the global feed, creating it from the default config if needed."""
    global feed
    current = feed
    if current is not None:
        return current
    with feed_lock:
        if feed is None:
            feed = fetchfeed.FetchFeed(fetchfeed.load_config())
        return feed


def ensure_db_available() -> bool:
    """Create the database tables if that has not succeeded yet."""
    global DB_AVAILABLE
    if DB_AVAILABLE:
        return True
    db_module = get_feed().db
    with db_lock:
        if not DB_AVAILABLE:
            try:
                DB_AVAILABLE = bool(db_module.init_db())
            except Exception as e:
                server_logger.exception('Database init failed: %s', e)
                DB_AVAILABLE = False
            if DB_AVAILABLE:
                server_logger.info('Database initialized successfully')
            else:
                server_logger.warning('Database unavailable')
    return DB_AVAILABLE


@contextlib.contextmanager
def db_session():
    """Yield a database session and always close it.

    Raises:
        DatabaseUnavailableError: the tables could not be created or no
            session could be opened.
    """
    if not ensure_db_available():
        raise DatabaseUnavailableError('Database unavailable')
    db = next(get_feed().db.get_db())
    if db is None:
        raise DatabaseUnavailableError('Database unavailable')
    try:
        yield db
    finally:
        db.close()


def _body() -> Dict:
    """Return the JSON request body, or raise if it is not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ===========================================================================================
# Error handlers
# ===========================================================================================

@app.errorhandler(FeedError)
def handle_feed_error(error: FeedError):
    """Translate domain errors into JSON error bodies."""
    return jsonify({'success': False, 'error': str(error)}), error.status_code


@app.errorhandler(404)
def handle_not_found(_error):
    return jsonify({'success': False, 'error': 'Not found'}), 404


@app.errorhandler(405)
def handle_method_not_allowed(_error):
    return jsonify({'success': False, 'error': 'Method not allowed'}), 405


@app.errorhandler(Exception)
def handle_unexpected(error: Exception):
    """Log anything unexpected and answer with a generic 500."""
    if isinstance(error, HTTPException):
        return jsonify({'success': False, 'error': error.description}), error.code
    server_logger.exception('Unhandled error on %s %s: %s',
                            request.method, request.path, error)
    return jsonify({'success': False, 'error': 'Internal server error'}), 500


# ===========================================================================================
# Health / docs
# ===========================================================================================

@app.route('/health')
def health():
    """Liveness probe."""
    return jsonify({'status': 'ok', 'timestamp': _now()})


@app.route('/api/openapi.json')
def api_openapi():
    """Serve the OpenAPI description of this API."""
    return jsonify(build_spec(server_url=request.host_url.rstrip('/')))


# ===========================================================================================
# Posts
# ===========================================================================================

@app.route('/api/posts', methods=['GET'])
def api_get_posts():
    """Return every post, newest first."""
    return jsonify({'success': True, 'posts': get_feed().post_service.list_posts()})


@app.route('/api/posts/<post_id>', methods=['GET'])
def api_get_post(post_id: str):
    """Return one post."""
    post = get_feed().post_service.get(post_id)
    if post is None:
        return jsonify({'success': False, 'error': 'Post not found'}), 404
    return jsonify({'success': True, 'post': post})


@app.route('/api/posts', methods=['POST'])
def api_create_post():
    """Create a post.  The server assigns ``id`` and ``createdAt``."""
    post = get_feed().post_service.create(_body())
    return jsonify({'success': True, 'post': post}), 201


@app.route('/api/posts/share', methods=['POST'])
def api_share_post():
    """Create a haul / roast / review post from share-screen data.

    Body JSON: {"type": "haul|roast|review", "shareExternal": bool, ...}
    """
    data = _body()
    post = get_feed().post_service.share(
        data.get('type'), data, share_external=bool(data.get('shareExternal')))
    return jsonify({'success': True, 'post': post, 'pointsEarned': post['points']}), 201


@app.route('/api/posts/<post_id>', methods=['PUT', 'PATCH'])
def api_update_post(post_id: str):
    """Merge the body into an existing post."""
    post = get_feed().post_service.update(post_id, _body())
    if post is None:
        return jsonify({'success': False, 'error': 'Post not found'}), 404
    return jsonify({'success': True, 'post': post})


@app.route('/api/posts/<post_id>', methods=['DELETE'])
def api_delete_post(post_id: str):
    """Delete a post and everything under it."""
    post = get_feed().post_service.delete(post_id)
    if post is None:
        return jsonify({'success': False, 'error': 'Post not found'}), 404
    return jsonify({'success': True, 'post': post})


@app.route('/api/posts/<post_id>/like', methods=['POST', 'DELETE', 'PUT'])
def api_like_post(post_id: str):
    """POST likes, DELETE unlikes, PUT toggles."""
    service = get_feed().post_service
    if request.method == 'POST':
        post = service.like(post_id)
    elif request.method == 'DELETE':
        post = service.unlike(post_id)
    else:
        post = service.toggle_like(post_id)
    if post is None:
        return jsonify({'success': False, 'error': 'Post not found'}), 404
    return jsonify({'success': True, 'post': post})


# ===========================================================================================
# Comments
# ===========================================================================================

@app.route('/api/posts/<post_id>/comments', methods=['GET'])
def api_get_comments(post_id: str):
    """Return the full comment tree of a post."""
    comments = get_feed().comment_service.list(post_id)
    return jsonify({'success': True, 'comments': comments})


@app.route('/api/posts/<post_id>/comments', methods=['POST'])
def api_add_comment(post_id: str):
    """Add a comment, or a reply when ``parentId`` is given.

    Body JSON: {"text": "...", "name": "...", "avatar": "...", "parentId": "optional"}
    """
    comment = get_feed().comment_service.add(post_id, _body())
    return jsonify({'success': True, 'comment': comment}), 201


@app.route('/api/posts/<post_id>/comments/<comment_id>', methods=['DELETE'])
def api_delete_comment(post_id: str, comment_id: str):
    """Delete a comment together with all of its replies."""
    comment = get_feed().comment_service.delete(post_id, comment_id)
    return jsonify({'success': True, 'comment': comment})


@app.route('/api/posts/<post_id>/comments/<comment_id>/like', methods=['PUT'])
def api_like_comment(post_id: str, comment_id: str):
    """Toggle the like on a comment at any depth."""
    comment = get_feed().comment_service.like(post_id, comment_id)
    return jsonify({'success': True, 'comment': comment})


# ===========================================================================================
# Roasts & receipts
# ===========================================================================================

@app.route('/api/roasts', methods=['POST'])
def api_roasts():
    """Return every roast matching the posted receipt.

    Body JSON: {"receiptItems": [{"name": str, "price": float}, ...]} (optional)
    """
    items = _body().get('receiptItems')
    roasts = get_feed().roast_service.generate(items)
    return jsonify({'success': True, 'roasts': roasts})


@app.route('/api/generate-roast-video', methods=['POST'])
def api_generate_roast_video():
    """Roast-video stub: validates the request, then reports 501."""
    data = _body()
    result = get_feed().roast_service.request_video(
        data.get('roastText'), data.get('receiptItems'))
    return jsonify(result), 501


@app.route('/api/receipts', methods=['GET'])
def api_receipts():
    """Return the mock receipt catalogue with totals."""
    service = get_feed().receipt_service
    return jsonify({'success': True,
                    'receipts': [service.summarize(r) for r in service.all()]})


@app.route('/api/receipts/next', methods=['GET'])
def api_next_receipt():
    """Simulate a scan: return the next receipt in the rotation."""
    service = get_feed().receipt_service
    return jsonify({'success': True, 'receipt': service.summarize(service.next_receipt())})


# ===========================================================================================
# Leaderboards
# ===========================================================================================

@app.route('/api/leaderboards', methods=['GET'])
def api_leaderboard():
    """Return the points leaderboard.

    Query params:
      - ``limit``: max entries (default from config, 20)
    """
    current = get_feed()
    try:
        limit = int(request.args.get('limit', current.config.get('leaderboard_size', 20)))
    except ValueError:
        raise ValidationError('limit must be an integer')
    if limit < 1:
        raise ValidationError('limit must be positive')
    entries = current.leaderboard_service.get_rankings(limit=limit)
    return jsonify({'success': True, 'entries': entries})


# ===========================================================================================
# Users
# ===========================================================================================

@app.route('/api/users', methods=['GET'])
def api_get_users():
    with db_session() as db:
        users = get_feed().user_service.get_all(db)
    return jsonify({'success': True, 'users': users})


@app.route('/api/users', methods=['POST'])
def api_create_user():
    """Register a user.  Body JSON: {"email": str, "name": str}"""
    data = _body()
    with db_session() as db:
        user = get_feed().user_service.create(db, data.get('email'), data.get('name'))
    return jsonify({'success': True, 'user': user}), 201


@app.route('/api/users/<user_id>', methods=['GET'])
def api_get_user(user_id: str):
    with db_session() as db:
        user = get_feed().user_service.get(db, user_id)
    if user is None:
        return jsonify({'success': False, 'error': 'User not found'}), 404
    return jsonify({'success': True, 'user': user})


@app.route('/api/users/<user_id>', methods=['PATCH', 'PUT'])
def api_update_user(user_id: str):
    """Partial profile update (name, displayName, bio, avatar, totalPoints)."""
    data = _body()
    with db_session() as db:
        user = get_feed().user_service.update_profile(db, user_id, data)
    return jsonify({'success': True, 'user': user})


# ===========================================================================================
# Challenges
# ===========================================================================================

@app.route('/api/challenges', methods=['GET'])
def api_get_challenges():
    """List challenges; ``?status=upcoming|live|completed`` filters."""
    with db_session() as db:
        challenges = get_feed().challenge_service.list(db, status=request.args.get('status'))
    return jsonify({'success': True, 'challenges': challenges})


@app.route('/api/challenges', methods=['POST'])
def api_create_challenge():
    data = _body()
    with db_session() as db:
        challenge = get_feed().challenge_service.create(db, data)
    return jsonify({'success': True, 'challenge': challenge}), 201


@app.route('/api/challenges/<challenge_id>', methods=['GET'])
def api_get_challenge(challenge_id: str):
    with db_session() as db:
        challenge = get_feed().challenge_service.get(db, challenge_id)
    if challenge is None:
        return jsonify({'success': False, 'error': 'Challenge not found'}), 404
    return jsonify({'success': True, 'challenge': challenge})


@app.route('/api/challenges/<challenge_id>/progress', methods=['POST'])
def api_challenge_progress(challenge_id: str):
    """Add progress.  Body JSON: {"amount": int, "joined": bool}"""
    data = _body()
    with db_session() as db:
        challenge = get_feed().challenge_service.record_progress(
            db, challenge_id, data.get('amount', 0), joined=bool(data.get('joined')))
    return jsonify({'success': True, 'challenge': challenge})


# ===========================================================================================
# Weather map
# ===========================================================================================

def _coordinates(data: Dict):
    lat = data.get('latitude')
    lon = data.get('longitude')
    if lat is None or lon is None:
        raise ValidationError('latitude and longitude are required')
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        raise ValidationError('latitude and longitude must be numbers')


@app.route('/api/weather', methods=['GET'])
def api_weather():
    """Daily forecast for ``?latitude=&longitude=``."""
    lat, lon = _coordinates(request.args)
    try:
        forecast = get_feed().weather_client.get_forecast(lat, lon)
    except ValueError as e:
        raise ValidationError(str(e))
    except WeatherAPIError as e:
        server_logger.warning('Weather lookup failed: %s', e)
        return jsonify({'success': False, 'error': 'Weather service unavailable'}), 502
    return jsonify({'success': True, 'forecast': forecast})


@app.route('/api/map', methods=['GET'])
def api_map_state():
    return jsonify({'success': True, 'state': get_feed().map_service.state})


@app.route('/api/map/mode', methods=['POST'])
def api_map_mode():
    """Body JSON: {"mode": "add" | "delete" | "none"}"""
    mode = _body().get('mode')
    service = get_feed().map_service
    if mode == 'add':
        state = service.enable_add_mode()
    elif mode == 'delete':
        state = service.enable_delete_mode()
    elif mode == 'none':
        state = service.disable_delete_mode()
    else:
        raise ValidationError('mode must be one of: add, delete, none')
    return jsonify({'success': True, 'state': state})


@app.route('/api/map/pins', methods=['POST', 'DELETE'])
def api_map_pins():
    """POST drops a pin, DELETE removes one.  Body JSON: {"latitude", "longitude"}"""
    data = _body() or request.args
    lat, lon = _coordinates(data)
    service = get_feed().map_service
    try:
        if request.method == 'POST':
            state = service.add_pin(lat, lon)
        else:
            state = service.remove_pin(lat, lon)
    except ValueError as e:
        raise ValidationError(str(e))
    return jsonify({'success': True, 'state': state}), 201 if request.method == 'POST' else 200


@app.route('/api/map/select', methods=['POST', 'DELETE'])
def api_map_select():
    """POST selects a spot and loads its forecast; DELETE clears the selection."""
    service = get_feed().map_service
    if request.method == 'DELETE':
        return jsonify({'success': True, 'state': service.clear_selection()})
    lat, lon = _coordinates(_body())
    try:
        state = service.select(lat, lon)
    except ValueError as e:
        raise ValidationError(str(e))
    return jsonify({'success': state['error'] is None, 'state': state})


# ===========================================================================================
# Entry point
# ===========================================================================================

def main(config: Optional[Dict] = None, host: Optional[str] = None,
         port: Optional[int] = None, debug: bool = False) -> int:
    """Build the feed, initialise the database and run the Flask server."""
    current = init_feed(config or fetchfeed.load_config())
    if not ensure_db_available():
        server_logger.warning('User and challenge routes will answer 503 until '
                              'the database is reachable')

    host = host or current.config.get('host', '127.0.0.1')
    port = port or int(current.config.get('port', 3000))

    print("\n" + "=" * 60)
    print("🚀 FetchFeed server is starting...")
    print("=" * 60)
    print(f"\n  http://{host}:{port}")
    print(f"  Data file: {current.post_repository.path}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    try:
        app.run(host=host, port=port, debug=debug)
    except KeyboardInterrupt:
        print("\n🛑 FetchFeed server stopped\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
