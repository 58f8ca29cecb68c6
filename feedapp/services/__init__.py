"""Services package: expose all concrete services from one import."""
from .post_service import PostService
from .comment_service import CommentService
from .roast_service import RoastService
from .receipt_service import ReceiptService
from .leaderboard_service import LeaderboardService
from .user_service import UserService
from .challenge_service import ChallengeService
from .map_service import MapService

__all__ = [
    'PostService',
    'CommentService',
    'RoastService',
    'ReceiptService',
    'LeaderboardService',
    'UserService',
    'ChallengeService',
    'MapService',
]
