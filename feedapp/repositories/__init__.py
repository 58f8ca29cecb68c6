"""Repository package: expose all concrete repositories from one import."""
from .post_repository import PostRepository

__all__ = [
    'PostRepository',
]
