"""
Chirper Storage Layer
=====================

Repository pattern implementations for data access abstraction.

This module provides:
- User repository for accounts, profiles, user timelines and liked posts
- Post repository for post CRUD and the global timeline
- Engagement repository for retweets and likes
- The timeline merge shared by both timelines
"""

from .engagement_repository import EngagementRepository
from .post_repository import PostRepository
from .user_repository import UserRepository
from .timeline import merge_timeline

__all__ = [
    "EngagementRepository",
    "PostRepository",
    "UserRepository",
    "merge_timeline",
]
