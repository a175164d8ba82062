"""
Follow Graph - Directed follow edges between accounts.

Duplicate edges are prevented by the storage uniqueness constraint on
(follower_id, following_id); a conflicting insert, sequential or
concurrent, comes back as ALREADY_FOLLOWING rather than a storage error.
"""

import logging
from dataclasses import dataclass

from .models import FollowEdge
from .ports import Clock, FollowRepository, WriteOutcome, system_clock
from .result import FailureKind, Ok, Result, err

logger = logging.getLogger(__name__)


@dataclass
class FollowGraph:
    """Owns follow edges and answers membership queries."""

    repository: FollowRepository
    clock: Clock = system_clock

    def follow(self, follower_id: str, following_id: str) -> Result[FollowEdge]:
        """
        Create the edge follower -> following.

        Self-follow is rejected before storage is touched, whether or not
        the account exists.
        """
        if follower_id == following_id:
            return err(FailureKind.CANNOT_FOLLOW_SELF)

        edge = FollowEdge(follower_id=follower_id, following_id=following_id, created_at=self.clock())
        outcome = self.repository.insert(edge)

        if outcome is WriteOutcome.CONFLICT:
            return err(FailureKind.ALREADY_FOLLOWING)
        if outcome is WriteOutcome.MISSING:
            return err(FailureKind.USER_NOT_FOUND)

        logger.debug("Follow edge created: %s -> %s", follower_id, following_id)
        return Ok(edge)

    def unfollow(self, follower_id: str, following_id: str) -> Result[None]:
        if not self.repository.delete(follower_id, following_id):
            return err(FailureKind.NOT_FOLLOWING)
        logger.debug("Follow edge removed: %s -> %s", follower_id, following_id)
        return Ok(None)

    def list_followers(self, account_id: str) -> list[str]:
        """Ids of accounts following ``account_id`` (order not significant)."""
        return self.repository.followers_of(account_id)

    def list_following(self, account_id: str) -> list[str]:
        """Ids of accounts ``account_id`` follows (order not significant)."""
        return self.repository.following_of(account_id)

    def is_following(self, follower_id: str, following_id: str) -> bool:
        return self.repository.exists(follower_id, following_id)
