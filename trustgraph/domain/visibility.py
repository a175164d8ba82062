"""
Visibility Authorizer - Decides whether a viewer may see a target account.

Decision order:
    1. viewer is the target        -> visible (no storage access)
    2. target does not exist       -> USER_NOT_FOUND
    3. target is public            -> visible (viewer need not exist)
    4. target is private           -> visible iff viewer follows target

The same predicate gates profile reads and content (post) listings. Content
collaborators go through ``visible_content`` instead of re-implementing the
rule. Nothing is cached, so a new follow edge takes effect immediately.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .credentials import CredentialStore
from .follows import FollowGraph
from .models import PublicProfile
from .result import FailureKind, Ok, Result, err

T = TypeVar("T")


@dataclass
class VisibilityAuthorizer:
    credentials: CredentialStore
    follow_graph: FollowGraph

    def can_view(self, viewer_id: str, target_id: str) -> Result[bool]:
        if viewer_id == target_id:
            return Ok(True)

        target = self.credentials.find_by_id(target_id)
        if target.is_err():
            return target

        if not target.value.private:
            return Ok(True)

        return Ok(self.follow_graph.is_following(viewer_id, target_id))

    def authorize(self, viewer_id: str, target_id: str) -> Result[None]:
        """Like ``can_view``, with a denial reported as UNAUTHORIZED."""
        decision = self.can_view(viewer_id, target_id)
        if decision.is_err():
            return decision
        if not decision.value:
            return err(FailureKind.UNAUTHORIZED)
        return Ok(None)

    def view_profile(self, viewer_id: str, target_id: str) -> Result[PublicProfile]:
        allowed = self.authorize(viewer_id, target_id)
        if allowed.is_err():
            return allowed
        return self.credentials.find_by_id(target_id)

    def visible_content(
        self, viewer_id: str, owner_id: str, loader: Callable[[str], T]
    ) -> Result[T]:
        """
        Load ``owner_id``'s content for ``viewer_id`` if the viewer may see it.

        Args:
            viewer_id: Account requesting the content
            owner_id: Account owning the content
            loader: Collaborator callback fetching the content, e.g. a post listing

        Returns:
            Ok(loader(owner_id)), or Err with USER_NOT_FOUND / UNAUTHORIZED;
            ``loader`` is not called when access is denied
        """
        allowed = self.authorize(viewer_id, owner_id)
        if allowed.is_err():
            return allowed
        return Ok(loader(owner_id))
