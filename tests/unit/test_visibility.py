"""
Unit tests for VisibilityAuthorizer.
"""

from unittest.mock import Mock

from trustgraph.domain.follows import FollowGraph
from trustgraph.domain.result import FailureKind
from trustgraph.domain.visibility import VisibilityAuthorizer


class TestCanView:
    def test_self_always_visible(self, visibility: VisibilityAuthorizer, make_account) -> None:
        owner = make_account("owner@example.com", private=True)
        assert visibility.can_view(owner.id, owner.id).unwrap() is True

    def test_self_short_circuits_storage(self) -> None:
        credentials = Mock()
        authorizer = VisibilityAuthorizer(credentials=credentials, follow_graph=Mock())

        assert authorizer.can_view("same", "same").unwrap() is True
        credentials.find_by_id.assert_not_called()

    def test_missing_target(self, visibility: VisibilityAuthorizer, make_account) -> None:
        viewer = make_account("viewer@example.com")
        assert visibility.can_view(viewer.id, "no-such-id").kind is FailureKind.USER_NOT_FOUND

    def test_public_target_visible_to_anyone(self, visibility: VisibilityAuthorizer, make_account) -> None:
        target = make_account("public@example.com")
        assert visibility.can_view("unknown-viewer", target.id).unwrap() is True

    def test_private_target_hidden_from_non_follower(
        self, visibility: VisibilityAuthorizer, make_account
    ) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)
        assert visibility.can_view(viewer.id, target.id).unwrap() is False

    def test_private_target_visible_right_after_follow(
        self, visibility: VisibilityAuthorizer, follow_graph: FollowGraph, make_account
    ) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)

        follow_graph.follow(viewer.id, target.id)

        assert visibility.can_view(viewer.id, target.id).unwrap() is True

    def test_private_target_hidden_again_after_unfollow(
        self, visibility: VisibilityAuthorizer, follow_graph: FollowGraph, make_account
    ) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)
        follow_graph.follow(viewer.id, target.id)
        follow_graph.unfollow(viewer.id, target.id)

        assert visibility.can_view(viewer.id, target.id).unwrap() is False

    def test_target_following_viewer_does_not_grant_access(
        self, visibility: VisibilityAuthorizer, follow_graph: FollowGraph, make_account
    ) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)
        follow_graph.follow(target.id, viewer.id)

        assert visibility.can_view(viewer.id, target.id).unwrap() is False


class TestAuthorize:
    def test_denial_is_unauthorized(self, visibility: VisibilityAuthorizer, make_account) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)
        assert visibility.authorize(viewer.id, target.id).kind is FailureKind.UNAUTHORIZED

    def test_view_profile_returns_profile(self, visibility: VisibilityAuthorizer, make_account) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("public@example.com")

        profile = visibility.view_profile(viewer.id, target.id).unwrap()

        assert profile.id == target.id
        assert not hasattr(profile, "password_hash")

    def test_view_profile_of_private_target(self, visibility: VisibilityAuthorizer, make_account) -> None:
        viewer = make_account("viewer@example.com")
        target = make_account("private@example.com", private=True)
        assert visibility.view_profile(viewer.id, target.id).kind is FailureKind.UNAUTHORIZED


class TestVisibleContent:
    def test_loader_called_when_visible(
        self, visibility: VisibilityAuthorizer, follow_graph: FollowGraph, make_account
    ) -> None:
        viewer = make_account("viewer@example.com")
        owner = make_account("owner@example.com", private=True)
        follow_graph.follow(viewer.id, owner.id)
        loader = Mock(return_value=["post-1", "post-2"])

        result = visibility.visible_content(viewer.id, owner.id, loader)

        assert result.unwrap() == ["post-1", "post-2"]
        loader.assert_called_once_with(owner.id)

    def test_loader_not_called_when_denied(self, visibility: VisibilityAuthorizer, make_account) -> None:
        viewer = make_account("viewer@example.com")
        owner = make_account("owner@example.com", private=True)
        loader = Mock()

        result = visibility.visible_content(viewer.id, owner.id, loader)

        assert result.kind is FailureKind.UNAUTHORIZED
        loader.assert_not_called()

    def test_loader_not_called_for_missing_owner(self, visibility: VisibilityAuthorizer) -> None:
        loader = Mock()
        assert visibility.visible_content("viewer", "no-such-id", loader).kind is FailureKind.USER_NOT_FOUND
        loader.assert_not_called()
