"""Tests for the permission evaluator."""

import pytest

from studygroup.db.models import UserRole
from studygroup.permissions import (
    Action,
    Actor,
    ResourceType,
    can_perform,
    can_perform_interaction_action,
    can_perform_session_action,
    can_perform_user_action,
    evaluate,
    owner_id,
)

ADMIN = Actor(id=1, role=UserRole.ADMIN)
OWNER = Actor(id=2)
STRANGER = Actor(id=3)

ALL_ACTIONS = list(Action)


class TestGenericRule:
    """Topics and other ownables."""

    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_anonymous_is_always_denied(self, action):
        assert can_perform(None, action, {"createdBy": 2}) is False

    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_admin_may_do_anything(self, action):
        assert can_perform(ADMIN, action, {"createdBy": 99}) is True
        assert can_perform(ADMIN, action) is True

    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_owner_may_do_anything_to_own_resource(self, action):
        assert can_perform(OWNER, action, {"createdBy": OWNER.id}) is True

    def test_non_owner_may_only_read_and_create(self):
        topic = {"createdBy": OWNER.id}
        assert can_perform(STRANGER, Action.READ, topic) is True
        assert can_perform(STRANGER, Action.CREATE, topic) is True
        assert can_perform(STRANGER, Action.EDIT, topic) is False
        assert can_perform(STRANGER, Action.DELETE, topic) is False

    def test_missing_resource_allows_only_read_and_create(self):
        assert can_perform(STRANGER, Action.CREATE) is True
        assert can_perform(STRANGER, Action.READ) is True
        assert can_perform(STRANGER, Action.EDIT) is False
        assert can_perform(STRANGER, Action.DELETE) is False

    def test_resource_without_owner_allows_only_read_and_create(self):
        assert can_perform(STRANGER, Action.EDIT, {"title": "x"}) is False
        assert can_perform(STRANGER, Action.READ, {"title": "x"}) is True

    def test_author_id_counts_as_owner(self):
        assert can_perform(OWNER, Action.EDIT, {"authorId": OWNER.id}) is True
        assert can_perform(STRANGER, Action.EDIT, {"authorId": OWNER.id}) is False

    def test_created_by_takes_precedence_over_author_id(self):
        resource = {"created_by": OWNER.id, "author_id": STRANGER.id}
        assert owner_id(resource) == OWNER.id

    def test_attribute_resources_are_supported(self):
        class Topic:
            created_by = OWNER.id

        assert can_perform(OWNER, Action.DELETE, Topic()) is True
        assert can_perform(STRANGER, Action.DELETE, Topic()) is False


class TestSessionRule:
    def test_everyone_may_read(self):
        assert can_perform_session_action(STRANGER, Action.READ, {"presenterId": OWNER.id}) is True

    def test_only_admins_create(self):
        assert can_perform_session_action(ADMIN, Action.CREATE) is True
        assert can_perform_session_action(OWNER, Action.CREATE) is False

    @pytest.mark.parametrize("action", [Action.EDIT, Action.DELETE])
    def test_presenter_and_admin_may_change(self, action):
        session = {"presenterId": OWNER.id}
        assert can_perform_session_action(ADMIN, action, session) is True
        assert can_perform_session_action(OWNER, action, session) is True
        assert can_perform_session_action(STRANGER, action, session) is False

    def test_anonymous_is_denied(self):
        assert can_perform_session_action(None, Action.READ) is False


class TestInteractionRule:
    def test_anyone_may_read_and_create(self):
        assert can_perform_interaction_action(STRANGER, Action.READ, {"authorId": OWNER.id}) is True
        assert can_perform_interaction_action(STRANGER, Action.CREATE) is True

    def test_author_may_edit_but_not_delete(self):
        interaction = {"authorId": OWNER.id}
        assert can_perform_interaction_action(OWNER, Action.EDIT, interaction) is True
        assert can_perform_interaction_action(OWNER, Action.DELETE, interaction) is False

    def test_admin_may_edit_and_delete(self):
        interaction = {"authorId": OWNER.id}
        assert can_perform_interaction_action(ADMIN, Action.EDIT, interaction) is True
        assert can_perform_interaction_action(ADMIN, Action.DELETE, interaction) is True

    def test_stranger_may_not_edit(self):
        assert can_perform_interaction_action(STRANGER, Action.EDIT, {"authorId": OWNER.id}) is False


class TestUserRule:
    def test_self_edit_allowed(self):
        assert can_perform_user_action(OWNER, Action.EDIT, {"id": OWNER.id}) is True

    def test_editing_others_denied(self):
        assert can_perform_user_action(STRANGER, Action.EDIT, {"id": OWNER.id}) is False

    def test_only_admin_creates_and_deletes(self):
        assert can_perform_user_action(OWNER, Action.CREATE) is False
        assert can_perform_user_action(OWNER, Action.DELETE, {"id": OWNER.id}) is False
        assert can_perform_user_action(ADMIN, Action.CREATE) is True
        assert can_perform_user_action(ADMIN, Action.DELETE, {"id": OWNER.id}) is True


class TestEvaluate:
    @pytest.mark.parametrize(
        ("resource_type", "resource", "expected"),
        [
            (ResourceType.TOPIC, {"createdBy": OWNER.id}, True),
            (ResourceType.SESSION, {"presenterId": OWNER.id}, True),
            (ResourceType.INTERACTION, {"authorId": OWNER.id}, False),
            (ResourceType.USER, {"id": OWNER.id}, False),
        ],
    )
    def test_dispatches_owner_delete_to_the_right_family(self, resource_type, resource, expected):
        assert evaluate(resource_type, OWNER, Action.DELETE, resource) is expected

    @pytest.mark.parametrize("resource_type", list(ResourceType))
    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_anonymous_denied_everywhere(self, resource_type, action):
        assert evaluate(resource_type, None, action) is False

    @pytest.mark.parametrize("resource_type", list(ResourceType))
    def test_pure_and_repeatable(self, resource_type):
        resource = {"createdBy": OWNER.id, "presenterId": OWNER.id, "authorId": OWNER.id, "id": OWNER.id}
        first = [evaluate(resource_type, OWNER, a, resource) for a in ALL_ACTIONS]
        second = [evaluate(resource_type, OWNER, a, resource) for a in ALL_ACTIONS]
        assert first == second
        assert resource == {"createdBy": OWNER.id, "presenterId": OWNER.id, "authorId": OWNER.id, "id": OWNER.id}
