import pytest

from content_guardian.auth.policy import Action, CommentTarget, decide, ensure_allowed
from content_guardian.errors import Forbidden, Unauthenticated
from content_guardian.models import ALL_ROLES, Actor, CommentRef, PostRef, Role


ADMIN = Actor(id=1, role=Role.ADMIN)
AUTHOR = Actor(id=2, role=Role.AUTHOR)
OTHER_AUTHOR = Actor(id=3, role=Role.AUTHOR)
READER = Actor(id=4, role=Role.READER)
OTHER_READER = Actor(id=5, role=Role.READER)

POST_BY_AUTHOR = PostRef(post_id=10, author_id=AUTHOR.id)


def _comment_target(comment_user_id):
    return CommentTarget(
        post=POST_BY_AUTHOR,
        comment=CommentRef(comment_id=100, post_id=POST_BY_AUTHOR.post_id, user_id=comment_user_id),
    )


@pytest.mark.parametrize("actor", [None, ADMIN, AUTHOR, READER])
def test_post_read_is_always_allowed(actor):
    assert decide(actor, Action.POST_READ).allowed


@pytest.mark.parametrize("role,allowed", [(Role.ADMIN, True), (Role.AUTHOR, True), (Role.READER, False)])
def test_post_create_by_role(role, allowed):
    assert decide(Actor(id=7, role=role), Action.POST_CREATE).allowed is allowed


@pytest.mark.parametrize("action", [Action.POST_UPDATE, Action.POST_DELETE])
def test_post_write_owner_and_admin_allowed(action):
    assert decide(AUTHOR, action, POST_BY_AUTHOR).allowed
    assert decide(ADMIN, action, POST_BY_AUTHOR).allowed


@pytest.mark.parametrize("action", [Action.POST_UPDATE, Action.POST_DELETE])
@pytest.mark.parametrize("actor", [OTHER_AUTHOR, READER])
def test_post_write_denied_for_non_owner_non_admin(action, actor):
    d = decide(actor, action, POST_BY_AUTHOR)
    assert not d.allowed
    assert d.reason in ("not_post_owner", "role_not_allowed")


def test_reader_cannot_edit_even_a_post_they_authored():
    # e.g. an author demoted to reader after writing the post
    own = PostRef(post_id=11, author_id=READER.id)
    assert not decide(READER, Action.POST_UPDATE, own).allowed
    assert not decide(READER, Action.POST_DELETE, own).allowed


def test_orphaned_post_only_editable_by_admin():
    orphan = PostRef(post_id=12, author_id=None)
    assert decide(ADMIN, Action.POST_UPDATE, orphan).allowed
    assert not decide(AUTHOR, Action.POST_UPDATE, orphan).allowed


@pytest.mark.parametrize("role", ALL_ROLES)
def test_any_authenticated_role_may_comment(role):
    assert decide(Actor(id=9, role=role), Action.COMMENT_CREATE).allowed


def test_anonymous_denied_everything_but_read():
    for action in (Action.POST_CREATE, Action.COMMENT_CREATE):
        assert not decide(None, action).allowed
    assert not decide(None, Action.POST_DELETE, POST_BY_AUTHOR).allowed


def test_comment_delete_matrix():
    target = _comment_target(comment_user_id=READER.id)

    assert decide(ADMIN, Action.COMMENT_DELETE, target).allowed
    assert decide(AUTHOR, Action.COMMENT_DELETE, target).allowed  # post author
    assert decide(READER, Action.COMMENT_DELETE, target).allowed  # comment owner

    assert not decide(OTHER_READER, Action.COMMENT_DELETE, target).allowed
    assert not decide(OTHER_AUTHOR, Action.COMMENT_DELETE, target).allowed


def test_comment_by_deleted_user_not_claimable():
    target = _comment_target(comment_user_id=None)
    assert not decide(OTHER_READER, Action.COMMENT_DELETE, target).allowed


def test_wrong_resource_type_is_a_programming_error():
    with pytest.raises(TypeError):
        decide(ADMIN, Action.POST_UPDATE, None)
    with pytest.raises(TypeError):
        decide(ADMIN, Action.COMMENT_DELETE, POST_BY_AUTHOR)


def test_ensure_allowed_raises():
    with pytest.raises(Forbidden) as exc:
        ensure_allowed(READER, Action.POST_CREATE)
    assert exc.value.status_code == 403

    with pytest.raises(Unauthenticated):
        ensure_allowed(None, Action.COMMENT_CREATE)

    ensure_allowed(AUTHOR, Action.POST_DELETE, POST_BY_AUTHOR)
