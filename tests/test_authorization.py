import pytest

from rolekit.services.authorization import (
    Authorizable, Authorizer, forget_cached_decisions, super_admin_cache_key,
)
from rolekit.services.role_service import role_service


# ===================================================================
#  Fixtures
# ===================================================================

@pytest.fixture
def editor_user(seeded, make_user):
    user = make_user()
    role_service.assign_role(seeded, user, "editor")
    return user


def authorizer_for(db, user, **kwargs) -> Authorizer:
    return Authorizer(db, user, **kwargs)


# ===================================================================
#  Roles
# ===================================================================
class TestRoleChecks:
    def test_has_role_matches_any_slug(self, seeded, editor_user):
        auth = authorizer_for(seeded, editor_user)

        assert auth.has_role("editor")
        assert auth.has_role("admin", "editor")
        assert not auth.has_role("admin")
        assert not auth.has_role()

    @pytest.mark.parametrize("held,checked,any_expected,all_expected", [
        (["editor"], ["editor", "author"], True, False),
        (["editor", "author"], ["editor", "author"], True, True),
        ([], ["editor", "author"], False, False),
        (["user"], ["editor", "author"], False, False),
    ])
    def test_any_and_all_roles(self, seeded, make_user, held, checked, any_expected, all_expected):
        # === Arrange ===
        user = make_user()
        role_service.assign_role(seeded, user, *held)
        auth = authorizer_for(seeded, user)

        # === Act & Assert ===
        a, b = checked
        assert auth.has_any_role(a, b) == (auth.has_role(a) or auth.has_role(b)) == any_expected
        assert auth.has_all_roles(a, b) == (auth.has_role(a) and auth.has_role(b)) == all_expected

    def test_role_slugs_are_ordered_by_level(self, seeded, make_user):
        user = make_user()
        role_service.assign_role(seeded, user, "user", "admin", "author")

        assert authorizer_for(seeded, user).get_role_slugs() == ["admin", "author", "user"]


# ===================================================================
#  Permissions
# ===================================================================
class TestPermissionChecks:
    def test_editor_scenario(self, seeded, editor_user):
        auth = authorizer_for(seeded, editor_user)

        assert auth.has_permission("edit-posts")
        assert not auth.has_permission("delete-posts")
        assert auth.has_role("editor")
        assert not auth.is_super_admin()

    def test_multiple_slugs_pass_if_any_passes(self, seeded, editor_user):
        auth = authorizer_for(seeded, editor_user)

        assert auth.has_permission("delete-posts", "edit-posts")
        assert auth.has_any_permission("delete-posts", "edit-posts")
        assert not auth.has_all_permissions("delete-posts", "edit-posts")
        assert auth.has_all_permissions("view-posts", "publish-posts")

    def test_direct_grant(self, seeded, make_user):
        user = make_user()
        role_service.give_permission(seeded, user, "delete-users")
        auth = authorizer_for(seeded, user)

        assert auth.has_permission("delete-users")
        assert not auth.has_permission("view-users")

    def test_unknown_permission_is_denied(self, seeded, editor_user):
        assert not authorizer_for(seeded, editor_user).has_permission("launch-rockets")

    def test_no_grants_denies_everything(self, seeded, make_user):
        auth = authorizer_for(seeded, make_user())

        assert not auth.has_permission("view-posts")
        assert not auth.is_super_admin()
        assert auth.get_all_permissions() == []

    def test_all_permissions_merges_direct_and_role_grants(self, seeded, editor_user):
        role_service.give_permission(seeded, editor_user, "delete-users", "view-posts")

        slugs = authorizer_for(seeded, editor_user).get_permission_slugs()

        assert slugs == sorted([
            "view-posts", "create-posts", "edit-posts", "publish-posts", "view-users", "delete-users",
        ])

    def test_removing_role_drops_its_permissions(self, seeded, make_user):
        # === Arrange ===
        user = make_user()
        role_service.assign_role(seeded, user, "editor", "author")
        role_service.give_permission(seeded, user, "publish-posts")

        # === Act ===
        role_service.remove_role(seeded, user, "editor")

        # === Assert ===
        auth = authorizer_for(seeded, user)
        slugs = auth.get_permission_slugs()
        assert "view-users" not in slugs
        assert "publish-posts" in slugs  # still held directly
        assert "edit-posts" in slugs  # still held through author
        assert not auth.has_permission("view-users")

    def test_skip_auth_check_passes_everything(self, seeded, make_user):
        user = make_user()

        auth = authorizer_for(seeded, user, skip_auth_check=True)

        assert auth.has_role("super-admin")
        assert auth.has_permission("anything")
        assert auth.has_all_permissions("a", "b")
        assert not authorizer_for(seeded, user).has_permission("anything")


# ===================================================================
#  Super-admin
# ===================================================================
class TestSuperAdmin:
    @pytest.mark.parametrize("slug", ["view-posts", "anything-not-yet-defined", "*"])
    def test_super_admin_role_passes_every_permission(self, seeded, make_user, slug):
        user = make_user()
        role_service.assign_role(seeded, user, "super-admin")

        assert authorizer_for(seeded, user).has_permission(slug)

    def test_wildcard_scenario(self, seeded, make_user):
        user = make_user()
        role_service.assign_role(seeded, user, "super-admin")
        auth = authorizer_for(seeded, user)

        assert auth.has_permission("anything-not-yet-defined")
        assert auth.is_super_admin()

    def test_direct_wildcard_makes_super_admin(self, seeded, make_user):
        user = make_user()
        role_service.give_permission(seeded, user, "*")
        auth = authorizer_for(seeded, user)

        assert auth.is_super_admin()
        assert not auth.has_role("super-admin")
        assert auth.has_permission("delete-everything")

    def test_role_granting_wildcard_makes_super_admin(self, seeded, make_user):
        user = make_user()
        role_service.create_role(seeded, "Root", "root", level=90)
        role_service.give_permission_to_role(seeded, "root", "*")
        role_service.assign_role(seeded, user, "root")

        assert authorizer_for(seeded, user).is_super_admin()

    def test_role_has_permission_does_not_expand_wildcard(self, seeded):
        role = role_service.find_role_by_slug(seeded, "super-admin")

        assert role.has_permission("*")
        assert not role.has_permission("view-posts")
        assert role.is_super_admin()


# ===================================================================
#  Cached decisions
# ===================================================================
class TestCachedDecisions:
    def test_super_admin_flag_is_cached(self, seeded, make_user, fake_redis):
        user = make_user()
        role_service.assign_role(seeded, user, "super-admin")

        assert authorizer_for(seeded, user, use_cache=True).is_super_admin()
        assert fake_redis.get(super_admin_cache_key(user.id)) is not None

    def test_revoking_role_invalidates_cached_flag(self, seeded, make_user, fake_redis):
        # === Arrange ===
        user = make_user()
        role_service.assign_role(seeded, user, "super-admin")
        assert authorizer_for(seeded, user, use_cache=True).is_super_admin()

        # === Act ===
        role_service.remove_role(seeded, user, "super-admin")

        # === Assert ===
        assert fake_redis.get(super_admin_cache_key(user.id)) is None
        assert not authorizer_for(seeded, user, use_cache=True).is_super_admin()

    def test_changing_role_permissions_invalidates_holders(self, seeded, make_user):
        user = make_user()
        role_service.assign_role(seeded, user, "editor")
        assert not authorizer_for(seeded, user, use_cache=True).is_super_admin()

        role_service.give_permission_to_role(seeded, "editor", "*")

        assert authorizer_for(seeded, user, use_cache=True).is_super_admin()

    def test_instance_memo_survives_until_forget(self, seeded, make_user):
        user = make_user()
        auth = authorizer_for(seeded, user, use_cache=False)
        assert not auth.is_super_admin()

        role_service.give_permission(seeded, user, "*")
        assert not auth.is_super_admin()

        auth.forget()
        assert auth.is_super_admin()

    def test_forget_cached_decisions_deletes_keys(self, fake_redis, cache):
        fake_redis.set(super_admin_cache_key(1), "x")
        fake_redis.set(super_admin_cache_key(2), "x")

        forget_cached_decisions([1, 1], cache)

        assert fake_redis.get(super_admin_cache_key(1)) is None
        assert fake_redis.get(super_admin_cache_key(2)) == "x"


def test_authorizer_satisfies_authorizable(seeded, make_user):
    assert isinstance(Authorizer(seeded, make_user()), Authorizable)
