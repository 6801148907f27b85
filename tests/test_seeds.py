from rolekit.core.config import settings
from rolekit.db.seeds.seed_roles import PERMISSIONS, ROLES, seed_roles
from rolekit.db.seeds.seed_super_admin import seed_super_admin
from rolekit.models import Permission, Role, User
from rolekit.services.authorization import Authorizer
from rolekit.services.role_service import role_service


class TestSeedRoles:
    def test_seeds_permissions_and_roles(self, seeded):
        assert seeded.query(Permission).count() == len(PERMISSIONS) == 13
        assert seeded.query(Role).count() == len(ROLES) == 5

        levels = {r.slug: r.level for r in seeded.query(Role)}
        assert levels == {"super-admin": 100, "admin": 50, "editor": 25, "author": 10, "user": 1}

    def test_role_permission_sets(self, seeded):
        def slugs(role_slug):
            return sorted(p.slug for p in role_service.find_role_by_slug(seeded, role_slug).permissions)

        assert slugs("super-admin") == ["*"]
        assert slugs("user") == ["view-posts"]
        assert slugs("author") == ["create-posts", "edit-posts", "view-posts"]
        assert "delete-users" not in slugs("admin")
        assert len(slugs("admin")) == 11

    def test_reseeding_is_idempotent_and_restores_sets(self, seeded):
        role_service.give_permission_to_role(seeded, "user", "delete-posts")

        seed_roles(seeded)

        assert seeded.query(Permission).count() == 13
        assert seeded.query(Role).count() == 5
        user_role = role_service.find_role_by_slug(seeded, "user")
        assert [p.slug for p in user_role.permissions] == ["view-posts"]


class TestSeedSuperAdmin:
    def test_requires_roles(self, db):
        seed_super_admin(db)

        assert db.query(User).count() == 0

    def test_creates_super_admin(self, seeded):
        seed_super_admin(seeded)
        seed_super_admin(seeded)

        admins = seeded.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).all()
        assert len(admins) == 1
        assert Authorizer(seeded, admins[0]).is_super_admin()
