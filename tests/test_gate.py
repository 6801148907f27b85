import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rolekit.core.exceptions import ForbiddenError, UnauthenticatedError
from rolekit.services.authorization import Authorizer
from rolekit.services.gate import Gate, GateRegistry, template_directives
from rolekit.services.role_service import role_service


@pytest.fixture
def registry(seeded) -> GateRegistry:
    registry = GateRegistry()
    registry.register_permissions(seeded)
    return registry


@pytest.fixture
def editor(seeded, make_user) -> Authorizer:
    user = make_user()
    role_service.assign_role(seeded, user, "editor")
    return Authorizer(seeded, user)


# ===================================================================
#  Registry
# ===================================================================
class TestGateRegistry:
    def test_one_gate_per_permission(self, registry):
        assert len(registry.abilities()) == 13
        assert registry.has("edit-posts")
        assert registry.has("*")

    def test_missing_table_registers_nothing(self):
        # === Arrange: a database without any tables ===
        engine = create_engine("sqlite://", poolclass=StaticPool)
        session = sessionmaker(bind=engine)()
        registry = GateRegistry()

        # === Act ===
        count = registry.register_permissions(session)

        # === Assert ===
        assert count == 0
        assert registry.abilities() == []
        session.close()

    def test_gates_evaluate_live(self, seeded, registry, editor):
        assert not registry.check("delete-posts", editor)

        role_service.give_permission_to_role(seeded, "editor", "delete-posts")

        assert registry.check("delete-posts", editor)

    def test_refresh_picks_up_new_permissions(self, seeded, registry):
        role_service.create_permission(seeded, "Archive Posts", "archive-posts", "posts")
        role_service.delete_permission(seeded, "view-posts")

        registry.refresh(seeded)

        assert registry.has("archive-posts")
        assert not registry.has("view-posts")

    def test_custom_abilities_survive_refresh(self, seeded, registry, editor):
        registry.define("is-editor", lambda subject: subject.has_role("editor"))

        registry.refresh(seeded)

        assert registry.check("is-editor", editor)


# ===================================================================
#  Gate façade
# ===================================================================
class TestGate:
    def test_allows_and_denies(self, registry, editor):
        gate = Gate(editor, registry)

        assert gate.allows("edit-posts")
        assert gate.denies("delete-posts")
        assert gate.any("delete-posts", "edit-posts")
        assert gate.none("delete-posts", "delete-users")

    def test_unknown_gate_denies_even_super_admin(self, seeded, registry, make_user):
        user = make_user()
        role_service.assign_role(seeded, user, "super-admin")
        gate = Gate(Authorizer(seeded, user), registry)

        assert gate.allows("delete-users")
        assert gate.denies("not-a-gate")

    def test_authorize(self, registry, editor):
        gate = Gate(editor, registry)

        gate.authorize("edit-posts")
        with pytest.raises(ForbiddenError) as exc:
            gate.authorize("delete-posts")
        assert exc.value.message == "Unauthorized. Insufficient permissions."

    def test_no_subject(self, registry):
        gate = Gate(None, registry)

        assert not gate.allows("edit-posts")
        with pytest.raises(UnauthenticatedError):
            gate.authorize("edit-posts")


# ===================================================================
#  Template predicates
# ===================================================================
class TestTemplateDirectives:
    def test_role_predicates(self, editor):
        d = template_directives(editor)

        assert d["role"]("editor")
        assert d["hasrole"]("editor")
        assert d["hasanyrole"](["admin", "editor"])
        assert not d["hasallroles"](["admin", "editor"])

    def test_permission_predicates(self, editor):
        d = template_directives(editor)

        assert d["permission"]("edit-posts")
        assert d["haspermission"]("view-users")
        assert d["hasanypermission"](["delete-posts", "edit-posts"])
        assert d["hasallpermissions"](["view-posts", "edit-posts"])
        assert not d["hasallpermissions"](["view-posts", "delete-posts"])

    def test_no_subject_is_always_false(self):
        d = template_directives(None)

        assert sorted(d) == sorted([
            "role", "hasrole", "hasanyrole", "hasallroles",
            "permission", "haspermission", "hasanypermission", "hasallpermissions",
        ])
        assert not any(predicate("editor") for predicate in d.values())
