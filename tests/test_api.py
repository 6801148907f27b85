import pytest

from rolekit.models import AuditLog
from rolekit.services.gate import gate_registry
from rolekit.services.role_service import role_service


@pytest.fixture
def admin(seeded, make_user):
    user = make_user(email="admin@example.com")
    role_service.assign_role(seeded, user, "admin")
    return user


@pytest.fixture
def editor(seeded, make_user):
    user = make_user(email="editor@example.com")
    role_service.assign_role(seeded, user, "editor")
    return user


# ===================================================================
#  Auth
# ===================================================================
class TestAuthApi:
    def test_register_assigns_default_roles(self, client, seeded):
        response = client.post("/api/auth/register", json={
            "email": "new@example.com", "password": "secret123", "full_name": "New User",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["roles"] == ["user"]
        assert body["permissions"] == ["view-posts"]
        assert body["is_super_admin"] is False

    def test_register_duplicate_email(self, client, seeded, make_user):
        make_user(email="taken@example.com")

        response = client.post("/api/auth/register", json={
            "email": "taken@example.com", "password": "secret123", "full_name": "Dup",
        })

        assert response.status_code == 409

    def test_login_and_me(self, client, seeded, editor):
        login = client.post("/api/auth/login", json={"email": "editor@example.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["roles"] == ["editor"]
        assert "edit-posts" in me.json()["permissions"]

    def test_login_bad_password(self, client, seeded, editor):
        response = client.post("/api/auth/login", json={"email": "editor@example.com", "password": "wrong-one"})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid email or password"}

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_login_is_audited(self, client, seeded, editor):
        client.post("/api/auth/login", json={"email": "editor@example.com", "password": "secret123"})

        entry = seeded.query(AuditLog).filter(AuditLog.action == "user.login").one()
        assert entry.actor_email == "editor@example.com"
        assert entry.resource_id == str(editor.id)

    def test_can_checks_named_gates(self, client, seeded, editor, auth_headers):
        gate_registry.register_permissions(seeded)
        headers = auth_headers(editor)

        allowed = client.get("/api/auth/can/edit-posts", headers=headers)
        denied = client.get("/api/auth/can/manage-roles", headers=headers)

        assert allowed.json() == {"ability": "edit-posts", "allowed": True}
        assert denied.json() == {"ability": "manage-roles", "allowed": False}


# ===================================================================
#  Roles & permissions
# ===================================================================
class TestRolesApi:
    def test_guarded_by_manage_roles(self, client, editor, auth_headers):
        response = client.get("/api/roles/", headers=auth_headers(editor))

        assert response.status_code == 403
        assert response.json() == {"message": "Unauthorized. Insufficient permissions."}

    def test_list_roles(self, client, admin, auth_headers):
        response = client.get("/api/roles/?direction=desc", headers=auth_headers(admin))

        assert response.status_code == 200
        assert [r["slug"] for r in response.json()][0] == "super-admin"

    def test_create_role_with_permissions(self, client, seeded, admin, auth_headers):
        response = client.post("/api/roles/", headers=auth_headers(admin), json={
            "name": "Moderator", "slug": "moderator", "level": 30,
            "permissions": ["view-posts", "delete-posts"],
        })

        assert response.status_code == 201
        assert sorted(p["slug"] for p in response.json()["permissions"]) == ["delete-posts", "view-posts"]
        assert seeded.query(AuditLog).filter(AuditLog.action == "role.created").count() == 1

    def test_create_duplicate_role(self, client, admin, auth_headers):
        response = client.post("/api/roles/", headers=auth_headers(admin), json={"name": "Editor", "slug": "editor"})

        assert response.status_code == 409
        assert response.json() == {"message": "A role with slug 'editor' already exists."}

    def test_unknown_role_is_404(self, client, admin, auth_headers):
        assert client.get("/api/roles/ghost", headers=auth_headers(admin)).status_code == 404

    def test_sync_and_toggle_role_permissions(self, client, seeded, admin, auth_headers):
        headers = auth_headers(admin)

        synced = client.put("/api/roles/author/permissions", headers=headers, json={"slugs": ["view-posts"]})
        added = client.post("/api/roles/author/permissions/publish-posts", headers=headers)
        removed = client.delete("/api/roles/author/permissions/view-posts", headers=headers)

        assert synced.status_code == 200
        assert len(synced.json()["detached"]) == 2
        assert added.status_code == 200
        assert removed.status_code == 200
        detail = client.get("/api/roles/author", headers=headers).json()
        assert [p["slug"] for p in detail["permissions"]] == ["publish-posts"]

    def test_delete_role(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        assert client.delete("/api/roles/author", headers=headers).status_code == 200
        assert client.get("/api/roles/author", headers=headers).status_code == 404


class TestPermissionsApi:
    def test_create_and_delete_refresh_gates(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        created = client.post("/api/permissions/", headers=headers, json={
            "name": "Export", "slug": "export-data", "group": "data",
        })
        assert created.status_code == 201
        assert gate_registry.has("export-data")

        assert client.delete("/api/permissions/export-data", headers=headers).status_code == 200
        assert not gate_registry.has("export-data")

    def test_invalid_slug_is_rejected(self, client, admin, auth_headers):
        response = client.post("/api/permissions/", headers=auth_headers(admin), json={
            "name": "Bad", "slug": "Has Spaces",
        })

        assert response.status_code == 422

    @pytest.mark.parametrize("path", ["/api/permissions/", "/api/roles/"])
    def test_slug_longer_than_column_is_rejected(self, client, admin, auth_headers, path):
        response = client.post(path, headers=auth_headers(admin), json={
            "name": "Long", "slug": "a" * 101,
        })

        assert response.status_code == 422

    def test_grouped(self, client, admin, auth_headers):
        response = client.get("/api/permissions/grouped", headers=auth_headers(admin))

        assert sorted(response.json()) == ["admin", "posts", "settings", "users"]


# ===================================================================
#  User grants
# ===================================================================
class TestUsersApi:
    def test_sync_user_roles_and_check(self, client, admin, editor, auth_headers):
        headers = auth_headers(admin)

        synced = client.put(f"/api/users/{editor.id}/roles", headers=headers, json={"slugs": ["author"]})
        check = client.get(f"/api/users/{editor.id}/check", params={"ability": "publish-posts"}, headers=headers)

        assert synced.status_code == 200
        assert check.json() == {"ability": "publish-posts", "allowed": False}

    def test_direct_permission_grant(self, client, admin, editor, auth_headers):
        headers = auth_headers(admin)

        client.post(f"/api/users/{editor.id}/permissions/delete-posts", headers=headers)
        direct = client.get(f"/api/users/{editor.id}/permissions?direct=true", headers=headers)
        check = client.get(f"/api/users/{editor.id}/check?ability=delete-posts", headers=headers)

        assert [p["slug"] for p in direct.json()] == ["delete-posts"]
        assert check.json()["allowed"] is True

    def test_unknown_user_is_404(self, client, admin, auth_headers):
        assert client.get("/api/users/9999/roles", headers=auth_headers(admin)).status_code == 404

    def test_filter_users_by_role(self, client, admin, editor, auth_headers):
        response = client.get("/api/users/?role=editor", headers=auth_headers(admin))

        assert [u["email"] for u in response.json()] == ["editor@example.com"]


# ===================================================================
#  Settings
# ===================================================================
class TestSettingsApi:
    def test_editor_cannot_read_settings(self, client, editor, auth_headers):
        assert client.get("/api/settings/", headers=auth_headers(editor)).status_code == 403

    def test_put_get_delete(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        put = client.put("/api/settings/general/site_name", headers=headers, json={"value": "rolekit", "is_public": True})
        got = client.get("/api/settings/general/site_name", headers=headers)
        public = client.get("/api/settings/public")

        assert put.json() == {"group": "general", "key": "site_name", "value": "rolekit"}
        assert got.json()["value"] == "rolekit"
        assert public.json() == {"general.site_name": "rolekit"}

        assert client.delete("/api/settings/general/site_name", headers=headers).status_code == 200
        assert client.get("/api/settings/general/site_name", headers=headers).status_code == 404


# ===================================================================
#  Audit trail
# ===================================================================
class TestAuditApi:
    def test_lists_changes_for_one_role(self, client, seeded, admin, auth_headers):
        # === Arrange ===
        gate_registry.register_permissions(seeded)
        headers = auth_headers(admin)
        client.post("/api/roles/author/permissions/publish-posts", headers=headers)
        client.post("/api/roles/editor/permissions/delete-posts", headers=headers)

        # === Act ===
        response = client.get("/api/audit/?resource_type=role&resource_id=author", headers=headers)

        # === Assert ===
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["logs"][0]["actor_email"] == "admin@example.com"

    def test_guarded_by_manage_roles_gate(self, client, seeded, editor, auth_headers):
        gate_registry.register_permissions(seeded)

        response = client.get("/api/audit/", headers=auth_headers(editor))

        assert response.status_code == 403

    def test_missing_gate_denies(self, client, admin, auth_headers):
        assert client.get("/api/audit/", headers=auth_headers(admin)).status_code == 403


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"
    assert response.json()["redis"] == "ok"
