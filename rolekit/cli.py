"""rolekit CLI tool."""

from typing import List, Optional

import typer

from rolekit.core.exceptions import RolekitError

app = typer.Typer(name="rolekit", help="Role and permission management CLI")
db_app = typer.Typer(help="Database management commands")
role_app = typer.Typer(help="Role commands")
permission_app = typer.Typer(help="Permission commands")
user_app = typer.Typer(help="User grant commands")
app.add_typer(db_app, name="db")
app.add_typer(role_app, name="role")
app.add_typer(permission_app, name="permission")
app.add_typer(user_app, name="user")


def _session():
    from rolekit.db.session import SessionLocal
    return SessionLocal()


def _fail(message: str) -> None:
    typer.echo(f"❌ {message}", err=True)
    raise typer.Exit(code=1)


# ---- db ----
@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""
    from rolekit.db.session import init_db

    init_db()
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed permissions, roles and the super-admin user."""
    from rolekit.db.session import init_db
    from rolekit.db.seeds.seed_roles import seed_roles
    from rolekit.db.seeds.seed_super_admin import seed_super_admin

    init_db()
    db = _session()
    try:
        seed_roles(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Drop and recreate every table (DANGER)."""
    if not yes and not typer.confirm("⚠️  This will DROP all rolekit tables. Continue?"):
        raise typer.Abort()
    import rolekit.models  # noqa: F401
    from rolekit.db.base import Base
    from rolekit.db.session import engine
    from rolekit.services.cache_service import cache_service

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    cache_service.invalidate_pattern("rbac:*")
    cache_service.invalidate_pattern("setting:app:*")
    typer.echo("✅ Database reset")


# ---- role ----
@role_app.command("create")
def role_create(
    slug: str = typer.Argument(..., help="Unique role slug"),
    name: Optional[str] = typer.Option(None, help="Display name (defaults to the slug)"),
    level: int = typer.Option(0, help="Privilege level, higher is more privileged"),
    default: bool = typer.Option(False, "--default", help="Assign to newly registered users"),
    description: Optional[str] = typer.Option(None, help="Description"),
):
    """Create a role."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        role = role_service.create_role(db, name or slug, slug, level, default, description)
        typer.echo(f"✅ Created role '{role.slug}' (level {role.level})")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@role_app.command("list")
def role_list():
    """List roles with their permissions, highest level first."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        for role in role_service.list_roles(db, "desc"):
            slugs = ", ".join(p.slug for p in role.permissions) or "-"
            default = " [default]" if role.is_default else ""
            typer.echo(f"  {role.slug} ({role.level}){default}: {slugs}")
    finally:
        db.close()


@role_app.command("delete")
def role_delete(slug: str = typer.Argument(..., help="Role slug")):
    """Delete a role and all of its grants."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        role_service.delete_role(db, slug)
        typer.echo(f"✅ Deleted role '{slug}'")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@role_app.command("grant")
def role_grant(
    slug: str = typer.Argument(..., help="Role slug"),
    permissions: List[str] = typer.Argument(..., help="Permission slugs"),
):
    """Give permissions to a role."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        added = role_service.give_permission_to_role(db, slug, *permissions)
        typer.echo(f"✅ Granted {len(added)} permission(s) to '{slug}'")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@role_app.command("revoke")
def role_revoke(
    slug: str = typer.Argument(..., help="Role slug"),
    permissions: List[str] = typer.Argument(..., help="Permission slugs"),
):
    """Revoke permissions from a role."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        removed = role_service.revoke_permission_from_role(db, slug, *permissions)
        typer.echo(f"✅ Revoked {len(removed)} permission(s) from '{slug}'")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


# ---- permission ----
@permission_app.command("create")
def permission_create(
    slug: str = typer.Argument(..., help="Unique permission slug"),
    name: Optional[str] = typer.Option(None, help="Display name (defaults to the slug)"),
    group: Optional[str] = typer.Option(None, help="Group, e.g. posts"),
    description: Optional[str] = typer.Option(None, help="Description"),
):
    """Create a permission."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        permission = role_service.create_permission(db, name or slug, slug, group, description)
        typer.echo(f"✅ Created permission '{permission.slug}'")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@permission_app.command("list")
def permission_list(group: Optional[str] = typer.Option(None, help="Only this group")):
    """List permissions by group."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        for permission in role_service.list_permissions(db, group):
            typer.echo(f"  [{permission.group or '-'}] {permission.slug}  {permission.name}")
    finally:
        db.close()


@permission_app.command("delete")
def permission_delete(slug: str = typer.Argument(..., help="Permission slug")):
    """Delete a permission and all of its grants."""
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        role_service.delete_permission(db, slug)
        typer.echo(f"✅ Deleted permission '{slug}'")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


# ---- user ----
@user_app.command("assign")
def user_assign(
    email: str = typer.Argument(..., help="User email"),
    roles: List[str] = typer.Argument(..., help="Role slugs"),
):
    """Assign roles to a user."""
    from rolekit.services.auth_service import auth_service
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        user = auth_service.get_user_by_email(db, email)
        added = role_service.assign_role(db, user, *roles)
        typer.echo(f"✅ Assigned {len(added)} role(s) to {email}")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@user_app.command("remove")
def user_remove(
    email: str = typer.Argument(..., help="User email"),
    roles: List[str] = typer.Argument(..., help="Role slugs"),
):
    """Remove roles from a user."""
    from rolekit.services.auth_service import auth_service
    from rolekit.services.role_service import role_service

    db = _session()
    try:
        user = auth_service.get_user_by_email(db, email)
        removed = role_service.remove_role(db, user, *roles)
        typer.echo(f"✅ Removed {len(removed)} role(s) from {email}")
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()


@user_app.command("check")
def user_check(
    email: str = typer.Argument(..., help="User email"),
    ability: str = typer.Argument(..., help="Permission slug, or role slug with --role"),
    role: bool = typer.Option(False, "--role", help="Check a role instead of a permission"),
):
    """Print whether a user has a permission (or role). Exit code 1 if not."""
    from rolekit.services.auth_service import auth_service
    from rolekit.services.authorization import Authorizer

    db = _session()
    try:
        authorizer = Authorizer(db, auth_service.get_user_by_email(db, email))
        allowed = authorizer.has_role(ability) if role else authorizer.has_permission(ability)
    except RolekitError as e:
        _fail(e.message)
    finally:
        db.close()
    typer.echo(f"{email} {'can' if allowed else 'cannot'} {ability}")
    if not allowed:
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("rolekit.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
