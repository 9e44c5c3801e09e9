# Overview: Flask CLI command groups for bootstrap, store credentials, and maintenance.

# backend/vales/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create the default stores when the directory is empty. Passwords come from
#   PASSWORD_<LOGIN> environment variables (e.g. PASSWORD_CENTRAL).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Store credentials:
# - python -m flask stores list
#   List stores (never prints password hashes).
# - python -m flask stores create --name "Local Norte" --login norte --password "..."
#   Create a store, or update its password when the login already exists.
# - python -m flask stores set-password --login norte --password "..."
#   Re-hash and replace a store password (revokes its sessions).
# - python -m flask stores verify [--fix]
#   Report non-bcrypt or mismatching passwords; --fix re-hashes from PASSWORD_<LOGIN>.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.

import os

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ValesError
from .models import Store
from .services import auth_service, session_service, store_service


DEFAULT_STORES = [
    ("Local Central", "central"),
    ("Local Norte", "norte"),
    ("Local Sur", "sur"),
    ("Local Este", "este"),
    ("Local Oeste", "oeste"),
    ("Local Centro", "centro"),
]


def password_env_var(login: str) -> str:
    return f"PASSWORD_{login.upper()}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create the default stores if the directory is empty.

    Each password is read from PASSWORD_<LOGIN>; stores whose variable is
    missing or too short are reported and skipped. Nothing is hardcoded.
    """
    click.echo("START Initializing stores...")

    existing = db.session.query(Store).count()
    if existing:
        click.echo(f"PASS {existing} stores already exist, nothing to do")
        return

    created = 0
    for name, login in DEFAULT_STORES:
        env_var = password_env_var(login)
        password = os.environ.get(env_var)
        if not password:
            click.echo(f"FAIL Missing environment variable {env_var} for '{login}'")
            continue

        try:
            store = store_service.create(name, login, password)
        except ValesError as e:
            click.echo(f"FAIL Could not create '{login}': {e.message}")
            continue

        created += 1
        click.echo(f"PASS Created store: {store.name} ({store.login}, ID: {store.id})")

    click.echo(f"DONE {created}/{len(DEFAULT_STORES)} stores created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('stores')
def stores_group():
    """Store directory and credential commands."""


@stores_group.command('list')
@with_appcontext
def list_stores_cli():
    """List all stores ordered by name."""
    stores = store_service.list_all()
    if not stores:
        click.echo("No stores found. Run 'python -m flask system init' first.")
        return

    for store in stores:
        click.echo(f"{store.id:>4}  {store.login:<16} {store.name}")


@stores_group.command('create')
@click.option('--name', prompt=True, help='Display name, e.g. "Local Norte"')
@click.option('--login', prompt=True, help='Login (unique)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (8+ chars)')
@with_appcontext
def create_store_cli(name, login, password):
    """
    Create a store, or update the password of an existing login.
    """
    try:
        store, created = store_service.upsert(name, login, password)
    except ValesError as e:
        click.echo(f"FAIL Could not create store '{login}': {e.message}")
        raise SystemExit(1)

    if created:
        click.echo(f"PASS Created store: {store.name} ({store.login}, ID: {store.id})")
    else:
        click.echo(f"WARN  Store '{store.login}' already exists, password updated")


@stores_group.command('set-password')
@click.option('--login', prompt=True, help='Store login')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='New password (8+ chars)')
@with_appcontext
def set_password_cli(login, password):
    """Replace a store password and revoke its sessions."""
    store = store_service.find_by_login(login)
    if not store:
        click.echo(f"FAIL Store '{login}' not found")
        raise SystemExit(1)

    try:
        store_service.update(store.id, password=password)
    except ValesError as e:
        click.echo(f"FAIL Could not update password: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Password updated for '{login}'")


@stores_group.command('verify')
@click.option('--fix', is_flag=True, help='Re-hash broken passwords from PASSWORD_<LOGIN>')
@with_appcontext
def verify_stores_cli(fix):
    """
    Check stored credentials.

    Reports stores whose password column is not a bcrypt hash (e.g. legacy
    plaintext), stores whose hash does not match PASSWORD_<LOGIN> when that
    variable is set, logins outside the default set, and default stores
    that are missing. Exits 1 while any credential problem remains.
    """
    click.echo("START Verifying stores...")

    try:
        stores = store_service.list_all()
    except ValesError as e:
        click.echo(f"FAIL Database check failed: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Database reachable, {len(stores)} stores found")

    known_logins = {login for _, login in DEFAULT_STORES}
    for _, login in DEFAULT_STORES:
        if not any(store.login == login for store in stores):
            click.echo(f"WARN  Default store '{login}' is missing (run 'python -m flask system init')")

    broken = []
    for store in stores:
        if store.login not in known_logins:
            click.echo(f"WARN  Unknown login '{store.login}' ({store.name})")

        env_password = os.environ.get(password_env_var(store.login))
        if not auth_service.is_bcrypt_hash(store.password_hash):
            click.echo(f"FAIL Store '{store.login}' has no valid bcrypt hash")
            broken.append(store)
        elif env_password and not auth_service.verify_password(env_password, store.password_hash):
            click.echo(f"FAIL Store '{store.login}' does not match {password_env_var(store.login)}")
            broken.append(store)
        else:
            click.echo(f"PASS Store '{store.login}' OK")

    if not broken:
        click.echo("DONE No credential problems found")
        return

    if not fix:
        click.echo(f"DONE {len(broken)} stores need attention (re-run with --fix)")
        raise SystemExit(1)

    remaining = 0
    for store in broken:
        env_var = password_env_var(store.login)
        password = os.environ.get(env_var)
        if not password:
            click.echo(f"FAIL Missing environment variable {env_var} for '{store.login}'")
            remaining += 1
            continue

        try:
            store_service.update(store.id, password=password)
        except ValesError as e:
            click.echo(f"FAIL Could not fix '{store.login}': {e.message}")
            remaining += 1
            continue

        click.echo(f"PASS Re-hashed password for '{store.login}'")

    click.echo(f"DONE {len(broken) - remaining}/{len(broken)} stores fixed")
    if remaining:
        raise SystemExit(1)


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked session tokens older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session tokens")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(maintenance_group)
