"""CLI tools for CFS portal administration."""

import click

from cfs_portal.db.enums import Role
from cfs_portal.db.models import Membership, Organization, Profile
from cfs_portal.db.session import SessionLocal, engine


@click.group()
def cli():
    """CFS portal CLI tools."""
    pass


@cli.command()
def init_db():
    """
    Create all tables on the configured database (local development only).

    Production schemas are managed by alembic.
    """
    from cfs_portal.db.base import Base
    import cfs_portal.db.models  # noqa: F401 - registers tables

    Base.metadata.create_all(bind=engine)
    click.echo("✓ Tables created")


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
def create_org(name: str, slug: str):
    """
    Create an organization.

    Example:
        python -m cfs_portal.cli create-org --name "Eastside Outreach" --slug "eastside"
    """
    db = SessionLocal()
    try:
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            raise SystemExit(1)

        existing = db.query(Organization).filter(Organization.slug == slug).first()
        if existing:
            click.echo(f"❌ Organization with slug '{slug}' already exists")
            raise SystemExit(1)

        org = Organization(name=name, slug=slug)
        db.add(org)
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email")
@click.option("--display-name", required=True, help="Name shown to staff")
@click.option("--global-admin", is_flag=True, default=False, help="Grant every CFS permission everywhere")
def create_profile(email: str, display_name: str, global_admin: bool):
    """Create an approved staff profile."""
    db = SessionLocal()
    try:
        email = email.lower().strip()
        if db.query(Profile).filter(Profile.email == email).first():
            click.echo(f"❌ Profile already exists: {email}")
            raise SystemExit(1)

        profile = Profile(
            email=email,
            display_name=display_name,
            is_approved=True,
            is_global_admin=global_admin,
        )
        db.add(profile)
        db.commit()
        click.echo(f"✓ Created profile {email}")
        click.echo(f"  ID: {profile.id}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email")
@click.option("--org-slug", required=True, help="Organization slug")
@click.option(
    "--role",
    required=True,
    type=click.Choice([role.value for role in Role]),
    help="Membership role",
)
def grant_role(email: str, org_slug: str, role: str):
    """
    Add (or change) a profile's membership role in an organization.

    Example:
        python -m cfs_portal.cli grant-role --email "lee@example.org" --org-slug "eastside" --role coordinator
    """
    db = SessionLocal()
    try:
        profile = db.query(Profile).filter(Profile.email == email.lower().strip()).first()
        if not profile:
            click.echo(f"❌ Profile not found: {email}")
            raise SystemExit(1)
        org = db.query(Organization).filter(Organization.slug == org_slug.lower()).first()
        if not org:
            click.echo(f"❌ Organization not found: {org_slug}")
            raise SystemExit(1)

        membership = db.query(Membership).filter(
            Membership.profile_id == profile.id,
            Membership.organization_id == org.id,
        ).first()
        if membership:
            membership.role = role
        else:
            db.add(Membership(profile_id=profile.id, organization_id=org.id, role=role))
        if profile.organization_id is None:
            profile.organization_id = org.id
        db.commit()

        click.echo(f"✓ {email} is now {role} in {org.name}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a profile by bumping its token_version.

    Example:
        python -m cfs_portal.cli revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        profile = db.query(Profile).filter(Profile.email == email.lower()).first()
        if not profile:
            click.echo(f"❌ Profile not found: {email}")
            raise SystemExit(1)

        old_version = profile.token_version
        profile.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {profile.token_version}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email")
def issue_session_token(email: str):
    """Print a session token for local API testing (dev only)."""
    from cfs_portal.core.config import settings
    from cfs_portal.core.security import create_session_token

    if settings.ENV != "dev":
        click.echo("❌ Session tokens can only be issued from the CLI in dev")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        profile = db.query(Profile).filter(Profile.email == email.lower()).first()
        if not profile:
            click.echo(f"❌ Profile not found: {email}")
            raise SystemExit(1)
        click.echo(create_session_token(profile.id, profile.token_version))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
