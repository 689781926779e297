import click
from flask.cli import with_appcontext
from sqlalchemy import func

from betaboard.extensions import db
from betaboard.models.user import User
from betaboard.models.tester import Tester, STATUS_PENDING, STATUS_APPROVED
from betaboard.utils.validators import validate_email


def _find_user(email: str):
    return db.session.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()


@click.group()
def admins():
    """Admin account management."""


@admins.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@with_appcontext
def admins_create(email, password):
    check = validate_email(email)
    if not check.is_valid:
        raise click.ClickException(check.message)
    if len(password) < 8:
        raise click.ClickException("Password must be at least 8 characters long")
    # fail fast if user exists
    if _find_user(email):
        raise click.ClickException("User already exists")

    user = User(email=email.strip().lower(), is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    click.echo(f"Admin created id={user.id} email={user.email}")


@admins.command("deactivate")
@click.option("--email", required=True)
@with_appcontext
def admins_deactivate(email):
    user = _find_user(email)
    if not user:
        raise click.ClickException(f"No admin with email {email}")
    user.is_active = False
    db.session.commit()
    click.echo(f"Admin deactivated id={user.id} email={user.email}")


@click.group()
def testers():
    """Tester maintenance."""


@testers.command("approve-pending")
@with_appcontext
def testers_approve_pending():
    updated = (
        db.session.query(Tester)
        .filter(Tester.status == STATUS_PENDING)
        .update({Tester.status: STATUS_APPROVED}, synchronize_session=False)
    )
    db.session.commit()
    click.echo(f"Approved {updated} pending tester(s)")


def register_cli(app):
    app.cli.add_command(admins)
    app.cli.add_command(testers)
