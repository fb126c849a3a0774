"""
Flask CLI commands.

    flask --app api create-admin --name "Ada" --email ada@example.com

The password is prompted for when not given. An existing account with that
email is promoted to admin (and reactivated) instead of duplicated.
"""
import click
from flask import current_app
from marshmallow import ValidationError

from models.schemas.common import validate_password_strength
from models.user import Role


def register_commands(app):
    @app.cli.command("create-admin")
    @click.option("--name", required=True)
    @click.option("--email", required=True)
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin(name, email, password):
        """Create the first admin account, or promote an existing user."""
        users = current_app.extensions["user_store"]
        existing = users.find_by_email(email)
        if existing is not None:
            users.update(existing.id, role=Role.ADMIN, is_active=True)
            click.echo(f"Promoted {existing.email} (id={existing.id}) to admin")
            return

        try:
            validate_password_strength(password)
        except ValidationError as err:
            raise click.BadParameter(" ".join(err.messages), param_hint="--password") from err
        user = current_app.extensions["auth_service"].create_user(name, email, password, role=Role.ADMIN)
        click.echo(f"Created admin {user.email} (id={user.id})")
