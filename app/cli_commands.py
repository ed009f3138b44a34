"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask create-user: Create a staff user
"""

import click
from app.database import create_all, get_session
from app.models import AppUser, UserRole


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_all()
        click.echo(click.style('✅ Databastabeller skapade.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
    @click.option('--first-name', prompt=True, help='First name')
    @click.option('--last-name', prompt=True, help='Last name')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.TECHNICIAN.value,
                  show_default=True, help='Staff role')
    @click.option('--email', default=None, help='E-mail address')
    def create_user(username, password, first_name, last_name, role, email):
        """Create a staff user that can log in to the API."""
        username = username.strip()

        if len(password) < 6:
            click.echo(click.style('❌ Lösenordet måste vara minst 6 tecken.', fg='red'))
            return

        db_session = get_session()
        if db_session.query(AppUser).filter_by(username=username).first():
            click.echo(click.style(f'❌ Användarnamnet finns redan: {username}', fg='red'))
            return

        try:
            user = AppUser(
                username=username,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=(email or '').strip() or None,
                role=role,
            )
            user.set_password(password)
            db_session.add(user)
            db_session.commit()

            click.echo(click.style('\n✅ Användare skapad!', fg='green', bold=True))
            click.echo(f'   Användarnamn: {username}')
            click.echo(f'   Roll: {role}')
            click.echo(f'   ID: {user.id}')
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Kunde inte skapa användaren: {str(e)}', fg='red'))
