import json

import click
from flask.cli import with_appcontext

from notesync.errors import PersistenceError, ResourceNotFoundError
from notesync.extensions import db
from notesync.services import get_services


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Initialize the database tables."""
    click.echo('Initializing the database...')
    db.create_all()
    click.echo('Database initialized successfully!')


@click.command('create-user')
@click.option('--handle', prompt=True, help='Public handle used in note links')
@click.option('--did', default=None, help='Bluesky DID to post as')
@with_appcontext
def create_user_command(handle, did):
    """Create a new user."""
    user_repository = get_services().user_repository
    if user_repository.get_by_handle(handle):
        click.echo(f"User '{handle}' already exists.")
        return

    try:
        user = user_repository.create(handle, did=did)
    except PersistenceError as e:
        raise click.ClickException(f"Error creating user: {e.message}")
    click.echo(f"User {handle} created successfully with ID {user.id}")


@click.command('add-book')
@click.option('--user-id', required=True, help='ID of the owning user')
@click.option('--owner', required=True, help='GitHub owner login')
@click.option('--repo', required=True, help='GitHub repository name')
@click.option('--installation-id', type=int, default=None, help='GitHub App installation ID')
@with_appcontext
def add_book_command(user_id, owner, repo, installation_id):
    """Track a GitHub repository as a book."""
    services = get_services()
    if services.user_repository.get_by_id(user_id) is None:
        raise click.ClickException(f"No user with ID {user_id}")
    if services.book_repository.find_by_owner_and_repo(owner, repo):
        raise click.ClickException(f"{owner}/{repo} is already tracked")

    try:
        book = services.book_repository.create(user_id, owner, repo, installation_id=installation_id)
    except PersistenceError as e:
        raise click.ClickException(f"Error creating book: {e.message}")
    click.echo(f"Book {owner}/{repo} created with ID {book.id}")


@click.command('sync-book')
@click.option('--book-id', required=True, help='ID of the book to sync')
@with_appcontext
def sync_book_command(book_id):
    """Run a full sync of a book in the foreground."""
    try:
        attempt = get_services().sync_service.sync_listing(book_id)
    except ResourceNotFoundError as e:
        raise click.ClickException(e.message)

    click.echo(json.dumps(attempt.to_dict(), indent=2))
    if not attempt.succeeded:
        raise click.ClickException(f"Sync failed: {attempt.fatal_error}")


@click.command('book-status')
@click.option('--book-id', required=True, help='ID of the book')
@with_appcontext
def book_status_command(book_id):
    """Show the sync status of a book."""
    try:
        status = get_services().sync_service.get_sync_status(book_id)
    except ResourceNotFoundError as e:
        raise click.ClickException(e.message)
    click.echo(json.dumps(status, indent=2))


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(add_book_command)
    app.cli.add_command(sync_book_command)
    app.cli.add_command(book_status_command)
