#!/usr/bin/env python3
"""
Chirper - Social Feed Data Access
=================================

Operator CLI for checking configuration, initializing the database and
inspecting its contents.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py show-users                # List users
    python main.py show-timeline             # Global timeline
    python main.py show-timeline --user-id 3 # One user's timeline
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from chirper.config.settings import get_settings
from chirper.database.schema import DatabaseSchema
from chirper.database.connection import get_db_manager
from chirper.storage import PostRepository, UserRepository
from chirper.utils.logging import configure_application_logging
from chirper.utils.exceptions import ChirperError, get_user_friendly_message

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """Chirper - social feed data-access tools."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings()
    except ChirperError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking Chirper Configuration[/bold blue]")

    settings = get_settings()

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Database", _check_database_config),
        ("Logging", _check_logging_config),
        ("Users", _check_user_defaults),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        all_passed = all_passed and status

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing Chirper Database[/bold blue]")

    settings = get_settings()
    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()

    if not schema.verify_schema():
        console.print("[bold red]❌ Database schema verification failed[/bold red]")
        sys.exit(1)

    console.print("[bold green]✅ Database initialized successfully![/bold green]")

    async def load_info():
        db_manager = get_db_manager(settings.database.path)
        try:
            return await db_manager.get_database_info()
        finally:
            await db_manager.close_all_connections()

    info = asyncio.run(load_info())

    info_table = Table(title="Database Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")

    info_table.add_row("Database Path", settings.database.path)
    info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
    info_table.add_row("Page Size", f"{info['page_size']} bytes")
    for table_name, count in info["table_counts"].items():
        info_table.add_row(f"Rows in {table_name}", str(count))

    console.print(info_table)


@cli.command()
def show_users():
    """List all users, newest first."""
    console.print("[bold blue]👥 Users[/bold blue]")

    async def load_users():
        db_manager = get_db_manager()
        try:
            return await _user_repository(db_manager).get_all_users()
        finally:
            await db_manager.close_all_connections()

    users = asyncio.run(load_users())
    if not users:
        console.print("[yellow]⚠️ No users found in database[/yellow]")
        return

    users_table = Table(title=f"Users ({len(users)})")
    users_table.add_column("ID", style="cyan")
    users_table.add_column("Name", style="green")
    users_table.add_column("Email", style="blue")
    users_table.add_column("Joined")

    for user in users:
        users_table.add_row(
            str(user.id), user.name, user.email, user.created_at.strftime("%Y-%m-%d %H:%M")
        )

    console.print(users_table)


@cli.command()
@click.option('--user-id', type=int, help='Show one user\'s timeline instead of the global one')
def show_timeline(user_id):
    """Show the merged timeline of posts and retweets."""

    async def load_timeline():
        db_manager = get_db_manager()
        try:
            if user_id is None:
                return await PostRepository(db_manager).get_all_posts()
            user = await _user_repository(db_manager).get_user_with_posts(user_id)
            return None if user is None else user.posts
        finally:
            await db_manager.close_all_connections()

    entries = asyncio.run(load_timeline())
    if entries is None:
        console.print(f"[bold red]❌ User {user_id} does not exist[/bold red]")
        sys.exit(1)
    if not entries:
        console.print("[yellow]⚠️ Timeline is empty[/yellow]")
        return

    title = "Global timeline" if user_id is None else f"Timeline of user {user_id}"
    timeline_table = Table(title=f"{title} ({len(entries)})")
    timeline_table.add_column("When", style="cyan")
    timeline_table.add_column("Post", style="yellow")
    timeline_table.add_column("Author", style="green")
    timeline_table.add_column("Retweeted by", style="magenta")
    timeline_table.add_column("Content")

    for entry in entries:
        content = entry.content
        timeline_table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            str(entry.id),
            entry.user.name,
            entry.retweeted_by or "",
            content[:47] + "..." if len(content) > 50 else content,
        )

    console.print(timeline_table)


def _user_repository(db_manager) -> UserRepository:
    """User repository wired with the configured profile defaults."""
    return UserRepository(
        db_manager, default_image_name=get_settings().users.default_image_name
    )


# Helper functions for configuration checks
def _check_database_config(settings) -> tuple[bool, str]:
    try:
        Path(settings.database.path).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return False, str(e)
    return True, f"Path: {settings.database.path}, Pool: {settings.database.pool_size}"


def _check_logging_config(settings) -> tuple[bool, str]:
    if settings.logging.file_path:
        try:
            Path(settings.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, str(e)
    return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"


def _check_user_defaults(settings) -> tuple[bool, str]:
    return True, f"Default image: {settings.users.default_image_name}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Chirper interrupted by user[/yellow]")
        sys.exit(130)
    except ChirperError as e:
        console.print(f"\n[bold red]❌ {get_user_friendly_message(e)}: {e}[/bold red]")
        sys.exit(1)
