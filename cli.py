#!/usr/bin/env python3
"""
CLI tool for local story management.

Provides commands for setting up the database, creating users, listing,
showing, generating and exporting stories, and running the Telegram bot
without needing to use the web UI.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple, List, Dict, Any
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import click  # noqa: E402
from werkzeug.security import generate_password_hash  # noqa: E402

from src.storyforge.config import Settings  # noqa: E402
from src.storyforge.models import NewUser, Story, StoryLength, THEMES  # noqa: E402
from src.storyforge.services import (  # noqa: E402
    StoryExportService,
    StoryGenerationService,
    StoryService,
)
from src.storyforge.utils import (  # noqa: E402
    create_storage,
    init_database,
    StoryGenerationClient,
    StorageError,
    StorageIntegrityError,
)
from src.storyforge.utils.storage import StoryStorage  # noqa: E402


def get_settings(ctx: click.Context) -> Settings:
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = Settings.from_env()
    return ctx.obj["settings"]


def get_storage(ctx: click.Context) -> StoryStorage:
    """Create the configured story store on first use."""
    if "storage" not in ctx.obj:
        ctx.obj["storage"] = create_storage(get_settings(ctx))
    return ctx.obj["storage"]


def get_generation_client(ctx: click.Context) -> StoryGenerationClient:
    if "generation_client" not in ctx.obj:
        ctx.obj["generation_client"] = StoryGenerationClient()
    return ctx.obj["generation_client"]


def parse_character(value: str) -> Dict[str, Any]:
    """Split ``NAME[:DESCRIPTION]`` into a character dict."""
    name, _, description = value.partition(":")
    return {"name": name.strip(), "description": description.strip() or None}


def print_story(story: Story) -> None:
    click.echo(f"#{story.id} {story.title}")
    click.echo(f"Theme: {story.theme}")
    if story.setting:
        click.echo(f"Setting: {story.setting}")
    click.echo(f"Generated: {story.date_generated.isoformat()}")
    if story.characters:
        click.echo("Characters:")
        for character in story.characters:
            suffix = f": {character.description}" if character.description else ""
            click.echo(f"  • {character.name}{suffix}")
    click.echo("")
    click.echo(story.content)


@click.group()
@click.pass_context
def cli(ctx: click.Context):
    """CLI tool for local story management."""
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if get_settings(ctx).debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command('init-db')
@click.option('--path', 'db_path', type=click.Path(dir_okay=False), help='Database file (default: DATABASE_PATH)')
@click.pass_context
def init_db(ctx: click.Context, db_path: Optional[str]) -> None:
    """Create the SQLite database and its tables."""
    path = Path(db_path) if db_path else get_settings(ctx).database_path
    try:
        init_database(path)
    except StorageError as e:
        click.echo(f"Error initializing database: {e}", err=True)
        sys.exit(1)
    click.echo(f"✓ Database ready at {path}")


@cli.command('create-user')
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True,
              help='Password (prompted if omitted)')
@click.pass_context
def create_user(ctx: click.Context, username: str, password: str) -> None:
    """Create a user account with a hashed password."""
    storage = get_storage(ctx)
    try:
        user = storage.create_user(NewUser(username=username, password=generate_password_hash(password)))
    except StorageIntegrityError:
        click.echo(f"Error: User '{username}' already exists.", err=True)
        sys.exit(1)
    click.echo(f"✓ Created user '{user.username}' (id {user.id})")


@cli.command()
@click.option('--limit', default=None, type=int, help='Number of stories (default: RECENT_STORIES_LIMIT)')
@click.pass_context
def recent(ctx: click.Context, limit: Optional[int]) -> None:
    """List the most recent stories, newest first."""
    service = StoryService(get_storage(ctx), recent_limit=get_settings(ctx).recent_stories_limit)
    outcome = service.recent_stories(limit)
    if not outcome.is_ok:
        click.echo(f"Error: {outcome.message}", err=True)
        sys.exit(1)

    stories: List[Story] = outcome.value
    if not stories:
        click.echo("No stories found.")
        return

    click.echo(f"\n{'ID':<6} {'Theme':<12} {'Generated':<20} {'Title':<50}")
    click.echo("-" * 90)
    for story in stories:
        title = story.title if len(story.title) <= 48 else story.title[:45] + "..."
        generated = story.date_generated.strftime("%Y-%m-%d %H:%M")
        click.echo(f"{story.id:<6} {story.theme:<12} {generated:<20} {title:<50}")


@cli.command()
@click.argument('story_id')
@click.pass_context
def show(ctx: click.Context, story_id: str) -> None:
    """Print a story with its characters."""
    outcome = StoryService(get_storage(ctx)).get_story(story_id)
    if not outcome.is_ok:
        click.echo(f"Error: {outcome.message}", err=True)
        sys.exit(1)
    print_story(outcome.value)


@cli.command()
@click.option('--theme', required=True, type=click.Choice(THEMES, case_sensitive=False), help='Story theme')
@click.option('--length', required=True, type=click.Choice([length.value for length in StoryLength]),
              help='Story length')
@click.option('--title', default=None, help='Story title (generated if omitted)')
@click.option('--setting', default=None, help='Where the story takes place')
@click.option('--character', 'characters', multiple=True, metavar='NAME[:DESCRIPTION]',
              help='Character to include (repeatable)')
@click.option('--plot', default=None, help='Additional plot elements')
@click.pass_context
def generate(
    ctx: click.Context,
    theme: str,
    length: str,
    title: Optional[str],
    setting: Optional[str],
    characters: Tuple[str, ...],
    plot: Optional[str]
) -> None:
    """Generate a story with the configured LLM and save it."""
    payload = {
        "theme": theme.lower(),
        "length": length,
        "title": title,
        "setting": setting,
        "characters": [parse_character(value) for value in characters] or None,
        "plotElements": plot,
    }
    service = StoryGenerationService(get_storage(ctx), get_generation_client(ctx))
    click.echo("Generating story...")
    outcome = service.generate(payload)
    if not outcome.is_ok:
        click.echo(f"Error: {outcome.message}", err=True)
        sys.exit(1)
    print_story(outcome.value)


@cli.command()
@click.argument('story_id', type=int)
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file path (default: <title>.pdf)')
@click.pass_context
def export(ctx: click.Context, story_id: int, output: Optional[str]) -> None:
    """Export a story to PDF."""
    outcome = StoryExportService(get_storage(ctx)).export_story(story_id)
    if not outcome.is_ok:
        click.echo(f"Error: {outcome.message}", err=True)
        sys.exit(1)

    document = outcome.value
    output_path = Path(output) if output else Path(document.filename)
    output_path.write_bytes(document.content)
    click.echo(f"✓ Exported story {story_id} to {output_path}")


@cli.command()
@click.pass_context
def bot(ctx: click.Context) -> None:
    """Run the Telegram bot (long polling)."""
    from src.storyforge.bot import ConversationBot, SessionStore
    from src.storyforge.bot.telegram import TelegramBotRunner, TelegramClient

    settings = get_settings(ctx)
    if not settings.telegram_bot_token:
        click.echo("Error: TELEGRAM_BOT_TOKEN is not set.", err=True)
        sys.exit(1)

    sessions = SessionStore(ttl_seconds=settings.bot_session_ttl_seconds)
    client = TelegramClient(settings.telegram_bot_token)
    conversation = ConversationBot(
        client,
        StoryGenerationService(get_storage(ctx), get_generation_client(ctx)),
        sessions,
    )
    runner = TelegramBotRunner(
        client,
        conversation,
        sessions,
        poll_timeout=settings.bot_poll_timeout,
        max_workers=settings.bot_workers,
    )
    try:
        runner.run_forever()
    except KeyboardInterrupt:
        runner.stop()
        click.echo("Bot stopped.")


if __name__ == '__main__':
    cli(obj={})
