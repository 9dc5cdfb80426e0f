"""
Click-based CLI commands for webbook.

Every command takes a book source JSON file (a single source object, or an
exported list whose first entry is used) and runs one engine operation
against it, printing the result with Rich.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console

from .. import __version__
from ..display import RichDisplay, get_valid_log_levels, setup_rich_logger
from ..models import Book, BookSource, WebBookConfig
from ..utils.exceptions import WebBookError
from ..web_book import WebBook


T = TypeVar("T")

# Initialize Rich console for pretty output
console = Console()
display = RichDisplay(console)

SOURCE_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def create_engine(config: WebBookConfig) -> WebBook:
    """Build the engine used by the commands."""
    return WebBook(config)


def load_source(path: Path) -> BookSource:
    """Load a book source from a JSON file.

    Raises:
        click.ClickException: If the file is not a valid source
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, list):
        if not data:
            raise click.ClickException(f"{path} contains no sources")
        data = data[0]

    try:
        return BookSource.model_validate(data)
    except ValidationError as e:
        raise click.ClickException(f"{path} is not a valid book source:\n{e}") from e


def logging_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the shared ``--log-level`` and ``--log-file`` options."""
    func = click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write log records to this file.",
    )(func)
    func = click.option(
        "--log-level",
        type=click.Choice(get_valid_log_levels(), case_sensitive=False),
        default="WARNING",
        show_default=True,
        help="Set the logging level for detailed output.",
    )(func)
    return func


def configure(log_level: str, log_file: Path | None) -> WebBookConfig:
    """Set up logging and build the engine configuration."""
    setup_rich_logger("webbook", log_level, log_file=log_file)
    return WebBookConfig(log_level=log_level.upper(), log_file=log_file)


def run_operation(config: WebBookConfig, operation: Callable[[WebBook], Awaitable[T]]) -> T:
    """Run one engine operation, exiting with status 1 on engine errors."""

    async def main() -> T:
        async with create_engine(config) as engine:
            return await operation(engine)

    try:
        return asyncio.run(main())
    except WebBookError as e:
        display.error(str(e))
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """
    webbook - Rule-driven book source reader.

    Searches, explores and reads books from web sites described by
    declarative book source rules.

    \b
    Examples:
      # Search a source
      webbook search source.json "three body"

      # Show the chapter list of a book
      webbook toc source.json https://example.com/book/1

      # Read the first chapter
      webbook content source.json https://example.com/book/1 0
    """
    # If no subcommand is given, show help
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("source_file", type=SOURCE_FILE)
@click.argument("key")
@click.option("--page", "-p", type=click.IntRange(min=1), default=1, show_default=True)
@logging_options
def search(source_file: Path, key: str, page: int, log_level: str, log_file: Path | None) -> None:
    """Search SOURCE_FILE for KEY."""
    config = configure(log_level, log_file)
    source = load_source(source_file)
    results = run_operation(config, lambda engine: engine.search(source, key, page))
    display.search_results(results, title=f"Results for {key!r}")


@cli.command()
@click.argument("source_file", type=SOURCE_FILE)
@click.argument("url", required=False)
@click.option("--page", "-p", type=click.IntRange(min=1), default=1, show_default=True)
@logging_options
def explore(
    source_file: Path, url: str | None, page: int, log_level: str, log_file: Path | None
) -> None:
    """
    List the books of an explore URL.

    Without URL, list the explore entries of the source instead.
    """
    config = configure(log_level, log_file)
    source = load_source(source_file)
    if not url:
        display.explore_kinds(source.explore_kinds())
        return
    results = run_operation(config, lambda engine: engine.explore(source, url, page))
    display.search_results(results, title="Explore")


@cli.command()
@click.argument("source_file", type=SOURCE_FILE)
@click.argument("book_url")
@logging_options
def info(source_file: Path, book_url: str, log_level: str, log_file: Path | None) -> None:
    """Show the information of the book at BOOK_URL."""
    config = configure(log_level, log_file)
    source = load_source(source_file)
    book = Book(book_url=book_url)
    run_operation(config, lambda engine: engine.get_book_info(source, book))
    display.book_info(book)


@cli.command()
@click.argument("source_file", type=SOURCE_FILE)
@click.argument("book_url")
@logging_options
def toc(source_file: Path, book_url: str, log_level: str, log_file: Path | None) -> None:
    """Show the chapter list of the book at BOOK_URL."""
    config = configure(log_level, log_file)
    source = load_source(source_file)

    async def operation(engine: WebBook) -> list[Any]:
        book = Book(book_url=book_url)
        await engine.get_book_info(source, book)
        return await engine.get_chapter_list(source, book)

    display.chapter_list(run_operation(config, operation))


@cli.command()
@click.argument("source_file", type=SOURCE_FILE)
@click.argument("book_url")
@click.argument("index", type=click.IntRange(min=0))
@logging_options
def content(
    source_file: Path, book_url: str, index: int, log_level: str, log_file: Path | None
) -> None:
    """Print chapter INDEX of the book at BOOK_URL."""
    config = configure(log_level, log_file)
    source = load_source(source_file)

    async def operation(engine: WebBook) -> tuple[Any, str]:
        book = Book(book_url=book_url)
        await engine.get_book_info(source, book)
        chapters = await engine.get_chapter_list(source, book)
        if index >= len(chapters):
            raise click.ClickException(
                f"Chapter {index} does not exist (the book has {len(chapters)} chapters)"
            )
        next_url = chapters[index + 1].url if index + 1 < len(chapters) else None
        chapter = chapters[index]
        return chapter, await engine.get_content(source, book, chapter, next_url)

    chapter, text = run_operation(config, operation)
    display.content(chapter, text)


@cli.command()
def version() -> None:
    """Display the version of webbook."""
    console.print(f"[bold cyan]webbook[/bold cyan] version {__version__}")


# Entry point for the CLI
def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
