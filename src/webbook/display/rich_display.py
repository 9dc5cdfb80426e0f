"""Rich-based display system for webbook."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models import Book, BookChapter, ExploreKind, SearchBook
from .constants import EMOJI_MAP, STYLES


class RichDisplay:
    """
    Rich-based display of engine results.

    Renders search results, book information, chapter lists and chapter
    text as tables and panels.
    """

    def __init__(self, console: Console | None = None, quiet: bool = False):
        """
        Initialize RichDisplay.

        Args:
            console: Console to print to (defaults to stdout)
            quiet: If True, suppress all output except errors
        """
        self.console = console or Console()
        self.quiet = quiet

    def search_results(self, results: list[SearchBook], title: str = "Search results") -> None:
        """
        Display search or explore results in a table.

        Args:
            results: Entries in source order
            title: Table title
        """
        if self.quiet:
            return
        if not results:
            self.warning("No results")
            return

        table = Table(title=f"{EMOJI_MAP['search']} {title}", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name", style=STYLES["book_title"])
        table.add_column("Author")
        table.add_column("Kind")
        table.add_column("Latest")
        table.add_column("URL", style="dim", overflow="fold")

        for idx, entry in enumerate(results):
            table.add_row(
                str(idx),
                escape(entry.name),
                escape(entry.author),
                escape(entry.kind or ""),
                escape(entry.latest_chapter_title or ""),
                escape(entry.book_url),
            )
        self.console.print(table)

    def explore_kinds(self, kinds: list[ExploreKind]) -> None:
        """Display the explore menu of a source."""
        if self.quiet:
            return
        if not kinds:
            self.warning("Source has no explore entries")
            return

        table = Table(title="Explore")
        table.add_column("Title", style=STYLES["book_title"])
        table.add_column("URL", style="dim", overflow="fold")
        for kind in kinds:
            table.add_row(escape(kind.title), escape(kind.url or ""))
        self.console.print(table)

    def book_info(self, book: Book) -> None:
        """
        Display book metadata in a panel.

        Args:
            book: Resolved book record
        """
        if self.quiet:
            return

        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Field", style="bold cyan", no_wrap=True)
        table.add_column("Value", style=STYLES["book_info"])

        table.add_row(f"{EMOJI_MAP['book']} Title", escape(book.name or "N/A"))
        table.add_row(f"{EMOJI_MAP['author']} Author", escape(book.author or "N/A"))
        if book.kind:
            table.add_row(f"{EMOJI_MAP['kind']} Kind", escape(book.kind))
        if book.latest_chapter_title:
            table.add_row(f"{EMOJI_MAP['latest']} Latest", escape(book.latest_chapter_title))
        table.add_row(f"{EMOJI_MAP['link']} Toc", escape(book.toc_url or book.book_url))
        if book.intro:
            table.add_row("Intro", escape(book.intro))

        self.console.print(
            Panel(
                table,
                title="[bold green]Book Information[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def chapter_list(self, chapters: list[BookChapter]) -> None:
        """Display an ordered chapter list."""
        if self.quiet:
            return

        table = Table(title=f"{EMOJI_MAP['chapters']} {len(chapters)} chapters")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Title")
        table.add_column("URL", style="dim", overflow="fold")
        for chapter in chapters:
            title = escape(chapter.title)
            if chapter.is_volume:
                title = f"[{STYLES['volume']}]{title}[/]"
            table.add_row(str(chapter.index), title, escape(chapter.url))
        self.console.print(table)

    def content(self, chapter: BookChapter, text: str) -> None:
        """Display the text of one chapter."""
        if self.quiet:
            return
        self.console.print(
            Panel(
                escape(text),
                title=f"[{STYLES['book_title']}]{escape(chapter.title)}[/]",
                border_style="cyan",
            )
        )

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[{STYLES['warning']}]{EMOJI_MAP['warning']} {escape(message)}[/]")

    def error(self, message: str) -> None:
        """Errors are printed even in quiet mode."""
        self.console.print(f"[{STYLES['error']}]{EMOJI_MAP['error']} {escape(message)}[/]")
