"""Command-line interface for the news aggregator."""

import asyncio
import json
import logging
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from news_aggregator.aggregator.service import AggregationError, NewsAggregator
from news_aggregator.cache.cache import ArticleCache
from news_aggregator.config import Settings, get_settings
from news_aggregator.models.schemas import Article, DeduplicationStrategy

# Configure logging with Rich handler for better formatting
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="news-aggregator",
    help="Multi-source news aggregator - fetch, merge and rank stories across providers",
)
console = Console()

LATEST_SNAPSHOT = "latest"


def _configure_logging(settings: Settings, verbose: bool, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    # Quiet mode for JSON output
    if quiet and not verbose:
        level = max(level, logging.WARNING)
    logging.getLogger().setLevel(level)
    if verbose:
        logger.debug("Verbose logging enabled")


def _build_aggregator(settings: Settings, strategy: Optional[DeduplicationStrategy]) -> NewsAggregator:
    if strategy is not None:
        settings = settings.model_copy(update={"deduplication_strategy": strategy})
    try:
        return NewsAggregator.from_settings(settings)
    except AggregationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


async def _run_fetch(
    aggregator: NewsAggregator,
    category: Optional[str],
    limit: int,
    offset: int,
) -> List[Article]:
    try:
        return await aggregator.fetch_articles(category=category, limit=limit, offset=offset)
    finally:
        await aggregator.close()


async def _run_search(
    aggregator: NewsAggregator,
    query: str,
    limit: int,
    offset: int,
) -> List[Article]:
    try:
        return await aggregator.search_articles(query, limit=limit, offset=offset)
    finally:
        await aggregator.close()


async def _run_categories(aggregator: NewsAggregator) -> List[str]:
    try:
        return await aggregator.get_categories()
    finally:
        await aggregator.close()


async def _run_health(aggregator: NewsAggregator) -> Dict[str, bool]:
    try:
        return await aggregator.check_sources_health()
    finally:
        await aggregator.close()


@app.command()
def fetch(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category filter"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Number of articles to skip"),
    strategy: Optional[DeduplicationStrategy] = typer.Option(
        None, "--strategy", "-s", help="Deduplication strategy"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON only"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Don't save the result snapshot"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"),
):
    """Fetch the latest articles from all sources."""
    settings = get_settings()
    _configure_logging(settings, verbose, quiet=json_output)
    aggregator = _build_aggregator(settings, strategy)

    articles = asyncio.run(
        _run_fetch(aggregator, category, limit or settings.default_limit, offset)
    )

    if not no_cache:
        ArticleCache(cache_dir=settings.cache_dir).save_snapshot(
            LATEST_SNAPSHOT, articles, strategy=aggregator.deduplication_strategy
        )

    _output_articles(articles, json_output, title="Latest Articles")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search term"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Number of articles to skip"),
    strategy: Optional[DeduplicationStrategy] = typer.Option(
        None, "--strategy", "-s", help="Deduplication strategy"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"),
):
    """Search all sources for a query."""
    settings = get_settings()
    _configure_logging(settings, verbose, quiet=json_output)
    aggregator = _build_aggregator(settings, strategy)

    articles = asyncio.run(
        _run_search(aggregator, query, limit or settings.default_limit, offset)
    )
    _output_articles(articles, json_output, title=f"Results for '{query}'")


@app.command()
def categories():
    """List the categories offered by the configured sources."""
    settings = get_settings()
    _configure_logging(settings, False)
    aggregator = _build_aggregator(settings, None)

    names = asyncio.run(_run_categories(aggregator))
    if not names:
        console.print("No categories available")
        return
    console.print(", ".join(names))


@app.command()
def health():
    """Check which sources are reachable."""
    settings = get_settings()
    _configure_logging(settings, False)
    aggregator = _build_aggregator(settings, None)

    statuses = asyncio.run(_run_health(aggregator))

    table = Table(title="Source Health")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    for name, available in statuses.items():
        status = "[green]✓ available[/green]" if available else "[red]✗ unavailable[/red]"
        table.add_row(name, status)
    console.print(table)

    if not any(statuses.values()):
        raise typer.Exit(1)


@app.command()
def cached(
    name: str = typer.Option(LATEST_SNAPSHOT, "--name", help="Snapshot name"),
    min_sources: Optional[int] = typer.Option(None, "--min-sources", help="Minimum source count"),
    max_sources: Optional[int] = typer.Option(None, "--max-sources", help="Maximum source count"),
    unique: bool = typer.Option(False, "--unique", "-u", help="Only single-source articles"),
    most_repeated: bool = typer.Option(
        False, "--most-repeated", "-m", help="Only multi-source articles, most reported first"
    ),
    source: Optional[str] = typer.Option(None, "--source", help="Only articles reported by this source"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON only"),
):
    """Show a saved snapshot, optionally filtered."""
    settings = get_settings()
    _configure_logging(settings, False, quiet=json_output)

    articles = ArticleCache(cache_dir=settings.cache_dir).load_snapshot(name)
    if articles is None:
        console.print(f"[red]Error:[/red] No snapshot named '{name}'. Run 'fetch' first.")
        raise typer.Exit(1)

    if source:
        articles = NewsAggregator.get_articles_from_source(articles, source)
    if unique:
        articles = NewsAggregator.get_unique_articles(articles)
    if min_sources is not None or max_sources is not None:
        articles = NewsAggregator.get_articles_by_source_count(
            articles, min_sources=min_sources or 1, max_sources=max_sources
        )
    if most_repeated:
        articles = NewsAggregator.get_most_repeated(articles, min_sources=min_sources or 2)

    _output_articles(articles, json_output, title=f"Snapshot '{name}'")


@app.command()
def check_config():
    """Check configuration and source settings."""
    settings = get_settings()

    table = Table(title="Configuration Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Value")

    newsapi_status = "✅" if settings.has_newsapi else "⚠️"
    newsapi_value = "Configured" if settings.has_newsapi else "Not configured"
    table.add_row("NewsAPI Key", newsapi_status, newsapi_value)

    rss_status = "✅" if settings.has_rss else "⚠️"
    rss_value = f"{len(settings.rss_feed_urls)} feed(s)" if settings.has_rss else "Not configured"
    table.add_row("RSS Feeds", rss_status, rss_value)

    table.add_row("Deduplication", "ℹ️", settings.deduplication_strategy.value)

    console.print(table)

    if not settings.has_sources:
        console.print("\n[red]Error:[/red] At least one news source is required")
        console.print("Set NEWSAPI_KEY or RSS_FEED_URLS in your .env file")
        raise typer.Exit(1)


def _output_articles(articles: List[Article], json_output: bool, title: str) -> None:
    if json_output:
        print(json.dumps([article.to_json_dict() for article in articles], indent=2))
        return
    _display_articles(articles, title)


def _display_articles(articles: List[Article], title: str) -> None:
    """Display articles as a table."""
    if not articles:
        console.print("No articles found")
        return

    table = Table(title=f"{title} ({len(articles)})")
    table.add_column("Published", style="dim", no_wrap=True)
    table.add_column("Title", max_width=60)
    table.add_column("Sources", justify="right")
    table.add_column("Reported By", max_width=40)

    for article in articles:
        count_style = "green" if article.source_count > 1 else "white"
        table.add_row(
            article.published_at.strftime("%Y-%m-%d %H:%M"),
            f"[link={article.url}]{escape(article.title)}[/link]",
            f"[{count_style}]{article.source_count}[/{count_style}]",
            escape(", ".join(article.source_names)),
        )

    console.print(table)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
