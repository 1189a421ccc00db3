"""CLI entry point for the catalog layer.

Commands:

    serve       Run the HTTP app (revalidation trigger, archive and lookup routes)
    resolve     Resolve and print one enriched archive page
    invalidate  Send an invalidation event to a running app, or apply it locally
    reconcile   Remove purchased items from an account's want-list
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import httpx
import uvicorn
from rich.console import Console
from rich.table import Table

from src.invalidation.gateway import parse_event
from src.models.config import CatalogConfig, ConfigManager
from src.models.data_models import ArchiveDimension, ArchivePage, OrderLine, ReconcileReport
from src.models.errors import CatalogError
from src.pipeline.orchestrator import CatalogRuntime
from src.pipeline.output import JSONOutputFormatter
from src.server.app import create_app


console = Console()


def _load_config(config_path: Path, log_level: Optional[str], overrides: Optional[Dict] = None) -> CatalogConfig:
    cli_overrides = dict(overrides or {})
    if log_level is not None:
        cli_overrides["log_level"] = log_level.upper()
    return ConfigManager(config_path).load_config(cli_overrides)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default="config/config.yaml",
    help="Path to configuration YAML file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config)",
)
@click.version_option(version="1.0.0", prog_name="catalog-cache")
@click.pass_context
def main(ctx: click.Context, config_path: Path, log_level: Optional[str]) -> None:
    """
    Catalog Cache - archive listings, attribute caching and page invalidation.

    Examples:

        # Serve the HTTP app
        $ catalog-cache serve --port 8080

        # Print page 2 of an artist archive, cheapest first
        $ catalog-cache resolve artist larry-heard --page 2 --sort price_asc

        # Revalidate a product page on a running app
        $ catalog-cache invalidate product --handle blue-lines --url http://localhost:8080
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level


@main.command()
@click.option("--host", type=str, help="Bind address (overrides config)")
@click.option("--port", "-p", type=int, help="Bind port (overrides config)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP app with uvicorn."""
    try:
        config = _load_config(ctx.obj["config_path"], ctx.obj["log_level"], {"host": host, "port": port})
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)

    _display_config_summary(config)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())


@main.command()
@click.argument("dimension", type=click.Choice([d.value for d in ArchiveDimension], case_sensitive=False))
@click.argument("slug")
@click.option("--page", type=int, default=1, show_default=True, help="1-indexed page number")
@click.option("--sort", "sort_key", type=str, help="Sort key, e.g. latest, price_asc, title_desc")
@click.option("--json", "as_json", is_flag=True, help="Print the page as JSON")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Also save the page as JSON to this path",
)
@click.pass_context
def resolve(
    ctx: click.Context,
    dimension: str,
    slug: str,
    page: int,
    sort_key: Optional[str],
    as_json: bool,
    output: Optional[Path],
) -> None:
    """Resolve one archive page and enrich it with cached attributes."""
    formatter = JSONOutputFormatter()
    try:
        config = _load_config(ctx.obj["config_path"], ctx.obj["log_level"])
        archive_page = asyncio.run(_resolve(config, dimension, slug, page, sort_key))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)

    data = formatter.format_page(archive_page)
    if output:
        formatter.save(data, str(output))
    if as_json:
        click.echo(formatter.to_json(data))
    else:
        _display_page(archive_page)
    sys.exit(1 if archive_page.error else 0)


async def _resolve(
    config: CatalogConfig,
    dimension: str,
    slug: str,
    page: int,
    sort_key: Optional[str],
) -> ArchivePage:
    async with CatalogRuntime(config) as runtime:
        return await runtime.catalog.archive_page(dimension, slug, page, sort_key)


@main.command()
@click.argument("scope", type=click.Choice(["product", "inventory", "all"], case_sensitive=False))
@click.option("--handle", type=str, help="Product handle for product or inventory events")
@click.option("--secret", type=str, envvar="CATALOG_REVALIDATE_SECRET", help="Shared revalidation secret")
@click.option("--url", type=str, help="Base URL of a running app; applies the event locally when omitted")
@click.pass_context
def invalidate(
    ctx: click.Context,
    scope: str,
    handle: Optional[str],
    secret: Optional[str],
    url: Optional[str],
) -> None:
    """Send an invalidation event."""
    payload = {"type": scope.lower()}
    if handle:
        payload["handle"] = handle

    if url:
        status, body = _post_revalidate(url, secret, payload)
    else:
        config = _load_config(ctx.obj["config_path"], ctx.obj["log_level"])
        status, body = asyncio.run(_invalidate_locally(config, secret, payload))

    if status != 200:
        console.print(f"[red]Error ({status}):[/red] {body.get('error')}", style="bold red")
        sys.exit(1)

    console.print("[bold green]Revalidated[/bold green]")
    for path in body.get("revalidated", []):
        console.print(f"  {path}")


def _post_revalidate(url: str, secret: Optional[str], payload: Dict) -> Tuple[int, Dict]:
    headers = {"x-revalidate-secret": secret} if secret else {}
    try:
        response = httpx.post(f"{url.rstrip('/')}/api/revalidate", json=payload, headers=headers, timeout=10.0)
    except httpx.HTTPError as e:
        return 0, {"error": str(e)}
    try:
        return response.status_code, response.json()
    except json.JSONDecodeError:
        return response.status_code, {"error": response.text}


async def _invalidate_locally(config: CatalogConfig, secret: Optional[str], payload: Dict) -> Tuple[int, Dict]:
    async with CatalogRuntime(config) as runtime:
        try:
            result = await runtime.gateway.invalidate(secret, parse_event(payload))
        except CatalogError as e:
            status = {"UNAUTHORIZED": 401, "INVALID_EVENT": 400}.get(e.code, 500)
            return status, {"error": e.message}
        return 200, JSONOutputFormatter().format_invalidation(result)


@main.command()
@click.argument("account")
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="Purchased line as PRODUCT_ID or PRODUCT_ID:VARIANT_ID; repeatable",
)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def reconcile(ctx: click.Context, account: str, items: Tuple[str, ...], as_json: bool) -> None:
    """Remove purchased items from ACCOUNT's want-list (ACCOUNT is its bearer token)."""
    lines = []
    for item in items:
        product_id, _, variant_id = item.partition(":")
        lines.append(OrderLine(product_id=product_id, variant_id=variant_id or None))

    config = _load_config(ctx.obj["config_path"], ctx.obj["log_level"])
    report = asyncio.run(_reconcile(config, account, lines))

    if as_json:
        click.echo(JSONOutputFormatter().to_json(JSONOutputFormatter().format_reconcile(report)))
    else:
        _display_report(report)
    sys.exit(1 if report.failed else 0)


async def _reconcile(config: CatalogConfig, account: str, lines) -> ReconcileReport:
    async with CatalogRuntime(config) as runtime:
        return await runtime.reconciler.reconcile(account, lines)


def _display_config_summary(config: CatalogConfig) -> None:
    """Display configuration summary before serving."""
    console.print("\n[bold cyan]Catalog Configuration[/bold cyan]")
    console.print(f"  Commerce: {config.commerce.url}")
    console.print(f"  Content: {config.content.url} ({config.content_dataset})")
    console.print(f"  Sources: {', '.join(f'{d}={s}' for d, s in config.dimension_sources.items())}")
    console.print(f"  Attribute eviction: {config.attribute_eviction}")
    console.print(f"  Page cache: {config.page_purge_url or 'in-memory'}")
    console.print()


def _display_page(archive_page: ArchivePage) -> None:
    """Display an archive page as a table."""
    if archive_page.error:
        console.print(f"[yellow]Backend unavailable:[/yellow] {archive_page.error}")

    table = Table(title=f"{archive_page.display_name or 'Archive'} - page {archive_page.page}")
    table.add_column("Handle", style="cyan")
    table.add_column("Title")
    table.add_column("Artist", style="magenta")
    table.add_column("Formats")
    table.add_column("Price", justify="right", style="green")
    table.add_column("In Stock", justify="center")

    for product in archive_page.products:
        price_str = f"${product.price:.2f}" if product.price is not None else "N/A"
        stock_str = {True: "yes", False: "no", None: "?"}[product.in_stock]
        table.add_row(
            product.handle,
            product.title,
            product.artist_name or "",
            ", ".join(product.formats or []),
            price_str,
            stock_str,
        )

    console.print(table)
    console.print(
        f"Total: {archive_page.total_count}  Pages: {archive_page.total_pages}  "
        f"Next page: {'yes' if archive_page.has_next_page else 'no'}"
    )


def _display_report(report: ReconcileReport) -> None:
    """Display a reconciliation report."""
    if report.is_noop:
        console.print("Nothing to remove")
        return

    table = Table(title="Want-list Reconciliation")
    table.add_column("Product", style="cyan")
    table.add_column("Variant")
    table.add_column("Result")
    for entry in report.removed:
        table.add_row(entry.product_id, entry.variant_id or "-", "[green]removed[/green]")
    for entry in report.failed:
        table.add_row(entry.product_id, entry.variant_id or "-", "[red]failed[/red]")
    console.print(table)


if __name__ == "__main__":
    main()
