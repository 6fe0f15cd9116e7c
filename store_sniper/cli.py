"""Command-line interface for managing and running the store sniper."""

from __future__ import annotations

import datetime as _dt
import sys

import click

from . import config
from .directory import fetch_snapshot
from .main import run_monitor, setup_logging
from .resolver import resolve_city
from .state import FileStateStore
from .utils import ConfigError, MonitorError


def _red_tick(remaining: int) -> None:
    click.secho(
        f"\rLeave this terminal open, next check will be in {remaining} seconds ",
        fg="red",
        nl=False,
    )


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=str),
    default=None,
    help="Directory holding the saved settings (defaults to DATA_DIR).",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: str | None) -> None:
    setup_logging()
    ctx.obj = FileStateStore(data_dir) if data_dir else FileStateStore()


@cli.command()
@click.pass_obj
def show(store: FileStateStore) -> None:
    """Print the monitored stores and current settings."""
    try:
        watch_list = store.load_watch_list()
        interval = store.load_interval()
        region = store.load_region()
        webhook = store.load_webhook() or config.DISCORD_WEBHOOK_URL
    except ConfigError as e:
        raise click.ClickException(str(e))

    click.echo("Current monitored Store List:")
    for store_id in watch_list:
        click.echo(store_id)
    click.echo("-----------------------")
    click.echo(f"Current Interval Delay: {interval}")
    click.echo(f"Country selected: {region or config.DEFAULT_REGION}")
    if webhook:
        click.secho("WebHook Url: added", fg="green")
    else:
        click.secho("WebHook Url: not added yet", fg="red")


@cli.command("add-store")
@click.argument("store_ids", nargs=-1, required=True)
@click.pass_obj
def add_store(store: FileStateStore, store_ids: tuple[str, ...]) -> None:
    """Append one or more store IDs (e.g. ITCODE) to the watch list."""
    for store_id in store_ids:
        try:
            store.append_to_watch_list(store_id)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="STORE_IDS")
        click.echo(f"StoreID {store_id.strip()} added successfully!")


@cli.command("set-interval")
@click.argument("hours", type=click.IntRange(min=0))
@click.pass_obj
def set_interval(store: FileStateStore, hours: int) -> None:
    """Set the interval between availability checks, in hours."""
    store.save_interval(_dt.timedelta(hours=hours))
    click.echo(f"Check interval set to {hours} hours.")


@cli.command("set-region")
@click.argument("region", type=click.Choice(sorted(config.REGIONS), case_sensitive=False))
@click.pass_obj
def set_region(store: FileStateStore, region: str) -> None:
    """Change the country whose store locator is polled."""
    store.save_region(region)
    click.secho(f"Region changed to {region.upper()}.", fg="green")


@cli.command("set-webhook")
@click.argument("url")
@click.pass_obj
def set_webhook(store: FileStateStore, url: str) -> None:
    """Save the Discord webhook URL used for notifications."""
    if not url.strip():
        raise click.BadParameter("webhook URL must not be empty", param_hint="URL")
    store.save_webhook(url)
    click.secho("Webhook URL saved successfully!", fg="green")


@cli.command()
@click.argument("city", nargs=-1, required=True)
@click.pass_obj
def lookup(store: FileStateStore, city: tuple[str, ...]) -> None:
    """Find the store IDs of a city (e.g. Milano, Paris, Berlin)."""
    city_name = " ".join(city)
    try:
        region = store.load_region()
        snapshot = fetch_snapshot(config.build_endpoint(region))
    except (MonitorError, ValueError) as e:
        raise click.ClickException(str(e))

    if not len(snapshot):
        click.echo("No stores found in the response.")
        return

    result = resolve_city(city_name, snapshot)
    if result.found:
        click.secho(f"Stores found for {city_name}:", fg="magenta")
        for loc in result.exact_matches:
            click.secho(f"Store ID: {loc.id}, Address: {loc.address}", fg="cyan")
        return

    click.secho(f"No stores found in the city: {city_name}", fg="red")
    click.echo("Please check your input.")
    if result.suggestions:
        click.echo("Did you mean one of these cities?")
        for suggestion in result.suggestions:
            click.echo(suggestion)
    else:
        click.echo("No similar cities found.")


@cli.command()
@click.pass_obj
def run(store: FileStateStore) -> None:
    """Start checking the watched stores until interrupted."""
    try:
        config.validate()
    except RuntimeError as e:
        raise click.ClickException(str(e))
    click.echo("Starting sniper...")
    sys.exit(run_monitor(store, on_tick=_red_tick))


if __name__ == "__main__":
    cli()
