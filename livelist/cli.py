"""CLI entry point for livelist."""

from __future__ import annotations

import json
from pathlib import Path

import click


# Default config template
CONFIG_TEMPLATE = """\
min_poll_interval: 15  # seconds; floor for every list's poll_interval

viewport:
  visible_items: 10  # items that fit in the viewing region
  scroll_offset: 0

lists:
  - id: main
    snapshot: snapshots/main.json
    max_items_per_page: 20
    poll_interval: 30
    enabled: true
"""


def _project_root_option(func):
    return click.option(
        "--project-root",
        type=click.Path(exists=True, file_okay=False, resolve_path=True),
        default=".",
        help="Project root directory (default: cwd).",
    )(func)


def _load_config_or_fail(root: Path) -> dict:
    from livelist.config import ConfigError, load_config

    try:
        return load_config(root)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def cli() -> None:
    """livelist: keep a live ordered list in sync with remote snapshots."""


@cli.command()
@_project_root_option
def init(project_root: str) -> None:
    """Initialize .livelist/ with a config template and snapshot dir."""
    root = Path(project_root)
    livelist_dir = root / ".livelist"

    if livelist_dir.exists():
        click.echo(f".livelist/ already exists at {livelist_dir}")
        raise SystemExit(1)

    livelist_dir.mkdir(parents=True)
    config_path = livelist_dir / "config.yaml"
    config_path.write_text(CONFIG_TEMPLATE)
    click.echo(f"Created {config_path}")

    # Load config through the standard path to validate it
    from livelist.config import load_config, resolve_snapshot_paths
    config = load_config(root)

    for path in resolve_snapshot_paths(config, root).values():
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            path.write_text("[]\n")
            click.echo(f"Created {path}")

    click.echo("\nlivelist initialized. Edit .livelist/config.yaml to add lists.")


@cli.command()
@_project_root_option
@click.option("--list", "list_id", required=True, help="List id from config.")
@click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    default=None,
    help="Snapshot file (default: the list's configured snapshot).",
)
@click.option("--dry-run", is_flag=True, help="Report changes without saving.")
def sync(project_root: str, list_id: str, snapshot: str | None, dry_run: bool) -> None:
    """Run one reconciliation cycle: classify, apply, evict, save."""
    from livelist.config import ConfigError
    from livelist.errors import SnapshotError, ValidationError
    from livelist.server import db_path_for, sync_list
    from livelist.server.db import PageDB

    root = Path(project_root)
    config = _load_config_or_fail(root)
    db = PageDB(db_path_for(root))

    try:
        summary = sync_list(
            config, root, list_id, db,
            snapshot_path=Path(snapshot) if snapshot else None,
            dry_run=dry_run,
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValidationError as exc:
        click.echo(f"Validation failed, cycle abandoned: {exc}")
        raise SystemExit(1)
    except SnapshotError as exc:
        click.echo(f"Snapshot error: {exc}")
        raise SystemExit(1)

    if summary.get("skipped"):
        click.echo(f"List {list_id}: skipped ({summary['skipped']})")
        return

    prefix = "[dry run] " if dry_run else ""
    click.echo(f"{prefix}List {list_id}:")
    click.echo(f"  Inserted: {summary['inserted']}")
    click.echo(f"  Replaced: {summary['replaced']}")
    click.echo(f"  Tombstoned: {summary['tombstoned']}")
    click.echo(f"  Evicted: {summary['evicted']}")
    click.echo(f"  Live items: {summary['live_count']} / {summary['max_items_per_page']}")
    click.echo(f"  Max update time: {summary['max_update_time']:g}")


@cli.command()
@_project_root_option
def run(project_root: str) -> None:
    """Run the livelist polling server (foreground)."""
    import logging

    from livelist.server import run_server

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    root = Path(project_root)
    config = _load_config_or_fail(root)
    click.echo(f"Starting livelist server for {root}...")
    run_server(config, root)


@cli.command()
@_project_root_option
def status(project_root: str) -> None:
    """Show per-list state."""
    from livelist.server import get_status

    root = Path(project_root)
    config = _load_config_or_fail(root)
    info = get_status(config, root)

    if "error" in info:
        click.echo(f"Error: {info['error']}")
        raise SystemExit(1)

    for entry in info["lists"]:
        flag = "" if entry["enabled"] else " (disabled)"
        click.echo(f"{entry['list_id']}{flag}:")
        click.echo(f"  Live items: {entry['live_count']} / {entry['max_items_per_page']}")
        click.echo(f"  Page items: {entry['page_items']}")
        click.echo(f"  Known ids: {entry['known_items']}")
        click.echo(f"  Poll interval: {entry['poll_interval']}s")
        state = entry["state"]
        if state.get("last_poll_time"):
            click.echo(f"  Last poll: {state['last_poll_time']}")
        flushes = entry["recent_flushes"]
        if flushes:
            click.echo(f"  Recent flushes ({len(flushes)}):")
            for f in flushes:
                click.echo(
                    f"    +{f['inserted']} ~{f['replaced']} x{f['tombstoned']} "
                    f"-{f['evicted']} live={f['live_count']} {f['created_at']}"
                )


@cli.command()
@_project_root_option
@click.option("--list", "list_id", required=True, help="List id from config.")
@click.option("--json", "as_json", is_flag=True, help="Print the page as JSON.")
def show(project_root: str, list_id: str, as_json: bool) -> None:
    """Print the persisted page, head first."""
    from livelist.server import db_path_for
    from livelist.server.db import PageDB

    root = Path(project_root)
    _load_config_or_fail(root)
    items = PageDB(db_path_for(root)).load_page(list_id)

    if as_json:
        click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return

    if not items:
        click.echo(f"List {list_id} is empty.")
        return
    for item in items:
        marks = []
        if item.tombstoned:
            marks.append("tombstone")
        if item.is_new:
            marks.append("new")
        suffix = f" [{', '.join(marks)}]" if marks else ""
        click.echo(f"{item.id}  sort={item.sort_time:g}  update={item.effective_update_time:g}{suffix}")


@cli.command()
@_project_root_option
@click.option("--list", "list_id", required=True, help="List id from config.")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write HTML here instead of stdout.",
)
def export(project_root: str, list_id: str, output: str | None) -> None:
    """Render the persisted page as HTML."""
    from livelist.page import LivePage
    from livelist.render import render_page_html
    from livelist.server import db_path_for
    from livelist.server.db import PageDB

    root = Path(project_root)
    _load_config_or_fail(root)
    page = LivePage(PageDB(db_path_for(root)).load_page(list_id))
    html = render_page_html(list_id, page)

    if output:
        Path(output).write_text(html)
        click.echo(f"Wrote {output}")
    else:
        click.echo(html, nl=False)
