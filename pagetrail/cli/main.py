"""pagetrail CLI - inspect and time-travel exported editor projects."""

import json
import sys
from datetime import datetime
from typing import List, Optional

import click

from .. import __version__
from ..core.events import Event, EventDecodeError, ensure_utc
from ..core.history import describe_event
from ..core.state import ComponentNode, PageState
from ..core.store import EventStore
from ..persistence import read_project_file


def _load_store_safely(project_file: str) -> Optional[EventStore]:
    """Load a project file into a fresh store.

    Returns:
        EventStore if successful, None if failed (error message already printed).
    """
    try:
        data = read_project_file(project_file)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        return None

    store = EventStore()
    if not store.import_data(data):
        click.echo(click.style(f"Error: {project_file} could not be imported", fg="red"), err=True)
        return None
    return store


def _print_event(event: Event, marker: str = " ") -> None:
    ts = event.timestamp.strftime("%H:%M:%S")
    click.echo(f"{marker} v{event.version:<4} {ts}  {event.user_id:<10} {describe_event(event)}")


def _print_summary(state: PageState) -> None:
    click.echo(f"  Page: {state.page_id} ({state.metadata.title})")
    click.echo(f"  Version: {state.metadata.version}")
    click.echo(f"  Components: {state.component_count}")
    click.echo(f"  Top level: {len(state.top_level_components())}")
    click.echo(f"  Selected: {state.selected_component_id or 'none'}")


def _tree_lines(state: PageState, node: ComponentNode, depth: int, lines: List[str]) -> None:
    label = node.props.get("text") or node.props.get("label") or ""
    suffix = f' "{label}"' if label else ""
    flags = ""
    if not node.visible:
        flags += " [hidden]"
    if node.locked:
        flags += " [locked]"
    lines.append(
        f"{'  ' * depth}{node.type} {node.id}{suffix} "
        f"@({node.position.x}, {node.position.y}) z={node.z_index}{flags}"
    )
    for child in state.child_components(node.id):
        _tree_lines(state, child, depth + 1, lines)


def _travel(store: EventStore, to_version: Optional[int], at: Optional[datetime]) -> bool:
    if to_version is not None and store.jump_to_version(to_version) is None:
        click.echo(click.style(f"Error: no event with version {to_version}", fg="red"), err=True)
        return False
    if at is not None and store.jump_to_timestamp(ensure_utc(at)) is None:
        click.echo(click.style(f"Error: no event at or before {at.isoformat()}", fg="red"), err=True)
        return False
    return True


@click.group()
@click.version_option(version=__version__, prog_name="pagetrail")
def cli():
    """pagetrail - Time travel through page editor history.

    Every command reads a project file written by export_data().
    """
    pass


@cli.command()
@click.argument("project_file", type=click.Path())
@click.option("--to-version", "-V", type=int, help="Replay up to the event with this version")
@click.option("--at", type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
              help="Replay up to this point in time")
@click.option("--verbose", "-v", is_flag=True, help="Show replayed events")
def replay(project_file: str, to_version: Optional[int], at: Optional[datetime], verbose: bool):
    """Rebuild the page from its event history.

    Examples:
        pagetrail replay project.json
        pagetrail replay --to-version 10 project.json
    """
    store = _load_store_safely(project_file)
    if store is None:
        sys.exit(1)

    events = store.get_all_events()
    if not events:
        click.echo("No events in project.")
        return

    if not _travel(store, to_version, at):
        sys.exit(1)

    current = store.get_current_events()
    click.echo(f"Replayed {len(current)} of {len(events)} events.")
    click.echo()

    if verbose:
        for event in current:
            _print_event(event)
        click.echo()

    click.echo("State:")
    _print_summary(store.get_current_state())


@cli.command()
@click.argument("project_file", type=click.Path())
@click.option("--to-version", "-V", type=int, help="Show the tree as of this event version")
def tree(project_file: str, to_version: Optional[int]):
    """Print the component tree.

    Examples:
        pagetrail tree project.json
    """
    store = _load_store_safely(project_file)
    if store is None:
        sys.exit(1)

    if not _travel(store, to_version, None):
        sys.exit(1)

    state = store.get_current_state()
    if not state.components:
        click.echo("No components.")
        return

    lines: List[str] = []
    for root in state.top_level_components():
        _tree_lines(state, root, 0, lines)
    for line in lines:
        click.echo(line)


@cli.command()
@click.argument("project_file", type=click.Path())
def history(project_file: str):
    """List the undo/redo timeline; '>' marks the cursor.

    Examples:
        pagetrail history project.json
    """
    store = _load_store_safely(project_file)
    if store is None:
        sys.exit(1)

    events = store.get_all_events()
    if not events:
        click.echo("No events in project.")
        return

    cursor = store.get_history_state().current_version - 1
    for index, event in enumerate(events):
        _print_event(event, marker=">" if index == cursor else " ")


@cli.command()
@click.argument("project_file", type=click.Path())
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(project_file: str, as_json: bool):
    """Show statistics for a project.

    Examples:
        pagetrail stats project.json
        pagetrail stats --json project.json
    """
    store = _load_store_safely(project_file)
    if store is None:
        sys.exit(1)

    data = store.get_statistics()

    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
        return

    click.echo(f"Events: {data['totalEvents']}")
    click.echo(f"Position: {data['currentPosition']}")
    click.echo(f"Components: {data['currentStateComponents']}")
    click.echo(f"Snapshots: {data['totalSnapshots']} (~{data['totalSnapshotSize']:,} bytes)")
    click.echo(f"Event size: ~{data['estimatedSize']:,} bytes")
    if data["eventsByType"]:
        click.echo("By type:")
        for event_type, count in sorted(data["eventsByType"].items()):
            click.echo(f"  {event_type}: {count}")
    if data["eventsByUser"]:
        click.echo("By user:")
        for user, count in sorted(data["eventsByUser"].items()):
            click.echo(f"  {user}: {count}")
    span = data["timeSpan"]
    if span:
        click.echo(f"Time span: {span['start'].isoformat()} -> {span['end'].isoformat()}")


@cli.command()
@click.argument("project_file", type=click.Path())
def snapshots(project_file: str):
    """List stored snapshots.

    Examples:
        pagetrail snapshots project.json
    """
    store = _load_store_safely(project_file)
    if store is None:
        sys.exit(1)

    items = sorted(store.get_all_snapshots(), key=lambda s: s.version)
    if not items:
        click.echo("No snapshots.")
        return

    manager = store.snapshot_manager
    for snapshot in items:
        size = manager.estimate_size(snapshot)
        click.echo(
            f"  {snapshot.id[:8]}  v{snapshot.version:<4} "
            f"{snapshot.state.component_count} components  ~{size:,} bytes  {snapshot.description or ''}"
        )


@cli.command()
@click.argument("project_file", type=click.Path())
def validate(project_file: str):
    """Check that every event and snapshot in a project decodes.

    Examples:
        pagetrail validate project.json
    """
    try:
        data = read_project_file(project_file)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    problems = []
    raw_events = data.get("events") or []
    if not isinstance(raw_events, list):
        problems.append("events: not a list")
        raw_events = []
    for index, raw in enumerate(raw_events):
        try:
            Event.from_dict(raw)
        except EventDecodeError as e:
            problems.append(f"events[{index}]: {e}")

    manager = EventStore().snapshot_manager
    raw_snapshots = data.get("snapshots") or []
    for index, raw in enumerate(raw_snapshots if isinstance(raw_snapshots, list) else []):
        if not manager.validate(raw):
            problems.append(f"snapshots[{index}]: invalid (would be dropped on import)")

    if problems:
        click.echo(click.style(f"{len(problems)} problem(s) found:", fg="red"))
        for problem in problems:
            click.echo(f"  {problem}")
        sys.exit(1)

    click.echo(click.style(
        f"OK: {len(raw_events)} events, {len(raw_snapshots)} snapshots", fg="green"
    ))


def main():
    cli()


if __name__ == "__main__":
    main()
