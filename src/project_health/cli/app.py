"""Command-line interface for Project Health."""

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import click

from ..config import ConfigModel, Config, WEIGHT_FIELDS, get_config
from ..domain import Milestone, Priority, Project, ProjectStatus, Task, TaskStatus, EventType
from ..services.dashboard import ProjectAnalyzer
from ..storage import get_store
from .analytics_commands import format_table, get_analytics_commands

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_settings(config_path: Optional[str], data_dir: Optional[str]) -> ConfigModel:
    """Resolve configuration from --config / --data-dir."""
    if config_path:
        settings = Config.reload(Path(config_path))
    elif data_dir:
        settings = Config.reload(ConfigModel(data_dir=data_dir).get_config_path())
    else:
        settings = get_config()
    if data_dir:
        settings = replace(settings, data_dir=data_dir)
    return settings


def configure_logging(settings: ConfigModel, verbose: bool):
    level = logging.DEBUG if verbose else getattr(logging, str(settings.log_level).upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("project_health").setLevel(level)


def get_analyzer(ctx: click.Context) -> ProjectAnalyzer:
    return ctx.find_object(dict)['analyzer']


def fail(message: str):
    click.echo(message, err=True)
    sys.exit(1)


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--data-dir", type=click.Path(), help="Directory holding project data")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config, data_dir, verbose):
    """Project Health - health, risk and velocity analytics for projects."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    try:
        settings = load_settings(config, data_dir)
    except (OSError, ValueError) as e:
        fail(f"Configuration error: {e}")

    configure_logging(settings, verbose)
    ctx.obj['config'] = settings
    ctx.obj['analyzer'] = ProjectAnalyzer(get_store(settings), settings)


# Projects

@main.group()
def project():
    """Create and list projects"""
    pass


@project.command(name="add")
@click.argument("project_id")
@click.option("--name", "-n", help="Display name")
@click.option("--status", "-s",
              type=click.Choice([s.value for s in ProjectStatus]),
              default=ProjectStatus.ACTIVE.value, help="Project status")
@click.option("--deadline", "-d", help="Deadline (YYYY-MM-DD)")
@click.pass_context
def project_add(ctx, project_id, name, status, deadline):
    """Create or update a project"""
    analyzer = get_analyzer(ctx)
    existing = analyzer.store.get_project(project_id)
    proj = Project(id=project_id, name=name or "", status=status, deadline=deadline)

    if not analyzer.store.upsert_project(proj):
        fail(f"Error saving project {project_id}")

    event = EventType.EDIT if existing else EventType.CREATE
    analyzer.events.log_project_event(project_id, event, {'name': proj.name})
    click.echo(f"{'Updated' if existing else 'Created'} project {project_id}")


@project.command(name="list")
@click.pass_context
def project_list(ctx):
    """List projects with their health and risk"""
    analyzer = get_analyzer(ctx)
    projects = analyzer.store.list_projects()
    if not projects:
        click.echo("No projects found")
        return

    rows = []
    for proj in sorted(projects, key=lambda p: p.id):
        health = analyzer.calculate_health(proj.id)
        risk = analyzer.calculate_risk(proj.id)
        rows.append({
            "Project": proj.id,
            "Name": proj.name,
            "Status": proj.status or "-",
            "Deadline": proj.deadline or "-",
            "Health": f"{health.score} ({health.status.value})",
            "Risk": f"{risk.score:.1f} ({risk.level.value})",
        })
    click.echo(format_table(rows, tablefmt="simple"))


# Tasks

@main.group()
def task():
    """Manage project tasks"""
    pass


@task.command(name="add")
@click.argument("project_id")
@click.argument("task_id")
@click.option("--title", "-t", default="", help="Task title")
@click.option("--status", "-s", type=click.Choice([s.value for s in TaskStatus]),
              default=TaskStatus.TODO.value, help="Task status")
@click.option("--assignee", "-a", help="Assignee")
@click.option("--due", help="Due date (YYYY-MM-DD)")
@click.option("--priority", "-p", type=click.Choice([p.value for p in Priority]), help="Priority")
@click.option("--milestone", "-m", "milestone_id", help="Milestone id")
@click.option("--estimate", "-e", type=float, help="Estimated hours")
@click.pass_context
def task_add(ctx, project_id, task_id, title, status, assignee, due, priority,
             milestone_id, estimate):
    """Create or replace a task"""
    analyzer = get_analyzer(ctx)
    new_task = Task(
        id=task_id,
        project_id=project_id,
        title=title,
        status=status,
        assignee=assignee,
        due=due,
        priority=priority,
        milestone_id=milestone_id,
        estimate_hours=estimate,
    )
    if due and new_task.due is None:
        fail(f"Invalid due date: {due}")

    if not analyzer.store.upsert_task(new_task):
        fail(f"Error saving task {task_id}")
    analyzer.events.log_project_event(project_id, EventType.EDIT, {'task_id': task_id})
    click.echo(f"Saved task {task_id} in project {project_id}")


@task.command(name="status")
@click.argument("task_id")
@click.argument("status", type=click.Choice([s.value for s in TaskStatus]))
@click.pass_context
def task_status(ctx, task_id, status):
    """Change a task's status"""
    analyzer = get_analyzer(ctx)
    existing = analyzer.store.get_task(task_id)
    if existing is None:
        fail(f"Task not found: {task_id}")

    existing.status = TaskStatus(status)
    if not analyzer.store.upsert_task(existing):
        fail(f"Error saving task {task_id}")
    analyzer.events.log_project_event(
        existing.project_id, EventType.EDIT, {'task_id': task_id, 'status': status}
    )
    click.echo(f"Task {task_id} is now {status}")


@task.command(name="delete")
@click.argument("task_id")
@click.pass_context
def task_delete(ctx, task_id):
    """Delete a task"""
    analyzer = get_analyzer(ctx)
    existing = analyzer.store.get_task(task_id)
    if existing is None or not analyzer.store.delete_task(task_id):
        fail(f"Task not found: {task_id}")
    analyzer.events.log_project_event(
        existing.project_id, EventType.EDIT, {'task_id': task_id, 'deleted': True}
    )
    click.echo(f"Deleted task {task_id}")


# Milestones

@main.group()
def milestone():
    """Manage project milestones"""
    pass


@milestone.command(name="add")
@click.argument("project_id")
@click.argument("milestone_id")
@click.option("--title", "-t", default="", help="Milestone title")
@click.option("--start", help="Start date (YYYY-MM-DD)")
@click.option("--target", help="Target date (YYYY-MM-DD)")
@click.option("--description", help="Description")
@click.pass_context
def milestone_add(ctx, project_id, milestone_id, title, start, target, description):
    """Create or replace a milestone"""
    analyzer = get_analyzer(ctx)
    new_milestone = Milestone(
        id=milestone_id,
        project_id=project_id,
        title=title,
        start=start,
        target=target,
        description=description,
    )
    if target and new_milestone.target is None:
        fail(f"Invalid target date: {target}")

    if not analyzer.store.upsert_milestone(new_milestone):
        fail(f"Error saving milestone {milestone_id}")
    click.echo(f"Saved milestone {milestone_id} in project {project_id}")


# Dependencies

@main.group()
def deps():
    """Manage project dependencies"""
    pass


@deps.command(name="set")
@click.argument("project_id")
@click.argument("depends_on", nargs=-1)
@click.pass_context
def deps_set(ctx, project_id: str, depends_on: Tuple[str, ...]):
    """Replace a project's direct dependencies"""
    analyzer = get_analyzer(ctx)
    if not analyzer.dependencies.set_dependencies(project_id, depends_on):
        fail(f"Error saving dependencies for {project_id}")

    current = analyzer.dependencies.get_dependencies(project_id)
    click.echo(f"{project_id} depends on: {', '.join(current) if current else 'nothing'}")

    if analyzer.dependencies.graph().has_cycle_through(project_id):
        click.echo(f"Warning: circular dependency through {project_id}", err=True)


@deps.command(name="show")
@click.argument("project_id")
@click.pass_context
def deps_show(ctx, project_id: str):
    """Show direct, incomplete and transitive dependencies"""
    analyzer = get_analyzer(ctx)
    manager = analyzer.dependencies

    direct = manager.get_dependencies(project_id)
    if not direct:
        click.echo(f"{project_id} has no dependencies")
        return

    incomplete = set(manager.get_incomplete_dependency_ids(project_id))
    rows = []
    for dep_id in manager.resolve_transitive(project_id):
        dep = analyzer.store.get_project(dep_id)
        rows.append({
            "Project": dep_id,
            "Link": "direct" if dep_id in direct else "transitive",
            "Status": dep.status if dep else "missing",
            "Blocking": "yes" if dep_id in incomplete else "",
        })
    click.echo(format_table(rows, tablefmt="simple"))

    for cycle in manager.graph().find_cycles():
        if project_id in cycle:
            click.echo(f"Cycle: {' -> '.join(cycle)}", err=True)


# Time tracking

@main.command(name="log-time")
@click.argument("task_id")
@click.argument("hours")
@click.option("--note", "-n", help="What was done")
@click.option("--by", "logged_by", help="Who did the work")
@click.pass_context
def log_time(ctx, task_id, hours, note, logged_by):
    """Log hours against a task"""
    analyzer = get_analyzer(ctx)
    existing = analyzer.store.get_task(task_id)
    if existing is None:
        fail(f"Task not found: {task_id}")

    log = analyzer.time_tracker.add_time_log(
        task_id, existing.project_id, hours, note=note, logged_by=logged_by
    )
    if log is None:
        fail(f"Hours must be a positive number, got {hours!r}")

    updated = analyzer.store.get_task(task_id)
    click.echo(f"Logged {log.hours:g}h on {task_id} (total {updated.logged_hours:g}h)")


# Health weights

@main.group()
def weights():
    """Show or tune health penalty weights"""
    pass


@weights.command(name="show")
@click.pass_context
def weights_show(ctx):
    """Show effective health weights"""
    current = get_analyzer(ctx).get_weights()
    rows = [{"Weight": name, "Value": value} for name, value in current.to_dict().items()]
    click.echo(format_table(rows, tablefmt="simple"))


def _weight_option(name: str):
    flag = "--" + name.replace("_", "-")
    return click.option(flag, name, type=float, help=f"New value for {name}")


def _with_weight_options(func):
    for name in reversed(WEIGHT_FIELDS):
        func = _weight_option(name)(func)
    return func


@weights.command(name="set")
@_with_weight_options
@click.pass_context
def weights_set(ctx, **values):
    """Override one or more health weights"""
    partial = {k: v for k, v in values.items() if v is not None}
    if not partial:
        fail("Nothing to update - pass at least one weight option")

    negative = [k for k, v in partial.items() if v < 0]
    if negative:
        fail(f"Weights must not be negative: {', '.join(negative)}")

    updated = get_analyzer(ctx).set_weights(partial)
    for name in partial:
        click.echo(f"{name} = {getattr(updated, name):g}")


main.add_command(get_analytics_commands())


if __name__ == "__main__":
    main()
