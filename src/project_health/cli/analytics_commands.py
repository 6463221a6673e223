"""CLI Analytics Commands for Project Health.

Commands that score and chart a single project:
- Health score and factors
- Risk score with recommendations
- Weekly velocity, daily burndown and completion rate tables
- Estimate accuracy report
- Health history sparkline
- Full dashboard with export
"""

import json
import sys
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

import click
import tabulate
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..domain import Project
from ..services.dashboard import ProjectAnalyzer, ProjectDashboard
from ..services.health import HealthStatus
from ..services.risk import RiskLevel
from ..utils.datetime import parse_date, utc_today

SPARK_CHARS = "▁▂▃▄▅▆▇█"

HEALTH_STYLES = {
    HealthStatus.EXCELLENT: "bold green",
    HealthStatus.GOOD: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "bold red",
}

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "bold red",
}

EXPORT_SUFFIXES = {".csv": "csv", ".md": "markdown", ".markdown": "markdown"}


# Console formatting helpers
def format_table(data: List[Dict], headers: Optional[List[str]] = None,
                 tablefmt: str = "grid") -> str:
    """Format data as a table"""
    if not data:
        return "No data available"

    if headers is None:
        headers = "keys"

    return tabulate.tabulate(data, headers=headers, tablefmt=tablefmt)


def print_section(title: str, content: str = ""):
    """Print a formatted section"""
    click.echo(f"\n{'=' * 60}")
    click.echo(f"{title:^60}")
    click.echo(f"{'=' * 60}")
    if content:
        click.echo(content)
    click.echo()


def sparkline(values: List[float], low: float = 0, high: float = 100) -> str:
    """Render scores as a one-line unicode sparkline"""
    if not values:
        return ""
    span = (high - low) or 1
    top = len(SPARK_CHARS) - 1
    chars = []
    for value in values:
        ratio = min(1.0, max(0.0, (value - low) / span))
        chars.append(SPARK_CHARS[int(round(ratio * top))])
    return "".join(chars)


def _analyzer(ctx: click.Context) -> ProjectAnalyzer:
    return ctx.find_object(dict)['analyzer']


def _require_project(analyzer: ProjectAnalyzer, project_id: str) -> Project:
    project = analyzer.store.get_project(project_id)
    if project is None:
        click.echo(f"Project not found: {project_id}", err=True)
        sys.exit(1)
    return project


def _echo_json(data):
    click.echo(json.dumps(data, indent=2))


format_option = click.option('--format', '-f', 'output_format',
                             type=click.Choice(['text', 'json']),
                             default='text', help='Output format')


# Main analytics command group
@click.group(name='analytics')
def analytics_cli():
    """Health, risk and progress analytics for a project"""
    pass


@analytics_cli.command(name='health')
@click.argument('project_id')
@click.option('--snapshot/--no-snapshot', default=True,
              help="Record today's score in the health history")
@format_option
@click.pass_context
def health_command(ctx, project_id: str, snapshot: bool, output_format: str):
    """Show a project's health score and factors"""
    analyzer = _analyzer(ctx)
    project = _require_project(analyzer, project_id)
    health = analyzer.calculate_health(project_id, snapshot=snapshot)

    if output_format == 'json':
        _echo_json(health.to_dict())
        return

    print_section(f"PROJECT HEALTH: {project.name}")
    click.echo(f"Health Score: {health.score}/100 ({health.status.value})")
    rows = [{"Factor": name.title(), "Score": value}
            for name, value in health.factors.to_dict().items()]
    rows.append({"Factor": "Overdue Tasks", "Score": health.overdue_tasks})
    rows.append({"Factor": "Overdue Milestones", "Score": health.overdue_milestones})
    click.echo(format_table(rows, tablefmt="simple"))


@analytics_cli.command(name='risk')
@click.argument('project_id')
@format_option
@click.pass_context
def risk_command(ctx, project_id: str, output_format: str):
    """Show a project's risk score and recommendations"""
    analyzer = _analyzer(ctx)
    project = _require_project(analyzer, project_id)
    risk = analyzer.calculate_risk(project_id)

    if output_format == 'json':
        _echo_json(risk.to_dict())
        return

    print_section(f"PROJECT RISK: {project.name}")
    click.echo(f"Risk Score: {risk.score:.1f} ({risk.level.value})")
    rows = [{"Factor": name.replace('_', ' ').title(), "Risk": f"{value:.1f}"}
            for name, value in risk.factors.to_dict().items()]
    click.echo(format_table(rows, tablefmt="simple"))
    click.echo("\nRecommendations:")
    for rec in risk.recommendations:
        click.echo(f"  - {rec}")


@analytics_cli.command(name='velocity')
@click.argument('project_id')
@click.option('--weeks', '-w', type=int, help='Number of weeks to include')
@format_option
@click.pass_context
def velocity_command(ctx, project_id: str, weeks: Optional[int], output_format: str):
    """Weekly velocity with rolling average and trend"""
    analyzer = _analyzer(ctx)
    _require_project(analyzer, project_id)
    velocity = analyzer.analytics.get_velocity_metrics(
        project_id, weeks or analyzer.config.velocity_weeks
    )

    if output_format == 'json':
        _echo_json([v.to_dict() for v in velocity])
        return

    rows = [{
        "Period": v.period,
        "Start": v.period_start.strftime('%Y-%m-%d'),
        "Completed": v.completed,
        "Points": v.points,
        "Rolling Avg": v.avg_velocity,
        "Trend": v.trend.value,
    } for v in velocity]
    click.echo(format_table(rows))


@analytics_cli.command(name='burndown')
@click.argument('project_id')
@click.option('--start', help='First day (YYYY-MM-DD)')
@click.option('--end', help='Last day (YYYY-MM-DD), defaults to today')
@format_option
@click.pass_context
def burndown_command(ctx, project_id: str, start: Optional[str], end: Optional[str],
                     output_format: str):
    """Daily ideal vs actual remaining tasks"""
    analyzer = _analyzer(ctx)
    _require_project(analyzer, project_id)

    end_date = parse_date(end) if end else utc_today()
    if end_date is None:
        click.echo(f"Invalid end date: {end}", err=True)
        sys.exit(1)
    if start:
        start_date = parse_date(start)
        if start_date is None:
            click.echo(f"Invalid start date: {start}", err=True)
            sys.exit(1)
    else:
        start_date = end_date - timedelta(days=analyzer.config.health_history_days - 1)

    points = analyzer.analytics.get_burndown_data(project_id, start_date, end_date)

    if output_format == 'json':
        _echo_json([p.to_dict() for p in points])
        return

    rows = [{"Date": p.date, "Ideal": p.ideal, "Actual": p.actual, "Completed": p.completed}
            for p in points]
    click.echo(format_table(rows, tablefmt="simple"))


@analytics_cli.command(name='completion')
@click.argument('project_id')
@click.option('--days', '-d', type=int, help='Number of days to include')
@format_option
@click.pass_context
def completion_command(ctx, project_id: str, days: Optional[int], output_format: str):
    """Per-day share of tasks with logged work"""
    analyzer = _analyzer(ctx)
    _require_project(analyzer, project_id)
    stats = analyzer.analytics.get_completion_rate_stats(
        project_id, days or analyzer.config.completion_days
    )

    if output_format == 'json':
        _echo_json([s.to_dict() for s in stats])
        return

    rows = [{"Date": s.date, "Active Tasks": s.completed, "Total": s.total,
             "Rate": f"{s.rate:.1f}%"} for s in stats]
    click.echo(format_table(rows, tablefmt="simple"))


@analytics_cli.command(name='accuracy')
@click.argument('project_id')
@format_option
@click.pass_context
def accuracy_command(ctx, project_id: str, output_format: str):
    """Estimated vs logged hours per task"""
    analyzer = _analyzer(ctx)
    _require_project(analyzer, project_id)
    report = analyzer.analytics.get_time_estimate_accuracy(project_id)

    if output_format == 'json':
        _echo_json(report.to_dict())
        return

    if not report.tasks:
        click.echo("No tasks with both an estimate and logged hours")
        return

    rows = [{
        "Task": a.task_title or a.task_id,
        "Estimated": a.estimated,
        "Logged": a.logged,
        "Variance": f"{a.variance:+.1f}%",
        "Accuracy": a.accuracy.value,
    } for a in report.tasks]
    click.echo(format_table(rows))
    click.echo(f"\nMean absolute variance: {report.avg_variance:.1f}%")
    click.echo(f"Accurate: {report.accuracy_rate:.1f}%  Over: {report.over_count}  "
               f"Under: {report.under_count}")


@analytics_cli.command(name='history')
@click.argument('project_id')
@click.option('--days', '-d', type=int, help='Number of days to include')
@format_option
@click.pass_context
def history_command(ctx, project_id: str, days: Optional[int], output_format: str):
    """Daily health scores as a sparkline"""
    analyzer = _analyzer(ctx)
    project = _require_project(analyzer, project_id)
    series = analyzer.history.get_health_series(
        project_id, days or analyzer.config.health_history_days
    )

    if output_format == 'json':
        _echo_json(series)
        return

    console = Console()
    text = Text(sparkline(series), style="cyan")
    text.append(f"  {series[0]:g} -> {series[-1]:g}" if series else "")
    console.print(Panel(text, title=f"{project.name} health history", expand=False))


@analytics_cli.command(name='dashboard')
@click.argument('project_id')
@click.option('--export', '-e', type=click.Path(), help='Export to file')
@click.option('--export-format', type=click.Choice(['json', 'csv', 'markdown']),
              help='Export format (guessed from the file extension by default)')
@format_option
@click.pass_context
def dashboard_command(ctx, project_id: str, export: Optional[str],
                      export_format: Optional[str], output_format: str):
    """Full project dashboard"""
    analyzer = _analyzer(ctx)
    _require_project(analyzer, project_id)

    dashboard = analyzer.generate_project_dashboard(project_id)

    if export:
        path = Path(export)
        fmt = export_format or EXPORT_SUFFIXES.get(path.suffix.lower(), 'json')
        try:
            path.write_text(analyzer.export_project_data(dashboard, fmt), encoding="utf-8")
        except OSError as e:
            click.echo(f"Error exporting dashboard: {e}", err=True)
            sys.exit(1)
        click.echo(f"Dashboard exported to {export}")
        return

    if output_format == 'json':
        _echo_json(dashboard.to_dict())
        return

    _display_project_dashboard(analyzer, dashboard)


def _display_project_dashboard(analyzer: ProjectAnalyzer, dashboard: ProjectDashboard):
    """Display project dashboard"""
    console = Console()
    health, risk = dashboard.health, dashboard.risk

    summary = Text()
    summary.append(f"Health {health.score}/100 ({health.status.value})",
                   style=HEALTH_STYLES[health.status])
    summary.append("   ")
    summary.append(f"Risk {risk.score:.1f} ({risk.level.value})", style=RISK_STYLES[risk.level])
    summary.append(f"\nTrend  {sparkline(dashboard.health_series)}")
    summary.append(f"\nTasks  {dashboard.completed_tasks}/{dashboard.total_tasks} done, "
                   f"{dashboard.in_progress_tasks} in progress, {dashboard.overdue_tasks} overdue")
    rollup = dashboard.time_rollup
    summary.append(f"\nHours  {rollup.logged:g} logged of {rollup.estimate:g} estimated")
    console.print(Panel(summary, title=f"📁 {dashboard.project.name}", expand=False))

    if dashboard.velocity:
        click.echo("\nVelocity")
        click.echo(format_table([{
            "Period": v.period,
            "Completed": v.completed,
            "Rolling Avg": v.avg_velocity,
            "Trend": v.trend.value,
        } for v in dashboard.velocity[-4:]], tablefmt="simple"))

    if dashboard.milestones:
        click.echo("\nMilestones")
        click.echo(format_table([{
            "Milestone": m.milestone.title or m.milestone.id,
            "Target": m.milestone.target.isoformat() if m.milestone.target else "-",
            "Done": f"{m.progress.percent}%",
            "Overdue": "yes" if m.is_overdue else "",
        } for m in dashboard.milestones], tablefmt="simple"))

    click.echo("\nRecommendations")
    for rec in risk.recommendations:
        click.echo(f"  - {rec}")

    insights = analyzer.get_project_insights(dashboard)
    if insights:
        click.echo("\nInsights")
        for insight in insights:
            click.echo(f"  - {insight}")


def get_analytics_commands():
    """Get all analytics CLI commands"""
    return analytics_cli
