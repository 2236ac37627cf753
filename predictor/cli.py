"""
Management commands

Registered on the Flask CLI (``flask round state 7``) and exposed through
manage.py.
"""

import json

import click
from flask.cli import with_appcontext
from sqlalchemy import text

from predictor import db
from predictor.models import Fixture, League, Result, Submission, User
from predictor.services import stats_service
from predictor.services.results_service import record_result
from predictor.services.scheduler_service import scheduler_service
from predictor.services.snapshot import load_snapshot
from predictor.services.submission_service import heal_all_rounds, heal_round
from predictor.utils.cache_utils import get_cache_stats
from predictor.utils.timezone_utils import format_kickoff_time


@click.group()
def cli():
    """Gameweek Predictor Management CLI"""
    pass


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


# Round Commands
@cli.group(name="round")
def round_cmd():
    """Round lifecycle commands"""
    pass


@round_cmd.command("state")
@click.argument("round_number", type=int)
@click.option("--user-id", type=int, help="Resolve OPEN/PREDICTED for this user")
@with_appcontext
def round_state(round_number, user_id):
    """Show the lifecycle state and deadline of a round"""
    snapshot = load_snapshot()
    timeline = snapshot.timeline(round_number)

    picks_complete = None
    if user_id is not None:
        picks_complete = snapshot.picks_complete(user_id, round_number)
    state = timeline.state if picks_complete is None else timeline.state_for(picks_complete)

    click.echo(f"Round {round_number}: {state.value}")
    click.echo(f"  Fixtures: {len(snapshot.fixture_indices(round_number))}")
    click.echo(f"  Deadline: {format_kickoff_time(timeline.deadline)}")
    click.echo(f"  First kickoff: {format_kickoff_time(timeline.first_kickoff)}")

    fixtures = (
        Fixture.query.filter_by(round_number=round_number)
        .order_by(Fixture.fixture_index)
        .all()
    )
    for fixture in fixtures:
        click.echo(
            f"    {fixture.fixture_index}: {fixture.label} "
            f"({format_kickoff_time(fixture.kickoff_time)})"
        )


@round_cmd.command("heal")
@click.argument("round_number", type=int, required=False)
@with_appcontext
def round_heal(round_number):
    """Revoke submissions that no longer match their round"""
    if round_number is None:
        healed = heal_all_rounds()
    else:
        revoked = heal_round(round_number)
        healed = {round_number: revoked} if revoked else {}

    if not healed:
        click.echo("All submissions are consistent")
        return

    for r, user_ids in sorted(healed.items()):
        click.echo(f"Round {r}: revoked {len(user_ids)} submission(s) {user_ids}")


# Results Commands
@cli.group()
def results():
    """Result commands"""
    pass


@results.command("record")
@click.argument("round_number", type=int)
@click.argument("fixture_index", type=int)
@click.option("--outcome", type=click.Choice(["H", "D", "A"], case_sensitive=False))
@click.option("--home", "home_goals", type=int, help="Home goals")
@click.option("--away", "away_goals", type=int, help="Away goals")
@with_appcontext
def results_record(round_number, fixture_index, outcome, home_goals, away_goals):
    """Record a fixture result (write-once)"""
    try:
        result, created = record_result(
            round_number,
            fixture_index,
            outcome_code=outcome,
            home_goals=home_goals,
            away_goals=away_goals,
        )
    except (LookupError, ValueError) as e:
        raise click.ClickException(str(e))

    if created:
        click.echo(f"Recorded round {round_number} fixture {fixture_index}: {result.outcome.value}")
    else:
        click.echo(
            f"Result already recorded for round {round_number} fixture {fixture_index} "
            f"({result.outcome.value}), left unchanged"
        )


# League Commands
@cli.group()
def league():
    """League commands"""
    pass


@league.command("standings")
@click.argument("league_id", type=int)
@with_appcontext
def league_standings(league_id):
    """Print a league's standings"""
    data = stats_service.league_standings(load_snapshot(), league_id)
    if data is None:
        raise click.ClickException(f"League {league_id} not found")

    click.echo(
        f"{data['league']['name']} (from round {data['effective_start_round']}, "
        f"{len(data['rounds'])} rounds counted)"
    )
    click.echo(f"{'#':>3}  {'Name':<20} {'Pts':>4} {'Uni':>4} {'OCP':>4}  Form")
    for row in data["standings"]:
        click.echo(
            f"{row['rank']:>3}  {str(row['name']):<20} {row['points']:>4} "
            f"{row['unicorns']:>4} {row['ocp']:>4}  {row['form']}"
        )


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Global leaderboard commands"""
    pass


@leaderboard.command("overall")
@click.option("--limit", default=20, help="Rows to show")
@with_appcontext
def leaderboard_overall(limit):
    """Print the overall leaderboard"""
    data = stats_service.overall_leaderboard(load_snapshot())
    if data["round"] is None:
        click.echo("No decided rounds yet")
        return

    click.echo(f"Overall after round {data['round']}")
    for row in data["entries"][:limit]:
        change = row.get("rank_change") or {}
        if change.get("is_new_entrant"):
            movement = "new"
        elif change.get("change"):
            movement = f"{change['change']:+d}"
        else:
            movement = "="
        click.echo(f"{row['rank']:>4}  {str(row['name']):<20} {row['value']:>5}  {movement}")


@leaderboard.command("form")
@click.argument("window", type=int)
@click.option("--limit", default=20, help="Rows to show")
@with_appcontext
def leaderboard_form(window, limit):
    """Print the 5 or 10 round form leaderboard"""
    try:
        data = stats_service.form_leaderboard_view(load_snapshot(), window)
    except ValueError as e:
        raise click.ClickException(str(e))

    if data is None:
        click.echo(f"Form {window} is not available yet")
        return

    first, last = data["rounds"]
    click.echo(f"Form {window} (rounds {first}-{last})")
    for row in data["entries"][:limit]:
        click.echo(f"{row['rank']:>4}  {str(row['name']):<20} {row['value']:>5}")


# User Commands
@cli.group()
def user():
    """User commands"""
    pass


@user.command("stats")
@click.argument("user_id", type=int)
@with_appcontext
def user_stats(user_id):
    """Print a user's statistic bundle as JSON"""
    data = stats_service.user_stats(load_snapshot(), user_id)
    if data is None:
        raise click.ClickException(f"User {user_id} not found")
    _echo_json(data)


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("Gameweek Predictor Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("Database: Connected")
    except Exception as e:
        click.echo(f"Database: Error - {str(e)}")
        return

    snapshot = load_snapshot()
    current = snapshot.current_round()
    if current is not None:
        click.echo(f"Current round: {current} ({snapshot.timeline(current).state.value})")
    else:
        click.echo("Current round: none (no fixtures)")

    latest = snapshot.latest_decided_round()
    click.echo(f"Latest decided round: {latest if latest is not None else '-'}")
    click.echo(f"Users: {User.query.count()}")
    click.echo(f"Leagues: {League.query.count()}")
    click.echo(f"Fixtures: {Fixture.query.count()} / Results: {Result.query.count()}")
    click.echo(f"Submissions: {Submission.query.count()}")

    cache_stats = get_cache_stats()
    click.echo(f"Cache: {cache_stats['type']} ({cache_stats['timeout']}s)")

    scheduler_status = scheduler_service.get_status()
    if scheduler_status["is_running"]:
        click.echo(f"Scheduler: running ({len(scheduler_status['jobs'])} jobs)")
    else:
        click.echo("Scheduler: stopped")


def register_commands(app):
    """Attach the command groups to the Flask CLI"""
    for command in cli.commands.values():
        app.cli.add_command(command)
