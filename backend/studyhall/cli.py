# Overview: Flask CLI command groups for bootstrap, reference data and membership inspection.

# backend/studyhall/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Idempotent demo data: one branch, three shifts, ten seats.
#
# Reference data:
# - python -m flask branches list
# - python -m flask branches create --name "North Wing" --address "..." --phone "..."
# - python -m flask shifts list
# - python -m flask shifts create --title "Morning" --time "06:00-12:00"
# - python -m flask seats add --branch-id 1 --numbers "1,2,3"
#
# Memberships:
# - python -m flask students expiring [--days 7] [--branch-id 1]
#   List memberships ending soon.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Shift
from .services import catalog_service, student_query_service
from .services.concurrency import run_in_transaction
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


DEMO_SHIFTS = (
    ("Morning", "06:00-12:00"),
    ("Afternoon", "12:00-18:00"),
    ("Evening", "18:00-23:00"),
)


@system_group.command('seed-demo')
@click.option('--branch', 'branch_name', default='Main Branch', help='Branch name')
@click.option('--seats', 'seat_count', type=int, default=10, show_default=True)
@with_appcontext
def seed_demo(branch_name, seat_count):
    """Create a demo branch, shifts and seats. Safe to run twice."""
    branch = db.session.query(Branch).filter_by(name=branch_name).first()
    if not branch:
        branch = run_in_transaction(lambda: catalog_service.create_branch({"name": branch_name}))
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    for title, time_range in DEMO_SHIFTS:
        if db.session.query(Shift).filter_by(title=title).first():
            continue
        shift = run_in_transaction(
            lambda: catalog_service.create_shift({"title": title, "time": time_range})
        )
        click.echo(f"PASS Created shift: {shift.title} ({shift.time})")

    numbers = ",".join(str(n) for n in range(1, seat_count + 1))
    result = run_in_transaction(
        lambda: catalog_service.add_seats({"branch_id": branch.id, "seat_numbers": numbers})
    )
    click.echo(f"PASS {result['message']}")


@click.group('branches')
def branches_group():
    """Branch management commands."""


@branches_group.command('list')
@with_appcontext
def list_branches_cli():
    """List all branches."""
    branches = catalog_service.list_branches()
    if not branches:
        click.echo("No branches found.")
        return
    click.echo(f"\n{'ID':<5} {'Name':<30} {'Seats':<6} {'Phone':<16}")
    click.echo("-" * 60)
    for branch in branches:
        click.echo(f"{branch.id:<5} {branch.name:<30} {len(branch.seats):<6} {branch.phone or '':<16}")


@branches_group.command('create')
@click.option('--name', required=True)
@click.option('--address', default=None)
@click.option('--phone', default=None)
@with_appcontext
def create_branch_cli(name, address, phone):
    """Create a branch."""
    try:
        branch = run_in_transaction(
            lambda: catalog_service.create_branch({"name": name, "address": address, "phone": phone})
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")


@click.group('shifts')
def shifts_group():
    """Shift (schedule) management commands."""


@shifts_group.command('list')
@with_appcontext
def list_shifts_cli():
    """List all shifts."""
    for shift in catalog_service.list_shifts():
        click.echo(f"{shift.id:<5} {shift.title:<20} {shift.time or ''}")


@shifts_group.command('create')
@click.option('--title', required=True)
@click.option('--time', 'time_range', default=None, help='e.g. 06:00-12:00')
@click.option('--description', default=None)
@with_appcontext
def create_shift_cli(title, time_range, description):
    """Create a shift."""
    try:
        shift = run_in_transaction(lambda: catalog_service.create_shift(
            {"title": title, "time": time_range, "description": description}
        ))
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created shift: {shift.title} (ID: {shift.id})")


@click.group('seats')
def seats_group():
    """Seat management commands."""


@seats_group.command('add')
@click.option('--branch-id', type=int, required=True)
@click.option('--numbers', required=True, help='Comma-separated seat numbers')
@with_appcontext
def add_seats_cli(branch_id, numbers):
    """Bulk-add seats to a branch."""
    try:
        result = run_in_transaction(
            lambda: catalog_service.add_seats({"branch_id": branch_id, "seat_numbers": numbers})
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {result['message']}")
    if result["skipped"]:
        click.echo(f"SKIP Already present: {', '.join(result['skipped'])}")


@click.group('students')
def students_group():
    """Membership inspection commands."""


@students_group.command('expiring')
@click.option('--days', type=int, default=None, help='Window in days (default EXPIRING_SOON_DAYS)')
@click.option('--branch-id', type=int, default=None)
@with_appcontext
def expiring_cli(days, branch_id):
    """List memberships ending within the window, soonest first."""
    students = student_query_service.list_expiring_soon(branch_id=branch_id, days=days)
    if not students:
        click.echo("No memberships expiring soon.")
        return
    click.echo(f"\n{'ID':<5} {'Name':<30} {'Phone':<16} {'Ends':<12} {'Seat':<6}")
    click.echo("-" * 72)
    for s in students:
        click.echo(
            f"{s['id']:<5} {s['name']:<30} {s['phone'] or '':<16} "
            f"{s['membership_end']:<12} {s['seat_number'] or '-':<6}"
        )
    click.echo(f"\nTotal: {len(students)} membership(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(seats_group)
    app.cli.add_command(students_group)
