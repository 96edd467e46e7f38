import click
from flask.cli import AppGroup

from .errors import LedgerError
from .services import ledger
from .utils.periods import current_period, iter_periods, parse_period

rents_cli = AppGroup("rents", help="Rent ledger maintenance commands.")


@rents_cli.command("reconcile")
@click.option("--period", help="First period to reconcile (YYYY-MM). Defaults to the current month.")
@click.option("--through", help="Last period to reconcile (YYYY-MM), inclusive.")
def reconcile_command(period, through):
    """Create missing rent obligations for occupied units."""
    try:
        start = parse_period(period or current_period(), "period")
        end = parse_period(through, "through") if through else start
        periods = list(iter_periods(start, end))
        for p in periods:
            created = ledger.reconcile(p)
            click.echo(f"{p}: created {created} obligation(s)")
    except LedgerError as e:
        raise click.ClickException(e.message)


def register_cli(app):
    app.cli.add_command(rents_cli)
