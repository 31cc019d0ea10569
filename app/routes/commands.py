import click
from flask import current_app
from flask.cli import with_appcontext
from app.services.leaderboard import DEFAULT_LIMIT
from app.services.records import ALL_GAMES, GAME_TYPES


def print_leaderboard(service, game_type=ALL_GAMES, limit=DEFAULT_LIMIT):
    entries = service.get_leaderboard(game_type, limit)
    click.echo(f"Leaderboard ({game_type}) via {service.backend or 'no'} backend")
    for entry in entries:
        marker = ' (demo)' if entry.placeholder else ''
        click.echo(f"{entry.rank:>3}. {entry.avatar} {entry.display_name:<20} "
                   f"{entry.score:>7}  games={entry.games_played:<4} "
                   f"win={entry.win_rate}%{marker}")
    return entries


@click.command('leaderboard')
@click.option('--game-type',
              type=click.Choice(GAME_TYPES + (ALL_GAMES, )),
              default=ALL_GAMES)
@click.option('--limit', type=int, default=DEFAULT_LIMIT)
@with_appcontext
def leaderboard_command(game_type, limit):
    """Print the current leaderboard."""
    print_leaderboard(current_app.extensions['game_station'], game_type, limit)


@click.command('backend')
@with_appcontext
def backend_command():
    """Show the active backend and ledger configuration."""
    service = current_app.extensions['game_station']
    click.echo(f"Backend: {service.backend or 'not connected'}")
    click.echo(f"Player: {service.player_id or '-'}")
    for key, value in service.env_info().items():
        click.echo(f"  {key}: {value}")


def register_commands(app):
    app.cli.add_command(leaderboard_command)
    app.cli.add_command(backend_command)
