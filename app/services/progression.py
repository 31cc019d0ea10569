"""Level and experience derived from stored counters.

Everything here is a pure function of ``GameStats`` so both backends report
the same level for the same counters.
"""
from app.services.records import (GameStats, PlayerProfile, UserProfile,
                                  WIN_LOSS_GAMES)

XP_PER_WIN = 50
XP_PER_LEVEL = 500


def total_wins(stats_by_game):
    """Wins summed over the win/loss games (the solo game has no wins)."""
    return sum(stats_by_game[game].wins for game in WIN_LOSS_GAMES
               if game in stats_by_game)


def total_xp(snake_high_score, wins):
    return snake_high_score + wins * XP_PER_WIN


def level_for(xp_total):
    """
    Split a running xp total into a level and the xp inside that level.

    Args:
        xp_total (int): Lifetime experience

    Returns:
        tuple: (level, xp) with level starting at 1
    """
    return xp_total // XP_PER_LEVEL + 1, xp_total % XP_PER_LEVEL


def build_user_profile(profile: PlayerProfile, stats_by_game) -> UserProfile:
    """
    Assemble the profile view from a stored profile and per-game stats.

    Args:
        profile (PlayerProfile): Stored username/avatar (defaults if absent)
        stats_by_game (dict): game type -> GameStats; missing games count as zero

    Returns:
        UserProfile: profile with level/xp computed from the counters
    """
    def stats(game):
        return stats_by_game.get(game) or GameStats(game_type=game)

    snake = stats('snake')
    tictactoe = stats('tictactoe')
    snakeladders = stats('snakeladders')
    uno = stats('uno')

    level, xp = level_for(total_xp(snake.high_score, total_wins(stats_by_game)))

    return UserProfile(username=profile.username,
                       avatar_id=profile.avatar_id,
                       level=level,
                       xp=xp,
                       snake_high_score=snake.high_score,
                       snake_games=snake.games_played,
                       snake_ladders_wins=snakeladders.wins,
                       snake_ladders_losses=snakeladders.losses,
                       tictactoe_wins=tictactoe.wins,
                       tictactoe_losses=tictactoe.losses,
                       uno_wins=uno.wins,
                       uno_losses=uno.losses)


def stats_from_profile(user_profile: UserProfile):
    """Rebuild per-game stats from a profile view (used for remote payloads)."""
    return {
        'snake': GameStats('snake',
                           high_score=user_profile.snake_high_score,
                           games_played=user_profile.snake_games),
        'tictactoe': GameStats('tictactoe',
                               wins=user_profile.tictactoe_wins,
                               losses=user_profile.tictactoe_losses),
        'snakeladders': GameStats('snakeladders',
                                  wins=user_profile.snake_ladders_wins,
                                  losses=user_profile.snake_ladders_losses),
        'uno': GameStats('uno',
                         wins=user_profile.uno_wins,
                         losses=user_profile.uno_losses),
    }
