import math

from app.services.records import GameStats, WIN_LOSS_GAMES

# Solo game: every SNAKE_SCORE_UNIT points count as one "win" on the board
SNAKE_SCORE_UNIT = 50

POINTS_PER_WIN = {
    'tictactoe': 100,
    'snakeladders': 150,
    'uno': 100,
}

AVATARS = ['👑', '🎮', '⚡', '🔥', '🥷', '🏆', '💎', '🎨', '🌐', '🚀', '🎯', '💀']


def round_half_up(value):
    return int(math.floor(value + 0.5))


def hash_code(text):
    """
    Stable 32-bit string hash (the classic ``h * 31 + c`` rolling hash).

    Args:
        text (str): Any string, usually a player address

    Returns:
        int: Non-negative hash, identical across processes and runs
    """
    h = 0
    for char in text:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def avatar_for(player_id):
    return AVATARS[hash_code(player_id) % len(AVATARS)]


def fallback_name(player_id):
    return f"Player{hash_code(player_id) % 1000}"


def _stats(stats_by_game, game):
    return stats_by_game.get(game) or GameStats(game_type=game)


def score_snake(stats_by_game):
    """
    Score for the solo game.

    Returns:
        tuple: (score, wins, losses)
    """
    high_score = _stats(stats_by_game, 'snake').high_score
    return high_score, high_score // SNAKE_SCORE_UNIT, 0


def win_loss_policy(game_type):
    """Build the scorer for a win/loss game: fixed points per win."""
    points = POINTS_PER_WIN[game_type]

    def score(stats_by_game):
        stats = _stats(stats_by_game, game_type)
        return stats.wins * points, stats.wins, stats.losses

    score.__name__ = f"score_{game_type}"
    return score


def score_all_games(stats_by_game):
    """Aggregate over every game: scores summed, wins/losses summed over win/loss games."""
    score = score_snake(stats_by_game)[0]
    wins = losses = 0
    for game in WIN_LOSS_GAMES:
        game_score, game_wins, game_losses = SCORING_POLICIES[game](stats_by_game)
        score += game_score
        wins += game_wins
        losses += game_losses
    return score, wins, losses


SCORING_POLICIES = {
    'snake': score_snake,
    'tictactoe': win_loss_policy('tictactoe'),
    'snakeladders': win_loss_policy('snakeladders'),
    'uno': win_loss_policy('uno'),
}


def games_played_for(wins, losses, play_counter):
    """Decided games, else the stored play counter, else 1."""
    return (wins + losses) or play_counter or 1


def win_rate(wins, games_played):
    if games_played <= 0:
        return 0
    return round_half_up(100 * wins / games_played)
