import pytest

from app.services.leaderboard import (LeaderboardRanker, PlayerSnapshot,
                                      placeholder_leaderboard)
from app.services.records import GameStats, PlayerProfile
from app.utils.scoring import (fallback_name, games_played_for, hash_code,
                               score_all_games, win_rate)


def snake_player(player_id, high_score, played=1, profile=None):
    return PlayerSnapshot(player_id, profile,
                          {'snake': GameStats('snake', high_score=high_score,
                                              games_played=played)})


def test_equal_scores_keep_first_seen_order():
    snapshots = [snake_player('A', 100), snake_player('B', 250),
                 snake_player('C', 250)]

    entries = LeaderboardRanker().rank(snapshots, 'snake')

    assert [(e.player_id, e.rank) for e in entries] == [('B', 1), ('C', 2), ('A', 3)]


def test_limit_truncates_after_ranking():
    snapshots = [snake_player(f"p{i}", i * 10) for i in range(5)]

    entries = LeaderboardRanker().rank(snapshots, 'snake', limit=2)

    assert [e.player_id for e in entries] == ['p4', 'p3']


def test_win_loss_game_scoring():
    snapshot = PlayerSnapshot('X', None, {
        'tictactoe': GameStats('tictactoe', wins=1, losses=2),
        'snakeladders': GameStats('snakeladders', wins=2),
    })
    ranker = LeaderboardRanker()

    ttt = ranker.entry_for(snapshot, 'tictactoe')
    sl = ranker.entry_for(snapshot, 'snakeladders')

    assert ttt.score == 100
    assert ttt.games_played == 3
    assert ttt.win_rate == 33
    assert sl.score == 300
    assert sl.win_rate == 100


def test_aggregate_sums_every_game():
    stats = {
        'snake': GameStats('snake', high_score=120),
        'tictactoe': GameStats('tictactoe', wins=2, losses=1),
        'uno': GameStats('uno', wins=1, losses=1),
    }

    assert score_all_games(stats) == (120 + 200 + 100, 3, 2)

    entry = LeaderboardRanker().entry_for(PlayerSnapshot('Y', None, stats), 'all')
    assert entry.score == 420
    assert entry.games_played == 5
    assert entry.win_rate == 60


def test_snake_only_player_uses_play_counter():
    entry = LeaderboardRanker().entry_for(snake_player('Z', 30, played=3), 'snake')

    assert entry.games_played == 3
    assert entry.win_rate == 0


@pytest.mark.parametrize('wins, losses, counter, expected', [
    (1, 2, 9, 3),
    (0, 0, 4, 4),
    (0, 0, 0, 1),
])
def test_games_played_fallbacks(wins, losses, counter, expected):
    assert games_played_for(wins, losses, counter) == expected


def test_win_rate_rounds_half_up():
    assert win_rate(1, 3) == 33
    assert win_rate(1, 8) == 13
    assert win_rate(1, 2) == 50
    assert win_rate(0, 0) == 0


def test_display_name_prefers_profile():
    ranker = LeaderboardRanker()
    named = ranker.entry_for(snake_player('0xabc', 10, profile=PlayerProfile('Neo')), 'snake')
    anonymous = ranker.entry_for(snake_player('abc', 10), 'snake')

    assert named.display_name == 'Neo'
    assert hash_code('abc') == 96354
    assert anonymous.display_name == 'Player354'
    assert fallback_name('abc') == 'Player354'


def test_hash_is_stable_and_non_negative():
    long_id = '0x' + 'f' * 40
    assert hash_code(long_id) == hash_code(long_id)
    assert hash_code(long_id) >= 0
    assert hash_code('') == 0


def test_unknown_game_type_uses_aggregate():
    stats = {'snake': GameStats('snake', high_score=80),
             'uno': GameStats('uno', wins=1)}

    entry = LeaderboardRanker().entry_for(PlayerSnapshot('Q', None, stats), 'chess')

    assert entry.score == 180


def test_placeholder_rows():
    rows = placeholder_leaderboard()

    assert len(rows) == 10
    assert all(row.placeholder for row in rows)
    assert all(row.player_id.startswith('demo:') for row in rows)
    assert [row.rank for row in rows] == list(range(1, 11))
    assert rows[0].display_name == 'CryptoKing'
    assert len(placeholder_leaderboard(3)) == 3


def test_empty_player_set_ranks_nothing():
    assert LeaderboardRanker().rank([], None) == []
