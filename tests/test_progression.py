from app.services.progression import (build_user_profile, level_for,
                                      stats_from_profile, total_wins, total_xp)
from app.services.records import GameStats, PlayerProfile, UserProfile


def test_xp_from_high_score_and_wins():
    stats = {
        'snake': GameStats('snake', high_score=120, games_played=4),
        'tictactoe': GameStats('tictactoe', wins=2, losses=1),
        'uno': GameStats('uno', wins=1),
    }
    profile = build_user_profile(PlayerProfile('Ada', 3), stats)

    assert total_wins(stats) == 3
    assert total_xp(120, 3) == 270
    assert profile.level == 1
    assert profile.xp == 270
    assert profile.username == 'Ada'
    assert profile.avatar_id == 3
    assert profile.snake_games == 4
    assert profile.tictactoe_losses == 1


def test_level_boundaries():
    assert level_for(0) == (1, 0)
    assert level_for(499) == (1, 499)
    assert level_for(500) == (2, 0)
    assert level_for(1234) == (3, 234)


def test_missing_games_count_as_zero():
    profile = build_user_profile(PlayerProfile(), {})

    assert profile.username == 'Anonymous Player'
    assert profile.level == 1
    assert profile.xp == 0
    assert profile.uno_wins == 0


def test_profile_payload_ignores_reported_level():
    remote = UserProfile.from_dict({'username': 'Bob', 'level': 40, 'xp': 3,
                                    'snakeHighScore': 450, 'tictactoeWins': 2,
                                    'snakeLaddersWins': 1, 'unoWins': 'many'})
    profile = build_user_profile(PlayerProfile(remote.username, remote.avatar_id),
                                 stats_from_profile(remote))

    assert profile.level == 2
    assert profile.xp == 100
    assert profile.uno_wins == 0
