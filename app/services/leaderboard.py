"""Leaderboard ranking over all known players.

Scoring is pluggable per game type (see ``app.utils.scoring``). Sorting is
stable, so players with equal scores keep the order in which they were
first seen in the store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.services.records import ALL_GAMES, LeaderboardEntry, PlayerProfile
from app.utils.scoring import (SCORING_POLICIES, avatar_for, fallback_name,
                               games_played_for, hash_code, score_all_games,
                               win_rate)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

# Canned rows shown when there is nothing real to rank
PLACEHOLDER_PLAYERS = [
    {'name': 'CryptoKing', 'score': 12847, 'games': 234, 'win_rate': 78, 'avatar': '👑'},
    {'name': 'Web3Pro', 'score': 11293, 'games': 198, 'win_rate': 72, 'avatar': '🎮'},
    {'name': 'BlockMaster', 'score': 10892, 'games': 312, 'win_rate': 65, 'avatar': '⚡'},
    {'name': 'ChainGamer', 'score': 9847, 'games': 156, 'win_rate': 69, 'avatar': '🔥'},
    {'name': 'PixelNinja', 'score': 8921, 'games': 287, 'win_rate': 61, 'avatar': '🥷'},
    {'name': 'TokenChamp', 'score': 8456, 'games': 201, 'win_rate': 58, 'avatar': '🏆'},
    {'name': 'DeFiGamer', 'score': 7892, 'games': 178, 'win_rate': 55, 'avatar': '💎'},
    {'name': 'NFTPlayer', 'score': 7234, 'games': 245, 'win_rate': 52, 'avatar': '🎨'},
    {'name': 'MetaGamer', 'score': 6891, 'games': 134, 'win_rate': 60, 'avatar': '🌐'},
    {'name': 'ZeroLag', 'score': 6543, 'games': 167, 'win_rate': 54, 'avatar': '⚡'},
]


@dataclass
class PlayerSnapshot:
    """Everything the ranker needs to know about one player."""
    player_id: str
    profile: PlayerProfile | None = None
    stats: dict = field(default_factory=dict)


def placeholder_leaderboard(limit=DEFAULT_LIMIT):
    """Demo rows, flagged ``placeholder=True`` and with ``demo:`` ids."""
    return [
        LeaderboardEntry(rank=index + 1,
                         player_id=f"demo:{hash_code(player['name']):x}",
                         display_name=player['name'],
                         score=player['score'],
                         games_played=player['games'],
                         win_rate=player['win_rate'],
                         avatar=player['avatar'],
                         placeholder=True)
        for index, player in enumerate(PLACEHOLDER_PLAYERS[:max(limit, 0)])
    ]


def assign_ranks(entries):
    """Stable sort by score (descending) and number the rows from 1."""
    ranked = sorted(entries, key=lambda entry: entry.score, reverse=True)
    for position, entry in enumerate(ranked, start=1):
        entry.rank = position
    return ranked


class LeaderboardRanker:
    """Turns player snapshots into ranked leaderboard entries."""

    def __init__(self, policies=None, aggregate_policy=score_all_games):
        self.policies = dict(SCORING_POLICIES if policies is None else policies)
        self.aggregate_policy = aggregate_policy

    def policy_for(self, game_type):
        if game_type in (None, '', ALL_GAMES):
            return self.aggregate_policy
        policy = self.policies.get(game_type)
        if policy is None:
            logger.warning(f"No scoring policy for {game_type!r} - using aggregate")
            return self.aggregate_policy
        return policy

    def entry_for(self, snapshot: PlayerSnapshot, game_type):
        score, wins, losses = self.policy_for(game_type)(snapshot.stats)
        snake = snapshot.stats.get('snake')
        play_counter = snake.games_played if snake else 0
        games_played = games_played_for(wins, losses, play_counter)

        if snapshot.profile is not None:
            display_name = snapshot.profile.username
        else:
            display_name = fallback_name(snapshot.player_id)

        return LeaderboardEntry(rank=0,
                                player_id=snapshot.player_id,
                                display_name=display_name,
                                score=score,
                                games_played=games_played,
                                win_rate=win_rate(wins, games_played),
                                avatar=avatar_for(snapshot.player_id))

    def rank(self, snapshots, game_type=None, limit=DEFAULT_LIMIT):
        """
        Rank players for one game type, or across all of them.

        Args:
            snapshots (iterable): PlayerSnapshot in store iteration order
            game_type (str): Game type, ``'all'`` or None for the aggregate
            limit (int): Maximum number of rows

        Returns:
            list: LeaderboardEntry rows; empty when there are no players
        """
        entries = [self.entry_for(snapshot, game_type) for snapshot in snapshots]
        return assign_ranks(entries)[:max(limit, 0)]
