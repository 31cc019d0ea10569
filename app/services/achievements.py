"""Achievement catalogue and the rule engine that unlocks it.

The catalogue is a flat table of definitions, each carrying its own
predicate. Predicates receive the player's ``SessionAggregate`` after the
triggering result has been applied, plus the result itself; flag-driven
("one-shot") predicates only look at ``result.extra``.

Unlocks are one-way: an unlocked achievement is never re-evaluated and its
``unlockedAt`` is never rewritten.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.services.records import (AchievementState, GameResult,
                                  SessionAggregate, parse_achievement_map)
from app.utils.scoring import round_half_up

logger = logging.getLogger(__name__)

ACHIEVEMENTS_KEY = 'achievements'
SESSION_STATS_KEY = 'session-stats'

Predicate = Callable[[SessionAggregate, GameResult], bool]


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    icon: str
    category: str
    rarity: str
    xp_reward: int
    predicate: Predicate

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'category': self.category,
            'rarity': self.rarity,
            'xpReward': self.xp_reward,
        }


def at_least(attr, threshold):
    def predicate(aggregate, result):
        return getattr(aggregate, attr) >= threshold
    return predicate


def flag(name, game):
    def predicate(aggregate, result):
        return result.game_type == game and bool(result.extra.get(name))
    return predicate


def extra_at_least(name, threshold, game, on_win=False):
    def predicate(aggregate, result):
        if result.game_type != game or (on_win and not result.won):
            return False
        value = result.extra.get(name)
        return isinstance(value, (int, float)) and not isinstance(value, bool) \
            and value >= threshold
    return predicate


def extra_below(name, threshold, game, on_win=False):
    def predicate(aggregate, result):
        if result.game_type != game or (on_win and not result.won):
            return False
        value = result.extra.get(name)
        return isinstance(value, (int, float)) and not isinstance(value, bool) \
            and value < threshold
    return predicate


def _a(id, title, description, icon, category, rarity, xp_reward, predicate):
    return AchievementDefinition(id, title, description, icon, category,
                                 rarity, xp_reward, predicate)


ACHIEVEMENTS = (
    # General
    _a('first_game', 'First Steps', 'Play your first game', '🎮', 'general', 'common', 10,
       at_least('total_games', 1)),
    _a('play_10', 'Getting Started', 'Play 10 games', '🏃', 'general', 'common', 25,
       at_least('total_games', 10)),
    _a('play_50', 'Dedicated Gamer', 'Play 50 games', '🎯', 'general', 'rare', 100,
       at_least('total_games', 50)),
    _a('play_100', 'Arcade Legend', 'Play 100 games', '🏆', 'general', 'epic', 250,
       at_least('total_games', 100)),
    _a('first_win', 'Taste of Victory', 'Win your first game', '✨', 'general', 'common', 15,
       at_least('total_wins', 1)),
    _a('win_streak_3', 'On Fire!', 'Win 3 games in a row', '🔥', 'general', 'rare', 50,
       at_least('current_win_streak', 3)),
    _a('win_streak_5', 'Unstoppable', 'Win 5 games in a row', '⚡', 'general', 'epic', 100,
       at_least('current_win_streak', 5)),
    _a('win_streak_10', 'God Mode', 'Win 10 games in a row', '👑', 'general', 'legendary', 500,
       at_least('current_win_streak', 10)),

    # Snake
    _a('snake_50', 'Slithering', 'Score 50 in Snake', '🐍', 'snake', 'common', 20,
       at_least('snake_high_score', 50)),
    _a('snake_100', 'Snake Charmer', 'Score 100 in Snake', '🐍', 'snake', 'rare', 50,
       at_least('snake_high_score', 100)),
    _a('snake_200', 'Python Master', 'Score 200 in Snake', '🐍', 'snake', 'epic', 150,
       at_least('snake_high_score', 200)),
    _a('snake_500', 'Anaconda King', 'Score 500 in Snake', '🐍', 'snake', 'legendary', 500,
       at_least('snake_high_score', 500)),
    _a('snake_no_walls', 'Edge Walker', 'Play Snake for 2 minutes without hitting walls',
       '🧱', 'snake', 'epic', 100,
       extra_at_least('wallFreeSeconds', 120, 'snake')),

    # Tic-Tac-Toe
    _a('ttt_first_win', 'X Marks Victory', 'Win your first Tic-Tac-Toe game', '❌',
       'tictactoe', 'common', 15, at_least('ttt_wins', 1)),
    _a('ttt_5_wins', 'Strategic Mind', 'Win 5 Tic-Tac-Toe games', '🧠',
       'tictactoe', 'rare', 50, at_least('ttt_wins', 5)),
    _a('ttt_perfect', 'Flawless Victory', 'Win Tic-Tac-Toe in 3 moves', '💯',
       'tictactoe', 'epic', 100, flag('perfectTTT', 'tictactoe')),
    _a('ttt_20_wins', 'Grandmaster', 'Win 20 Tic-Tac-Toe games', '🎖️',
       'tictactoe', 'legendary', 300, at_least('ttt_wins', 20)),

    # Snake & Ladders
    _a('sl_first_win', 'Lucky Roller', 'Win your first Snake & Ladders game', '🎲',
       'snakeladders', 'common', 20, at_least('sl_wins', 1)),
    _a('sl_ladder_3', 'Climber', 'Hit 3 ladders in one game', '🪜',
       'snakeladders', 'rare', 40, extra_at_least('laddersHit', 3, 'snakeladders')),
    _a('sl_no_snakes', 'Snake Dodger', 'Win without hitting any snakes', '🛡️',
       'snakeladders', 'epic', 150, flag('noSnakesHit', 'snakeladders')),
    _a('sl_comeback', 'Comeback King', 'Win after being 50+ spaces behind', '👑',
       'snakeladders', 'legendary', 300,
       extra_at_least('maxDeficit', 50, 'snakeladders', on_win=True)),

    # UNO
    _a('uno_first_win', 'UNO!', 'Win your first UNO game', '🃏',
       'uno', 'common', 20, at_least('uno_wins', 1)),
    _a('uno_plus4', 'Friendship Ender', 'Play a Draw 4 card', '💔',
       'uno', 'common', 10, flag('playedPlus4', 'uno')),
    _a('uno_reverse', 'No U', 'Win with a Reverse card', '🔄',
       'uno', 'rare', 50, flag('wonWithReverse', 'uno')),
    _a('uno_domination', 'Card Shark', 'Win 10 UNO games', '🦈',
       'uno', 'epic', 200, at_least('uno_wins', 10)),
    _a('uno_speedrun', 'Speed Demon', 'Win UNO in under 2 minutes', '⚡',
       'uno', 'legendary', 400,
       extra_below('durationSeconds', 120, 'uno', on_win=True)),
)


def now_millis():
    return int(time.time() * 1000)


def unlocked_view(definition, state):
    data = definition.to_dict()
    data.update(state.to_dict())
    return data


def evaluate(catalogue, aggregate, result, states):
    """
    Find achievements newly satisfied by the current state.

    Args:
        catalogue (iterable): AchievementDefinition table
        aggregate (SessionAggregate): State after the result was applied
        result (GameResult): The triggering result
        states (dict): achievement id -> AchievementState

    Returns:
        list: definitions that are satisfied and still locked, in catalogue order
    """
    newly = []
    for definition in catalogue:
        state = states.get(definition.id)
        if state is not None and state.unlocked:
            continue
        try:
            satisfied = definition.predicate(aggregate, result)
        except (TypeError, ValueError) as e:
            logger.warning(f"Predicate for {definition.id} failed: {e}")
            satisfied = False
        if satisfied:
            newly.append(definition)
    return newly


class AchievementEngine:
    """Tracks per-player aggregates and achievement unlocks in the local store."""

    def __init__(self, store, catalogue=ACHIEVEMENTS, clock=now_millis):
        self.store = store
        self.catalogue = tuple(catalogue)
        self.by_id = {definition.id: definition for definition in self.catalogue}
        self.clock = clock
        self.recent_unlock = None
        self.last_unlocks = []

    def load_aggregate(self, player_id):
        raw = self.store.get(SESSION_STATS_KEY, {})
        entry = raw.get(player_id) if isinstance(raw, dict) else None
        return SessionAggregate.from_dict(entry)

    def load_states(self, player_id):
        raw = self.store.get(ACHIEVEMENTS_KEY, {})
        entry = raw.get(player_id) if isinstance(raw, dict) else None
        return parse_achievement_map(entry)

    def _persist(self, player_id, result, unlocked):
        def apply_result(stored):
            stored = stored if isinstance(stored, dict) else {}
            aggregate = SessionAggregate.from_dict(stored.get(player_id))
            aggregate.apply(result)
            stored[player_id] = aggregate.to_dict()
            return stored

        self.store.update(SESSION_STATS_KEY, apply_result, {})
        if unlocked:
            self._merge_unlocks(player_id, unlocked)

    def _merge_unlocks(self, player_id, unlocked):
        """Union the new unlocks into the stored map without rewriting old ones."""
        def merge(stored):
            stored = stored if isinstance(stored, dict) else {}
            states = parse_achievement_map(stored.get(player_id))
            for achievement_id, state in unlocked.items():
                current = states.get(achievement_id)
                if current is None or not current.unlocked:
                    states[achievement_id] = state
            stored[player_id] = {achievement_id: state.to_dict()
                                 for achievement_id, state in states.items()}
            return stored

        self.store.update(ACHIEVEMENTS_KEY, merge, {})

    def track_game(self, result: GameResult):
        """
        Apply one game result and unlock whatever it newly satisfies.

        Counters are updated first, then the whole catalogue is evaluated
        against the new state.

        Args:
            result (GameResult): The submitted result

        Returns:
            list: newly unlocked achievements (dicts), in catalogue order

        Raises:
            StorageError: the new state could not be written; ``recent_unlock``
                and ``last_unlocks`` still reflect the computed unlocks
        """
        aggregate = self.load_aggregate(result.player_id)
        states = self.load_states(result.player_id)
        aggregate.apply(result)

        stamp = self.clock()
        newly = evaluate(self.catalogue, aggregate, result, states)
        unlocked = {definition.id: AchievementState(unlocked=True, unlocked_at=stamp)
                    for definition in newly}

        self.last_unlocks = [unlocked_view(definition, unlocked[definition.id])
                             for definition in newly]
        if self.last_unlocks:
            self.recent_unlock = self.last_unlocks[-1]
            logger.info(
                f"Player {result.player_id} unlocked "
                f"{', '.join(definition.id for definition in newly)}")

        self._persist(result.player_id, result, unlocked)
        return self.last_unlocks

    def check_and_unlock(self, player_id, achievement_id):
        """Unlock one achievement directly; False if unknown or already unlocked."""
        definition = self.by_id.get(achievement_id)
        if definition is None:
            return False
        state = self.load_states(player_id).get(achievement_id)
        if state is not None and state.unlocked:
            return False

        new_state = AchievementState(unlocked=True, unlocked_at=self.clock())
        self.recent_unlock = unlocked_view(definition, new_state)
        self._merge_unlocks(player_id, {achievement_id: new_state})
        return True

    def clear_recent_unlock(self):
        self.recent_unlock = None

    def achievements(self, player_id):
        states = self.load_states(player_id)
        return [unlocked_view(definition,
                              states.get(definition.id) or AchievementState())
                for definition in self.catalogue]

    def progress(self, player_id):
        states = self.load_states(player_id)
        unlocked = sum(1 for definition in self.catalogue
                       if states.get(definition.id, AchievementState()).unlocked)
        total = len(self.catalogue)
        percentage = round_half_up(unlocked / total * 100) if total else 0
        return {'unlocked': unlocked, 'total': total, 'percentage': percentage}
