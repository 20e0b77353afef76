"""Player analytics: wins, streaks, achievements and the global leaderboard.

Everything here is computed from plain game and score collections so it can
be reused by HTTP routes and tests without a database session.
"""
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from . import hierarchy as hier
from .players import belongs_to_user, display_name
from .scoring import EMPTY, HIGHEST_SCORE, LOWEST_SCORE, determine_winners


@dataclass
class WinLossPoint:
    date: str
    wins: int
    losses: int


@dataclass
class RecentGame:
    id: str
    game_name: str
    score: int
    is_win: bool
    date: str


@dataclass
class Achievement:
    id: str
    title: str
    description: str
    is_unlocked: bool


@dataclass
class PlayerStats:
    user_id: str
    total_games: int
    wins: int
    losses: int
    win_rate: float
    highest_score_wins: int
    lowest_score_wins: int
    current_streak: int
    best_score: int
    average_score: int
    level: int
    level_progress: float
    win_loss_data: List[WinLossPoint] = field(default_factory=list)
    recent_games: List[RecentGame] = field(default_factory=list)
    achievements: List[Achievement] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


def calculate_streak(dates: Iterable[date]) -> int:
    """Consecutive calendar days ending at the most recent day played."""
    days = sorted(set(dates), reverse=True)
    if not days:
        return 0
    streak = 1
    prev = days[0]
    for day in days[1:]:
        if prev - day == timedelta(days=1):
            streak += 1
            prev = day
        else:
            break
    return streak


def _day(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _game_totals(game, rows) -> Dict[str, int]:
    """Totals per score-owning player of one game (entered cells only)."""
    totals: Dict[str, int] = defaultdict(int)
    for row in rows:
        if row.score == EMPTY or not 1 <= row.round_number <= (game.rounds or 0):
            continue
        totals[row.player_id] += row.score
    return dict(totals)


def _user_total(game, totals: Dict[str, int], user_id: str) -> Optional[int]:
    tree = hier.decode(game.player_hierarchy)
    for player_id, total in totals.items():
        if belongs_to_user(player_id, user_id):
            return total
    # Child players score through their parent team
    if tree:
        parent = None
        for child in hier.all_children(tree):
            if belongs_to_user(child, user_id):
                parent = hier.parent_of(tree, child)
                break
        if parent is not None and parent in totals:
            return totals[parent]
    return None


def _game_label(game, user_id: str, win_condition: str) -> str:
    others = [p for p in game.player_ids if not belongs_to_user(p, user_id)]
    if not others:
        return 'Solo Game'
    condition = 'Lowest Wins' if win_condition == LOWEST_SCORE else 'Highest Wins'
    return f"Game vs {', '.join(display_name(p) for p in others)} ({condition})"


def player_stats(games, scores, user_id: str) -> Optional[PlayerStats]:
    """Aggregate stats for ``user_id`` over the games they took part in.

    Returns None when there is nothing to aggregate.
    """
    games = list(games)
    scores = list(scores)
    if not games or not scores:
        return None

    scores_by_game = defaultdict(list)
    for row in scores:
        scores_by_game[row.game_id].append(row)

    wins = losses = highest_wins = lowest_wins = 0
    win_loss: List[WinLossPoint] = []
    recent: List[RecentGame] = []
    user_totals: List[int] = []

    for game in games:
        totals = _game_totals(game, scores_by_game.get(game.id, []))
        mine = _user_total(game, totals, user_id)
        if mine is None:
            continue
        user_totals.append(mine)
        condition = game.win_condition or HIGHEST_SCORE
        _, best = determine_winners(totals, condition)
        is_win = best is not None and mine == best and best > 0
        if is_win:
            wins += 1
            if condition == LOWEST_SCORE:
                lowest_wins += 1
            else:
                highest_wins += 1
        else:
            losses += 1
        played_on = game.created_at.isoformat()
        win_loss.append(WinLossPoint(date=played_on, wins=int(is_win), losses=int(not is_win)))
        recent.append(RecentGame(
            id=game.id,
            game_name=game.game_name or _game_label(game, user_id, condition),
            score=mine,
            is_win=is_win,
            date=played_on,
        ))

    total_games = len(games)
    streak = calculate_streak(_day(g.created_at) for g in games)
    best_score = max(user_totals) if user_totals else 0
    average_score = sum(user_totals) // len(user_totals) if user_totals else 0
    win_rate = wins / total_games if total_games else 0.0
    distinct_players = {p for g in games for p in g.player_ids}

    achievements = [
        Achievement('1', 'First Win', 'Win your first game', wins > 0),
        Achievement('2', 'Streak Master', 'Play 5 days in a row', streak >= 5),
        Achievement('3', 'Regular Player', 'Play 50 games', total_games >= 50),
        Achievement('4', 'Highest Score Master', 'Win 10 highest-score games', highest_wins >= 10),
        Achievement('5', 'Lowest Score Master', 'Win 10 lowest-score games', lowest_wins >= 10),
        Achievement('6', 'Versatile Player', 'Win both highest and lowest score games',
                    highest_wins > 0 and lowest_wins > 0),
        Achievement('7', 'Social Butterfly', 'Play with 10+ different players', len(distinct_players) >= 10),
    ]

    return PlayerStats(
        user_id=user_id,
        total_games=total_games,
        wins=wins,
        losses=losses,
        win_rate=win_rate,
        highest_score_wins=highest_wins,
        lowest_score_wins=lowest_wins,
        current_streak=streak,
        best_score=best_score,
        average_score=average_score,
        level=1 + total_games // 10,
        level_progress=(total_games % 10) / 10.0,
        win_loss_data=win_loss,
        recent_games=sorted(recent, key=lambda g: g.date, reverse=True),
        achievements=achievements,
    )


def leaderboard(scores, games, usernames: Dict[str, str], limit: int = 100) -> List[dict]:
    """Points per player across all games, highest first."""
    names_by_game = {g.id: g.game_name or 'None' for g in games}
    points: Dict[str, int] = defaultdict(int)
    played: Dict[str, set] = defaultdict(set)
    for row in scores:
        if row.score == EMPTY:
            continue
        points[row.player_id] += row.score
        played[row.player_id].add(row.game_id)

    entries = [
        {
            'player_id': player_id,
            'nickname': display_name(player_id, usernames),
            'points': total,
            'games': sorted(names_by_game.get(gid, 'None') for gid in played[player_id]),
        }
        for player_id, total in points.items()
    ]
    entries.sort(key=lambda e: e['points'], reverse=True)
    return entries[:limit]
