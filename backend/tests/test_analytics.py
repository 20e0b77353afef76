from datetime import date, datetime
from types import SimpleNamespace

from scoreboard.services.games.analytics import calculate_streak, leaderboard, player_stats


def game(game_id, player_ids, created, win_condition='HIGHEST_SCORE', rounds=1, name=None, hierarchy=None):
    return SimpleNamespace(
        id=game_id,
        player_ids=player_ids,
        created_at=created,
        win_condition=win_condition,
        rounds=rounds,
        game_name=name,
        player_hierarchy=hierarchy,
    )


def score(game_id, player_id, value, round_number=1):
    return SimpleNamespace(game_id=game_id, player_id=player_id, round_number=round_number, score=value)


def test_streak_counts_consecutive_days():
    assert calculate_streak([]) == 0
    assert calculate_streak([date(2024, 5, 3)]) == 1
    days = [date(2024, 5, 3), date(2024, 5, 2), date(2024, 5, 2), date(2024, 5, 1), date(2024, 4, 28)]
    assert calculate_streak(days) == 3


def test_player_stats_wins_and_losses():
    games = [
        game('g1', ['me', 'Bob'], datetime(2024, 5, 1, 10)),
        game('g2', ['me:Al', 'Bob'], datetime(2024, 5, 2, 10), win_condition='LOWEST_SCORE', name='Tuesday'),
        game('g3', ['me', 'Bob'], datetime(2024, 5, 3, 10)),
    ]
    scores = [
        score('g1', 'me', 30), score('g1', 'Bob', 10),
        score('g2', 'me:Al', 4), score('g2', 'Bob', 9),
        score('g3', 'me', 1), score('g3', 'Bob', 8),
    ]
    stats = player_stats(games, scores, 'me')
    assert stats.total_games == 3
    assert stats.wins == 2
    assert stats.losses == 1
    assert stats.highest_score_wins == 1
    assert stats.lowest_score_wins == 1
    assert stats.current_streak == 3
    assert stats.best_score == 30
    assert stats.average_score == 11
    assert stats.level == 1
    assert stats.level_progress == 0.3
    assert [g.id for g in stats.recent_games] == ['g3', 'g2', 'g1']
    assert stats.recent_games[1].game_name == 'Tuesday'
    assert stats.recent_games[0].game_name == 'Game vs Bob (Highest Wins)'

    unlocked = {a.title for a in stats.achievements if a.is_unlocked}
    assert unlocked == {'First Win', 'Versatile Player'}


def test_zero_total_is_not_a_win():
    games = [game('g1', ['me', 'Bob'], datetime(2024, 5, 1))]
    scores = [score('g1', 'me', 0), score('g1', 'Bob', 0)]
    stats = player_stats(games, scores, 'me')
    assert stats.wins == 0
    assert stats.losses == 1


def test_team_child_uses_parent_total():
    games = [game('g1', ['Reds', 'Blues'], datetime(2024, 5, 1), hierarchy='{"Reds": ["me"], "Blues": ["u2"]}')]
    scores = [score('g1', 'Reds', 12), score('g1', 'Blues', 3)]
    stats = player_stats(games, scores, 'me')
    assert stats.wins == 1
    assert stats.best_score == 12


def test_no_data_returns_none():
    assert player_stats([], [], 'me') is None


def test_leaderboard_sums_points():
    games = [game('g1', ['u1', 'Bob'], datetime(2024, 5, 1), name='Friday'),
             game('g2', ['u1'], datetime(2024, 5, 2))]
    scores = [score('g1', 'u1', 5), score('g1', 'Bob', 20), score('g2', 'u1', 7, 1), score('g2', 'u1', -1, 2)]
    board = leaderboard(scores, games, {'u1': 'alice'})
    assert [(e['nickname'], e['points']) for e in board] == [('Bob', 20), ('alice', 12)]
    assert board[1]['games'] == ['Friday', 'None']
    assert len(leaderboard(scores, games, {}, limit=1)) == 1
