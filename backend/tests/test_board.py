from types import SimpleNamespace

import pytest

from scoreboard.errors import GameStateError, InvalidRequest
from scoreboard.services.games.board import ScoreboardEditor, cell_key
from scoreboard.services.games.scoring import EMPTY


def row(player_id, round_number, score):
    return SimpleNamespace(player_id=player_id, round_number=round_number, score=score)


def make_editor(rounds=2, rows=(), **kwargs):
    return ScoreboardEditor(['ann', 'ben'], rounds, rows, **kwargs)


def test_grid_from_rows_ignores_out_of_range():
    editor = make_editor(rows=[row('ann', 1, 4), row('ben', 2, 0), row('ann', 5, 9), row('zed', 1, 1)])
    assert editor.grid() == {'ann': [4, EMPTY], 'ben': [EMPTY, 0]}
    assert editor.has_score_been_entered('ben', 2)
    assert not editor.has_score_been_entered('ann', 2)


def test_has_score_been_entered_rejects_rounds_below_one():
    editor = make_editor(rows=[row('ann', 2, 5)])
    assert editor.has_score_been_entered('ann', 2)
    assert not editor.has_score_been_entered('ann', 0)
    assert not editor.has_score_been_entered('ann', -1)


def test_update_and_undo():
    editor = make_editor()
    assert editor.update_score('ann', 1, 7)
    assert editor.has_unsaved_changes
    assert editor.cell('ann', 1) == 7
    assert cell_key('ann', 1) in editor.entered
    editor.undo()
    assert editor.cell('ann', 1) == EMPTY
    assert not editor.has_unsaved_changes


def test_update_out_of_range_round_is_ignored():
    editor = make_editor()
    assert editor.update_score('ann', 3, 1) is False
    with pytest.raises(InvalidRequest):
        editor.update_score('nobody', 1, 1)


def test_diff_reports_upserts_and_deletes():
    editor = make_editor(rows=[row('ann', 1, 4), row('ben', 1, 2)])
    editor.update_score('ann', 1, 5)
    editor.clear_score('ben', 1)
    editor.update_score('ben', 2, 0)
    diff = editor.diff()
    assert sorted(diff.upserts) == [('ann', 1, 5), ('ben', 2, 0)]
    assert diff.deletes == [('ben', 1)]

    editor.mark_saved()
    assert not editor.diff()
    assert editor.stored == {('ann', 1): 5, ('ben', 2): 0}


def test_unchanged_cells_are_not_rewritten():
    editor = make_editor(rows=[row('ann', 1, 4)])
    editor.update_score('ann', 1, 4)
    assert not editor.diff()


def test_add_round_respects_max():
    editor = make_editor(rounds=1, max_rounds=2)
    assert editor.add_round() == 2
    assert editor.grid()['ann'] == [EMPTY, EMPTY]
    with pytest.raises(GameStateError):
        editor.add_round()


def test_remove_round_drops_last_column():
    editor = make_editor(rows=[row('ann', 1, 1), row('ann', 2, 2)])
    assert editor.remove_round() == 1
    assert editor.grid()['ann'] == [1]
    assert editor.diff().deletes == [('ann', 2)]
    with pytest.raises(GameStateError):
        editor.remove_round()


def test_delete_round_shifts_later_rounds():
    editor = make_editor(rounds=3, rows=[row('ann', 1, 1), row('ann', 2, 2), row('ann', 3, 3)])
    editor.update_score('ben', 3, 9)
    editor.delete_round(2)
    assert editor.rounds == 2
    assert editor.grid() == {'ann': [1, 3], 'ben': [EMPTY, 9]}
    assert cell_key('ben', 2) in editor.entered
    diff = editor.diff()
    assert sorted(diff.upserts) == [('ann', 2, 3), ('ben', 2, 9)]
    assert diff.deletes == [('ann', 3)]


def test_delete_round_validates_number():
    editor = make_editor()
    with pytest.raises(InvalidRequest):
        editor.delete_round(5)


def test_delete_player_removes_rows():
    editor = make_editor(rows=[row('ben', 1, 3)])
    editor.delete_player('ben')
    assert editor.players == ['ann']
    assert editor.diff().deletes == [('ben', 1)]
    with pytest.raises(GameStateError):
        editor.delete_player('ann')


def test_rename_player_moves_scores():
    editor = make_editor(rows=[row('ben', 1, 3)])
    editor.rename_player('ben', 'benjamin')
    assert editor.player_ids == ['ann', 'benjamin']
    assert editor.grid()['benjamin'] == [3, EMPTY]
    diff = editor.diff()
    assert diff.upserts == [('benjamin', 1, 3)]
    assert diff.deletes == [('ben', 1)]
    with pytest.raises(InvalidRequest):
        editor.rename_player('ann', 'benjamin')


def test_completion_and_winners():
    editor = make_editor(rounds=1)
    editor.update_score('ann', 1, 3)
    assert not editor.is_complete()
    editor.update_score('ben', 1, 0)
    assert editor.is_complete()
    assert editor.winners('HIGHEST_SCORE') == (['ann'], 3)
    assert editor.winners('LOWEST_SCORE') == (['ben'], 0)


def test_next_empty_cell_wraps():
    editor = ScoreboardEditor(['ann', 'ben', 'cat'], 1)
    editor.update_score('cat', 1, 1)
    assert editor.next_empty_cell('ben', 1) == 'ann'
    editor.update_score('ann', 1, 1)
    assert editor.next_empty_cell('ann', 1) == 'ben'
    editor.update_score('ben', 1, 1)
    assert editor.next_empty_cell('ann', 1) is None


def test_team_players_are_parents():
    editor = ScoreboardEditor(['reds', 'blues'], 1, hierarchy={'reds': ['u1'], 'blues': ['u2']})
    assert editor.players == ['reds', 'blues']
    editor.rename_player('reds', 'crimson')
    assert editor.hierarchy == {'crimson': ['u1'], 'blues': ['u2']}
