"""Game operations over the database.

Each public function validates, mutates and commits once. Score changes
always go through a ``ScoreboardEditor`` so that a round or player change and
the matching score rows are written in the same transaction.
"""
import re
from typing import Dict, Iterable, List, Optional

from flask import current_app

from scoreboard import db
from scoreboard.errors import GameNotFound, GameStateError, InvalidRequest, PermissionDenied
from scoreboard.models import Game, Score, User, GAME_STATUSES, WIN_CONDITIONS, commit_session
from . import hierarchy as hier
from . import players as pl
from . import rules as rl
from .board import ScoreboardEditor
from .scoring import EMPTY, final_scores, winner_message


_CODE_RE = re.compile(r'^[0-9A-Za-z-]+$')


def _cfg(key, default):
    return current_app.config.get(key, default)


# ---- lookups -----------------------------------------------------------

def get_game(game_id: str) -> Game:
    game = db.session.get(Game, game_id)
    if not game:
        raise GameNotFound('Game not found')
    return game


def find_game_by_code(code: str) -> Game:
    length = int(_cfg('JOIN_CODE_LENGTH', 6))
    code = (code or '').strip()
    if len(code) != length or not _CODE_RE.match(code):
        raise InvalidRequest(f'Please enter a {length}-character game code.')
    game = Game.query.filter(Game.id.like(f'{code.lower()}%')).order_by(Game.created_at.desc()).first()
    if not game:
        raise GameNotFound('Game not found. Please check the game code and try again.')
    return game


def games_for_user(user_id: str) -> List[Game]:
    games = Game.query.order_by(Game.created_at.desc()).all()
    found = []
    for g in games:
        members = hier.participating_users(hier.decode(g.player_hierarchy), g.player_ids)
        if g.host_user_id == user_id or pl.user_in_game(user_id, members):
            found.append(g)
    return found


def usernames_for(player_ids: Iterable[str]) -> Dict[str, str]:
    ids = pl.ids_needing_lookup(player_ids)
    if not ids:
        return {}
    return {u.id: u.username for u in User.query.filter(User.id.in_(ids)).all()}


# ---- guards ------------------------------------------------------------

def is_host(game: Game, user_id: Optional[str]) -> bool:
    return bool(user_id) and game.host_user_id == user_id


def require_host(game: Game, user_id: Optional[str]) -> None:
    if not is_host(game, user_id):
        raise PermissionDenied('Only the game creator can change this game')


def require_active(game: Game) -> None:
    if game.game_status != 'ACTIVE':
        raise GameStateError('This game is no longer active')


def _commit(tag: str, game: Game) -> None:
    commit_session(tag, game=game.id)
    current_app.logger.info(f"[{tag}] game={game.id} rounds={game.rounds} players={len(game.player_ids)}")


def _persist(game: Game, editor: ScoreboardEditor):
    """Write the editor's diff and game shape; caller commits."""
    diff = editor.diff()
    for player_id, round_number in diff.deletes:
        row = Score.query.filter_by(game_id=game.id, player_id=player_id, round_number=round_number).first()
        if row:
            db.session.delete(row)
    db.session.flush()
    for player_id, round_number, value in diff.upserts:
        row = Score.query.filter_by(game_id=game.id, player_id=player_id, round_number=round_number).first()
        if row:
            row.score = value
        else:
            db.session.add(Score(
                id=Score.make_id(game.id, player_id, round_number),
                game_id=game.id,
                player_id=player_id,
                round_number=round_number,
                score=value,
            ))
    game.player_ids = editor.player_ids
    game.rounds = editor.rounds
    game.player_hierarchy = hier.encode(editor.hierarchy)
    db.session.add(game)
    editor.mark_saved()
    return diff


# ---- settings validation -------------------------------------------------

def _clean_player_list(entries) -> List[str]:
    seen = []
    for entry in entries or []:
        if not isinstance(entry, str):
            raise InvalidRequest('Player ids must be strings')
        entry = entry.strip()
        if entry and entry not in seen:
            seen.append(entry)
    return seen


def _apply_settings(game: Game, data: dict) -> None:
    if 'game_name' in data:
        name = (data.get('game_name') or '').strip()
        game.game_name = name or None
    if 'win_condition' in data:
        condition = data.get('win_condition') or 'HIGHEST_SCORE'
        if condition not in WIN_CONDITIONS:
            raise InvalidRequest(f'win_condition must be one of {", ".join(WIN_CONDITIONS)}')
        game.win_condition = condition
    if 'max_score' in data and data.get('max_score') is not None:
        try:
            max_score = int(data['max_score'])
        except (TypeError, ValueError):
            raise InvalidRequest('max_score must be an integer')
        low, high = int(_cfg('MIN_MAX_SCORE', 10)), int(_cfg('MAX_MAX_SCORE', 1000))
        if not low <= max_score <= high:
            raise InvalidRequest(f'max_score must be between {low} and {high}')
        game.max_score = max_score
    if 'max_rounds' in data and data.get('max_rounds') is not None:
        try:
            max_rounds = int(data['max_rounds'])
        except (TypeError, ValueError):
            raise InvalidRequest('max_rounds must be an integer')
        if max_rounds < max(1, game.rounds or 1):
            raise InvalidRequest('max_rounds cannot be lower than the current number of rounds')
        game.max_rounds = max_rounds
    if 'custom_rules' in data:
        try:
            parsed = rl.rules_from_payload(data.get('custom_rules'))
        except ValueError as exc:
            raise InvalidRequest(str(exc))
        ok, message = rl.validate_rules(parsed)
        if not ok:
            raise InvalidRequest(message)
        game.custom_rules = rl.rules_to_json(parsed) if parsed else None


def _hierarchy_from_payload(raw) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidRequest('player_hierarchy must be an object of parent -> children')
    tree = {}
    for parent, children in raw.items():
        if not isinstance(children, list):
            raise InvalidRequest('player_hierarchy children must be lists')
        for child in children:
            tree = hier.add_child(tree, str(child), str(parent))
        tree.setdefault(str(parent), [])
    return tree


# ---- create / join -------------------------------------------------------

def _require_min_players(count: int) -> None:
    min_players = int(_cfg('MIN_PLAYERS', 2))
    if count < min_players:
        raise InvalidRequest('Please add at least two players to the game.' if min_players == 2
                             else f'Please add at least {min_players} players to the game.')


def create_game(host: User, data: dict) -> Game:
    player_ids = _clean_player_list(data.get('player_ids'))
    tree = _hierarchy_from_payload(data.get('player_hierarchy'))
    if tree:
        # Teams are the score-owning players
        for parent in tree:
            if parent not in player_ids:
                player_ids.append(parent)
    host_joins = data.get('host_joins_as_player', True)
    if host_joins and not tree and not pl.user_in_game(host.id, player_ids):
        host_name = (data.get('host_name') or '').strip()
        player_ids.insert(0, pl.make_anonymous_id(host.id, host_name) if host_name else host.id)

    _require_min_players(len(player_ids))

    game = Game(
        code_length=int(_cfg('JOIN_CODE_LENGTH', 6)),
        host_user_id=host.id,
        rounds=1,
        game_status='ACTIVE',
        win_condition='HIGHEST_SCORE',
        max_score=int(_cfg('DEFAULT_MAX_SCORE', 100)),
        max_rounds=int(_cfg('DEFAULT_MAX_ROUNDS', 8)),
    )
    game.player_ids = player_ids
    game.player_hierarchy = hier.encode(tree)
    _apply_settings(game, data)
    db.session.add(game)
    _commit('game-create', game)
    return game


def join_game(game: Game, user: User, display_name: Optional[str] = None,
              parent_player: Optional[str] = None):
    """Add ``user`` to ``game``; returns (game, outcome).

    outcome is ``joined``, ``already_joined`` or ``renamed``. Team games
    need ``parent_player``, the team the user joins as a child.
    """
    require_active(game)
    player_ids = game.player_ids
    display_name = (display_name or '').strip()

    tree = hier.decode(game.player_hierarchy)
    if tree:
        return _join_team(game, user, tree, display_name, parent_player)

    if user.id in player_ids:
        return game, 'already_joined'

    existing = pl.find_player_entry(user.id, player_ids)
    if existing is not None:
        _, current_name = pl.split_player_id(existing)
        if not display_name or current_name == display_name:
            return game, 'already_joined'
        editor = ScoreboardEditor.for_game(game)
        editor.rename_player(existing, pl.make_anonymous_id(user.id, display_name))
        _persist(game, editor)
        _commit('game-join-rename', game)
        return game, 'renamed'

    entry = pl.make_anonymous_id(user.id, display_name) if display_name else user.id
    game.player_ids = player_ids + [entry]
    db.session.add(game)
    _commit('game-join', game)
    return game, 'joined'


def _join_team(game: Game, user: User, tree: dict, display_name: str, parent_player: Optional[str]):
    if hier.parent_of(tree, user.id) is not None or user.id in tree:
        return game, 'already_joined'
    parent_player = (parent_player or '').strip()
    if not parent_player:
        raise InvalidRequest('Choose a team to join')
    if parent_player not in tree:
        raise InvalidRequest(f'Unknown team: {parent_player}')
    entry = pl.make_anonymous_id(user.id, display_name) if display_name else user.id
    game.player_hierarchy = hier.encode(hier.add_child(tree, entry, parent_player))
    db.session.add(game)
    _commit('game-join-team', game)
    return game, 'joined'


# ---- host edits ------------------------------------------------------------

def update_game(game: Game, user_id: str, data: dict) -> Game:
    require_host(game, user_id)
    _apply_settings(game, data)
    if 'game_status' in data:
        status = data.get('game_status')
        if status not in GAME_STATUSES:
            raise InvalidRequest(f'game_status must be one of {", ".join(GAME_STATUSES)}')
        game.game_status = status

    if 'player_ids' in data or 'player_hierarchy' in data:
        editor = ScoreboardEditor.for_game(game)
        if 'player_hierarchy' in data:
            editor.hierarchy = _hierarchy_from_payload(data.get('player_hierarchy'))
        if 'player_ids' in data:
            editor.player_ids = _clean_player_list(data.get('player_ids'))
        for parent in editor.hierarchy:
            editor.add_player(parent)
        # Rows of players no longer listed are removed by the diff
        editor.players = hier.score_editable_players(editor.hierarchy, editor.player_ids)
        _require_min_players(len(editor.players))
        _persist(game, editor)

    db.session.add(game)
    _commit('game-update', game)
    return game


def _editable_editor(game: Game, user_id: str) -> ScoreboardEditor:
    require_host(game, user_id)
    require_active(game)
    return ScoreboardEditor.for_game(game)


def add_round(game: Game, user_id: str) -> Game:
    editor = _editable_editor(game, user_id)
    editor.add_round()
    _persist(game, editor)
    _commit('round-add', game)
    return game


def remove_round(game: Game, user_id: str) -> Game:
    editor = _editable_editor(game, user_id)
    editor.remove_round()
    _persist(game, editor)
    _commit('round-remove', game)
    return game


def delete_round(game: Game, user_id: str, round_number: int) -> Game:
    editor = _editable_editor(game, user_id)
    editor.delete_round(round_number)
    _persist(game, editor)
    _commit('round-delete', game)
    return game


def delete_player(game: Game, user_id: str, player_id: str) -> Game:
    editor = _editable_editor(game, user_id)
    editor.delete_player(player_id)
    _persist(game, editor)
    _commit('player-delete', game)
    return game


def rename_player(game: Game, user_id: str, old: str, new: str) -> Game:
    editor = _editable_editor(game, user_id)
    user_id_part, name = pl.split_player_id(old)
    if name is None and db.session.get(User, old) is not None:
        raise PermissionDenied('Only anonymous players can be renamed')
    new = (new or '').strip()
    if name is not None and new and ':' not in new:
        # Keep the owning user of an anonymous entry
        new = pl.make_anonymous_id(user_id_part, new)
    editor.rename_player(old, new)
    _persist(game, editor)
    _commit('player-rename', game)
    return game


# ---- scores ----------------------------------------------------------------

def _parse_cell_value(value, rules):
    if value is None or value == '':
        return EMPTY
    if isinstance(value, bool):
        raise InvalidRequest('Score values must be numbers or rule letters')
    if isinstance(value, int):
        return value
    parsed = rl.parse_score_input(str(value), rules)
    if parsed is None:
        raise InvalidRequest(f'Invalid score: {value}')
    return parsed


def save_scores(game: Game, user_id: str, cells: List[dict]):
    """Apply a batch of ``{player_id, round, value}`` edits and persist the diff."""
    require_active(game)
    if not isinstance(cells, list) or not cells:
        raise InvalidRequest('scores must be a non-empty list')
    editor = ScoreboardEditor.for_game(game)
    rules = rl.json_to_rules(game.custom_rules)
    host = is_host(game, user_id)
    for cell in cells:
        if not isinstance(cell, dict):
            raise InvalidRequest('Each score must be an object')
        player_id = hier.score_owner(editor.hierarchy, str(cell.get('player_id') or ''))
        try:
            round_number = int(cell.get('round'))
        except (TypeError, ValueError):
            raise InvalidRequest('round must be an integer')
        if not host and not hier.can_user_edit_scores(editor.hierarchy, player_id, user_id):
            raise PermissionDenied(f'You cannot edit scores for {player_id}')
        if not 1 <= round_number <= editor.rounds:
            raise InvalidRequest(f'Round {round_number} does not exist')
        editor.update_score(player_id, round_number, _parse_cell_value(cell.get('value'), rules))
    diff = _persist(game, editor)
    _commit('scores-save', game)
    return editor, diff


def scoreboard_state(game: Game, editor: Optional[ScoreboardEditor] = None) -> dict:
    editor = editor or ScoreboardEditor.for_game(game)
    rules = rl.json_to_rules(game.custom_rules)
    tree = editor.hierarchy
    usernames = usernames_for(game.player_ids + hier.all_children(tree))
    grid = editor.grid()
    totals = editor.totals()
    return {
        'game_id': game.id,
        'rounds': editor.rounds,
        'players': [
            {
                'player_id': p,
                'name': hier.player_display_name(tree, p, pl.display_name(p, usernames)),
                'scores': cells,
                'display': [rl.score_to_display(c, rules) for c in cells],
                'total': totals[p],
            }
            for p, cells in grid.items()
        ],
        'is_complete': editor.is_complete(),
        'winner': winner_info(game, editor, usernames),
    }


def winner_info(game: Game, editor: Optional[ScoreboardEditor] = None, usernames=None) -> dict:
    editor = editor or ScoreboardEditor.for_game(game)
    if not editor.is_complete():
        return {'winners': [], 'winning_score': None, 'is_tie': False, 'message': ''}
    usernames = usernames if usernames is not None else usernames_for(game.player_ids)
    winners, winning = editor.winners(game.win_condition)
    names = [pl.display_name(w, usernames) for w in winners]
    return {
        'winners': winners,
        'winning_score': winning,
        'is_tie': len(winners) > 1,
        'message': winner_message(names, winning, game.win_condition),
    }


def complete_game(game: Game, user_id: str) -> dict:
    editor = _editable_editor(game, user_id)
    if not editor.is_complete():
        raise GameStateError('All scores must be entered before completing the game')
    game.game_status = 'COMPLETED'
    game.final_scores = final_scores(editor.grid())
    db.session.add(game)
    _commit('game-complete', game)
    return winner_info(game, editor)


def delete_game(game: Game, user_id: str) -> None:
    require_host(game, user_id)
    game_id = game.id
    Score.query.filter_by(game_id=game_id).delete()
    db.session.delete(game)
    commit_session('game-delete', game=game_id)
    current_app.logger.info(f"[game-delete] game={game_id}")
