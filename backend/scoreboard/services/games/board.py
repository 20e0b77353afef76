"""In-memory scoreboard editing buffer.

``ScoreboardEditor`` holds the last saved grid for a game, the cells the host
has changed since then, and which cells were explicitly entered (so an
entered ``0`` is distinguishable from an empty cell). Round and player
changes are applied to the buffer first; ``diff()`` then reports exactly
which score rows must be written or deleted to make storage match.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from scoreboard.errors import GameStateError, InvalidRequest
from . import hierarchy as hier
from .scoring import EMPTY, Grid, build_grid, determine_winners, is_game_complete, player_total


def cell_key(player_id: str, round_number: int) -> str:
    return f'{player_id}-{round_number}'


@dataclass
class ScoreDiff:
    upserts: List[Tuple[str, int, int]] = field(default_factory=list)
    deletes: List[Tuple[str, int]] = field(default_factory=list)

    def __bool__(self):
        return bool(self.upserts or self.deletes)


class ScoreboardEditor:

    def __init__(self, player_ids: Iterable[str], rounds: int, rows: Iterable = (),
                 max_rounds: Optional[int] = None, hierarchy: Optional[dict] = None):
        rows = list(rows)
        self.player_ids = list(player_ids)
        self.hierarchy = {k: list(v) for k, v in (hierarchy or {}).items()}
        self.rounds = max(1, int(rounds or 1))
        self.max_rounds = max_rounds
        self.players = hier.score_editable_players(self.hierarchy, self.player_ids)
        # What storage currently holds, keyed by (player, round)
        self.stored: Dict[Tuple[str, int], int] = {(r.player_id, r.round_number): r.score for r in rows}
        self.last_saved: Grid = build_grid(self.players, self.rounds, rows)
        self.unsaved: Grid = {}
        self.entered: Set[str] = set()
        self.has_unsaved_changes = False

    @classmethod
    def for_game(cls, game, rows=None):
        if rows is None:
            rows = game.scores.all()
        return cls(
            game.player_ids,
            game.rounds,
            rows,
            max_rounds=game.max_rounds,
            hierarchy=hier.decode(game.player_hierarchy),
        )

    # -- reading ---------------------------------------------------------

    def _row(self, player_id: str) -> List[int]:
        cells = self.unsaved.get(player_id)
        if cells is None:
            cells = self.last_saved.get(player_id, [])
        cells = list(cells[:self.rounds])
        cells.extend([EMPTY] * (self.rounds - len(cells)))
        return cells

    def cell(self, player_id: str, round_number: int) -> int:
        if not 1 <= round_number <= self.rounds:
            return EMPTY
        return self._row(player_id)[round_number - 1]

    def grid(self) -> Grid:
        return {p: self._row(p) for p in self.players}

    def has_score_been_entered(self, player_id: str, round_number: int) -> bool:
        if not 1 <= round_number <= self.rounds:
            return False
        if cell_key(player_id, round_number) in self.entered:
            return True
        saved = self.last_saved.get(player_id, [])
        if round_number <= len(saved):
            return saved[round_number - 1] != EMPTY
        return False

    def totals(self) -> Dict[str, int]:
        return {p: player_total(cells) for p, cells in self.grid().items()}

    def winners(self, win_condition: Optional[str]):
        return determine_winners(self.totals(), win_condition)

    def is_complete(self) -> bool:
        return is_game_complete(self.grid(), self.rounds)

    def next_empty_cell(self, player_id: str, round_number: int) -> Optional[str]:
        """Next player (wrapping) whose cell in ``round_number`` is still empty."""
        if player_id not in self.players:
            return None
        start = self.players.index(player_id)
        total = len(self.players)
        for offset in range(1, total + 1):
            candidate = self.players[(start + offset) % total]
            if self.cell(candidate, round_number) == EMPTY:
                return candidate
        return None

    # -- score edits -----------------------------------------------------

    def _require_player(self, player_id: str) -> None:
        if player_id not in self.players:
            raise InvalidRequest(f'Unknown player: {player_id}')

    def update_score(self, player_id: str, round_number: int, value: int) -> bool:
        self._require_player(player_id)
        if not 1 <= round_number <= self.rounds:
            return False
        cells = self._row(player_id)
        cells[round_number - 1] = int(value)
        self.unsaved[player_id] = cells
        if value == EMPTY:
            self.entered.discard(cell_key(player_id, round_number))
        else:
            self.entered.add(cell_key(player_id, round_number))
        self.has_unsaved_changes = True
        return True

    def clear_score(self, player_id: str, round_number: int) -> bool:
        return self.update_score(player_id, round_number, EMPTY)

    def undo(self) -> None:
        self.unsaved = {}
        self.entered = set()
        self.has_unsaved_changes = False

    # -- rounds ----------------------------------------------------------

    def can_add_round(self) -> bool:
        return self.max_rounds is None or self.rounds < self.max_rounds

    def _resize_all(self) -> None:
        for grid in (self.last_saved, self.unsaved):
            for p, cells in grid.items():
                cells = list(cells[:self.rounds])
                cells.extend([EMPTY] * (self.rounds - len(cells)))
                grid[p] = cells

    def add_round(self) -> int:
        if not self.can_add_round():
            raise GameStateError(f'Max rounds ({self.max_rounds}) reached')
        self.rounds += 1
        self._resize_all()
        for p in self.players:
            self.entered.discard(cell_key(p, self.rounds))
        return self.rounds

    def remove_round(self) -> int:
        if self.rounds <= 1:
            raise GameStateError('A game needs at least one round')
        removed = self.rounds
        self.rounds -= 1
        self._resize_all()
        for p in self.players:
            self.entered.discard(cell_key(p, removed))
        return self.rounds

    def delete_round(self, round_number: int) -> int:
        if self.rounds <= 1:
            raise GameStateError('A game needs at least one round')
        if not 1 <= round_number <= self.rounds:
            raise InvalidRequest(f'Round {round_number} does not exist')
        for grid in (self.last_saved, self.unsaved):
            for p, cells in grid.items():
                if round_number <= len(cells):
                    cells = cells[:round_number - 1] + cells[round_number:]
                grid[p] = cells
        shifted = set()
        for key in self.entered:
            p, _, r = key.rpartition('-')
            r = int(r)
            if r == round_number:
                continue
            shifted.add(cell_key(p, r - 1 if r > round_number else r))
        self.entered = shifted
        self.rounds -= 1
        self._resize_all()
        # Later rounds moved down, so their stored rows no longer line up
        self.has_unsaved_changes = True
        return self.rounds

    # -- players ---------------------------------------------------------

    def add_player(self, player_id: str) -> None:
        player_id = (player_id or '').strip()
        if not player_id:
            raise InvalidRequest('Player name cannot be empty')
        if player_id in self.player_ids:
            return
        self.player_ids.append(player_id)
        self.players = hier.score_editable_players(self.hierarchy, self.player_ids)

    def delete_player(self, player_id: str) -> None:
        if player_id not in self.player_ids and player_id not in self.hierarchy:
            raise InvalidRequest(f'Unknown player: {player_id}')
        if len(self.players) <= 1:
            raise GameStateError('A game needs at least one player')
        self.player_ids = [p for p in self.player_ids if p != player_id]
        self.hierarchy.pop(player_id, None)
        self.players = hier.score_editable_players(self.hierarchy, self.player_ids)
        self.last_saved.pop(player_id, None)
        self.unsaved.pop(player_id, None)
        self.entered = {k for k in self.entered if not k.startswith(f'{player_id}-')}

    def rename_player(self, old: str, new: str) -> None:
        new = (new or '').strip()
        if not new:
            raise InvalidRequest('Player name cannot be empty')
        if old not in self.player_ids:
            raise InvalidRequest(f'Unknown player: {old}')
        if new != old and new in self.player_ids:
            raise InvalidRequest(f'Player {new} is already in this game')
        self.player_ids = [new if p == old else p for p in self.player_ids]
        self.hierarchy = hier.rename_parent(self.hierarchy, old, new)
        self.players = hier.score_editable_players(self.hierarchy, self.player_ids)
        for grid in (self.last_saved, self.unsaved):
            if old in grid:
                grid[new] = grid.pop(old)
        renamed = set()
        for key in self.entered:
            p, _, r = key.rpartition('-')
            renamed.add(cell_key(new, int(r)) if p == old else key)
        self.entered = renamed

    # -- persistence -----------------------------------------------------

    def diff(self) -> ScoreDiff:
        """Rows to write and delete so storage matches the current grid."""
        result = ScoreDiff()
        grid = self.grid()
        for p, cells in grid.items():
            for idx, value in enumerate(cells):
                round_number = idx + 1
                existing = self.stored.get((p, round_number))
                if value == EMPTY:
                    if existing is not None:
                        result.deletes.append((p, round_number))
                elif existing is None or existing != value:
                    result.upserts.append((p, round_number, value))
        # Rows for removed players or rounds beyond the grid
        for (p, round_number) in sorted(self.stored):
            if p not in grid or round_number > self.rounds:
                result.deletes.append((p, round_number))
        return result

    def mark_saved(self) -> None:
        grid = self.grid()
        self.last_saved = grid
        self.stored = {
            (p, idx + 1): value
            for p, cells in grid.items()
            for idx, value in enumerate(cells)
            if value != EMPTY
        }
        self.unsaved = {}
        self.has_unsaved_changes = False
