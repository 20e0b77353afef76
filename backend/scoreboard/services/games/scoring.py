from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Cell value for a round that has not been entered yet
EMPTY = -1

HIGHEST_SCORE = 'HIGHEST_SCORE'
LOWEST_SCORE = 'LOWEST_SCORE'

Grid = Dict[str, List[int]]


def player_total(scores: Sequence[int]) -> int:
    return sum(s for s in scores if s != EMPTY)


def build_grid(players: Iterable[str], rounds: int, rows: Iterable) -> Grid:
    """Lay score rows out as ``{player: [round 1, round 2, ...]}``.

    Rows for unknown players or rounds outside ``1..rounds`` are ignored.
    """
    grid = {p: [EMPTY] * rounds for p in players}
    for row in rows:
        cells = grid.get(row.player_id)
        if cells is None or not 1 <= row.round_number <= rounds:
            continue
        cells[row.round_number - 1] = row.score
    return grid


def totals(grid: Grid) -> Dict[str, int]:
    return {p: player_total(cells) for p, cells in grid.items()}


def is_game_complete(grid: Grid, rounds: int) -> bool:
    if not grid or rounds <= 0:
        return False
    for cells in grid.values():
        if len(cells) < rounds:
            return False
        if any(c == EMPTY for c in cells[:rounds]):
            return False
    return True


def determine_winners(player_totals: Dict[str, int], win_condition: Optional[str]) -> Tuple[List[str], Optional[int]]:
    """Players sharing the winning total, in their original order."""
    if not player_totals:
        return [], None
    if win_condition == LOWEST_SCORE:
        winning = min(player_totals.values())
    else:
        winning = max(player_totals.values())
    return [p for p, t in player_totals.items() if t == winning], winning


def winner_message(winner_names: List[str], winning_score: Optional[int], win_condition: Optional[str]) -> str:
    if not winner_names:
        return ''
    condition = 'lowest' if win_condition == LOWEST_SCORE else 'highest'
    if len(winner_names) == 1:
        return f'Winner: {winner_names[0]} ({condition}: {winning_score} points)'
    return f"Tie: {', '.join(winner_names)} ({condition}: {winning_score} points each)"


def final_scores(grid: Grid) -> List[dict]:
    return [{'player_id': p, 'total': player_total(cells)} for p, cells in grid.items()]
