"""Team games: parent players (teams) with child participants.

The mapping is stored on ``Game.player_hierarchy`` as a JSON object
``{parent: [child, ...]}``. Only parents own score rows.
"""
import json
from typing import Dict, List, Optional

from .players import belongs_to_user, user_id_of

Hierarchy = Dict[str, List[str]]


def decode(raw: Optional[str]) -> Hierarchy:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(k): [str(c) for c in (v or [])] for k, v in data.items()}


def encode(hierarchy: Hierarchy) -> Optional[str]:
    if not hierarchy:
        return None
    return json.dumps(hierarchy)


def has_hierarchy(hierarchy: Hierarchy) -> bool:
    return bool(hierarchy)


def is_parent(hierarchy: Hierarchy, player_id: str) -> bool:
    return player_id in hierarchy


def children_of(hierarchy: Hierarchy, parent: str) -> List[str]:
    return list(hierarchy.get(parent, []))


def add_child(hierarchy: Hierarchy, child: str, parent: str) -> Hierarchy:
    updated = {k: list(v) for k, v in hierarchy.items()}
    children = updated.setdefault(parent, [])
    if child not in children:
        children.append(child)
    return updated


def remove_child(hierarchy: Hierarchy, child: str, parent: str) -> Hierarchy:
    updated = {k: list(v) for k, v in hierarchy.items()}
    if parent in updated:
        updated[parent] = [c for c in updated[parent] if c != child]
    return updated


def all_children(hierarchy: Hierarchy) -> List[str]:
    return [c for children in hierarchy.values() for c in children]


def parent_of(hierarchy: Hierarchy, child: str) -> Optional[str]:
    """Parent of a child, matching on the user id part of ``userId:name``."""
    wanted = user_id_of(child)
    for parent, children in hierarchy.items():
        for c in children:
            if user_id_of(c) == wanted:
                return parent
    return None


def is_child(hierarchy: Hierarchy, player_id: str) -> bool:
    return parent_of(hierarchy, player_id) is not None


def score_editable_players(hierarchy: Hierarchy, player_ids: List[str]) -> List[str]:
    if hierarchy:
        # Keep the game's ordering for parents that are also listed players
        ordered = [p for p in player_ids if p in hierarchy]
        return ordered + [p for p in hierarchy if p not in ordered]
    return list(player_ids)


def can_user_edit_scores(hierarchy: Hierarchy, player_id: str, user_id: str) -> bool:
    if hierarchy:
        children = [user_id_of(c) for c in children_of(hierarchy, player_id)]
        return belongs_to_user(player_id, user_id) or user_id in children
    return belongs_to_user(player_id, user_id)


def score_owner(hierarchy: Hierarchy, player_id: str) -> str:
    """Player id that owns score rows for ``player_id`` (its parent for children)."""
    return parent_of(hierarchy, player_id) or player_id


def participating_users(hierarchy: Hierarchy, player_ids: List[str]) -> List[str]:
    if hierarchy:
        return list(player_ids) + all_children(hierarchy)
    return list(player_ids)


def player_display_name(hierarchy: Hierarchy, player_id: str, base_name: Optional[str] = None) -> str:
    name = base_name or player_id
    count = len(hierarchy.get(player_id, []))
    if count:
        return f'{name} ({count} players)'
    return name


def rename_parent(hierarchy: Hierarchy, old: str, new: str) -> Hierarchy:
    if old not in hierarchy:
        return hierarchy
    return {(new if k == old else k): list(v) for k, v in hierarchy.items()}
