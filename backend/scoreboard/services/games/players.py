"""Player identifiers stored in ``Game.player_ids``.

An entry is one of:

- a registered user id (``"3f2c..."``) or guest id (``"guest_..."``),
- an anonymous participant ``"userId:displayName"``,
- a plain display or team name added by the host.

Every place that needs to interpret an entry goes through this module.
"""
from typing import Dict, Iterable, List, Optional, Tuple

SEPARATOR = ':'
GUEST_PREFIX = 'guest_'


def split_player_id(player_id: str) -> Tuple[str, Optional[str]]:
    if SEPARATOR in player_id:
        user_id, name = player_id.split(SEPARATOR, 1)
        return user_id, name
    return player_id, None


def user_id_of(player_id: str) -> str:
    return split_player_id(player_id)[0]


def is_anonymous(player_id: str) -> bool:
    return SEPARATOR in player_id


def is_guest_id(player_id: str) -> bool:
    return player_id.startswith(GUEST_PREFIX)


def make_anonymous_id(user_id: str, display_name: str) -> str:
    return f'{user_id}{SEPARATOR}{display_name}'


def belongs_to_user(player_id: str, user_id: str) -> bool:
    return player_id == user_id or player_id.startswith(user_id + SEPARATOR)


def find_player_entry(user_id: str, player_ids: Iterable[str]) -> Optional[str]:
    for pid in player_ids:
        if belongs_to_user(pid, user_id):
            return pid
    return None


def user_in_game(user_id: str, player_ids: Iterable[str]) -> bool:
    return find_player_entry(user_id, player_ids) is not None


def display_name(player_id: str, usernames: Optional[Dict[str, str]] = None) -> str:
    usernames = usernames or {}
    user_id, name = split_player_id(player_id)
    if user_id in usernames:
        return usernames[user_id]
    if name:
        return name
    return player_id if len(player_id) <= 10 else player_id[:8]


def ids_needing_lookup(player_ids: Iterable[str]) -> List[str]:
    """User ids referenced by the given entries, for username lookups."""
    return sorted({user_id_of(pid) for pid in player_ids})
