"""Username rules, availability checks and suggestions."""
import re
from dataclasses import dataclass, field, asdict
from typing import List

from scoreboard import db
from scoreboard.models import User

MIN_LENGTH = 3
MAX_LENGTH = 20
MAX_SUGGESTIONS = 5
_ALLOWED_RE = re.compile(r'^[a-zA-Z0-9_]+$')

RESERVED_WORDS = (
    'admin', 'root', 'system', 'moderator', 'support',
    'test', 'null', 'undefined', 'anonymous', 'guest',
)


@dataclass
class UsernameCheck:
    is_valid: bool
    is_available: bool
    message: str
    message_type: str  # success, error, info
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, message='Username is available!'):
        return cls(True, True, message, 'success')

    @classmethod
    def error(cls, message, suggestions=None):
        return cls(False, False, message, 'error', list(suggestions or []))

    @classmethod
    def info(cls, message):
        return cls(False, False, message, 'info')

    def to_dict(self):
        return asdict(self)


def validate_format(username: str) -> UsernameCheck:
    if not username:
        return UsernameCheck.info('Enter a username')
    if len(username) < MIN_LENGTH:
        return UsernameCheck.error(f'Username must be at least {MIN_LENGTH} characters')
    if len(username) > MAX_LENGTH:
        return UsernameCheck.error(f'Username must be no more than {MAX_LENGTH} characters')
    if not _ALLOWED_RE.match(username):
        return UsernameCheck.error('Username can only contain letters, numbers, and underscores')
    if not username[0].isalpha():
        return UsernameCheck.error('Username must start with a letter')
    if '__' in username:
        return UsernameCheck.error('Username cannot contain consecutive underscores')
    return UsernameCheck(True, False, 'Username format is valid', 'info')


def is_reserved(username: str) -> bool:
    return username.lower() in RESERVED_WORDS


def is_available(username: str, exclude_user_id=None) -> bool:
    query = User.query.filter(db.func.lower(User.username) == username.lower())
    if exclude_user_id:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is None


def _candidates(username: str):
    for n in range(1, 4):
        yield f'{username}{n}'
    for suffix in ('_sb', '_gamer', '_pro', '_player', '_x'):
        yield f'{username}{suffix}'
    for prefix in ('the_', 'i_am_', 'mr_', 'ms_'):
        yield f'{prefix}{username}'


def generate_suggestions(username: str) -> List[str]:
    suggestions = []
    for candidate in _candidates(username):
        if len(candidate) > MAX_LENGTH:
            continue
        if not validate_format(candidate).is_valid or is_reserved(candidate):
            continue
        if candidate in suggestions or not is_available(candidate):
            continue
        suggestions.append(candidate)
        if len(suggestions) >= MAX_SUGGESTIONS:
            break
    return suggestions


def validate_username(username: str, exclude_user_id=None) -> UsernameCheck:
    """Format, reserved-word and case-insensitive uniqueness checks."""
    result = validate_format(username)
    if not result.is_valid:
        return result
    if is_reserved(username):
        return UsernameCheck.error('This username is reserved. Please choose another.')
    if not is_available(username, exclude_user_id):
        return UsernameCheck.error('This username is already taken', generate_suggestions(username))
    return UsernameCheck.success()
