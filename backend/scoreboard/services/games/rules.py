"""Custom scoring letters (e.g. ``X`` = 50) attached to a game.

Stored on ``Game.custom_rules`` as ``[{"letter": "X", "value": 50}, ...]``.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .scoring import EMPTY

logger = logging.getLogger(__name__)

_LETTER_RE = re.compile(r'^[A-Z]$')


@dataclass(frozen=True)
class CustomRule:
    letter: str
    value: int

    def __post_init__(self):
        object.__setattr__(self, 'letter', str(self.letter).upper())

    def to_dict(self):
        return {'letter': self.letter, 'value': self.value}


def rules_to_json(rules: List[CustomRule]) -> str:
    return json.dumps([r.to_dict() for r in rules])


def json_to_rules(raw: Optional[str]) -> List[CustomRule]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
        return [CustomRule(letter=item['letter'], value=int(item['value'])) for item in data]
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning(f"[rules-decode] could not decode custom rules: {exc}")
        return []


def rules_from_payload(items) -> List[CustomRule]:
    """Build rules from request JSON; raises ValueError on malformed items."""
    rules = []
    for item in items or []:
        try:
            rules.append(CustomRule(letter=item['letter'], value=int(item['value'])))
        except (KeyError, TypeError, ValueError):
            raise ValueError('Each custom rule needs a letter and an integer value')
    return rules


def validate_rules(rules: List[CustomRule]) -> Tuple[bool, Optional[str]]:
    letters = [r.letter for r in rules]
    if len(letters) != len(set(letters)):
        return False, 'Duplicate letters found in custom rules'
    for rule in rules:
        if not _LETTER_RE.match(rule.letter):
            return False, 'Custom rules must use single uppercase letters (A-Z)'
    values = [r.value for r in rules]
    if len(values) != len(set(values)):
        return False, 'Duplicate values found in custom rules'
    return True, None


def parse_score_input(text: str, rules: List[CustomRule]) -> Optional[int]:
    cleaned = (text or '').strip().upper()
    if not cleaned:
        return None
    for rule in rules:
        if rule.letter == cleaned:
            return rule.value
    try:
        return int(cleaned)
    except ValueError:
        return None


def score_to_display(score: int, rules: List[CustomRule]) -> Optional[str]:
    if score == EMPTY:
        return None
    for rule in rules:
        if rule.value == score:
            return rule.letter
    return str(score)
