"""In-memory policy model: definitions and the policy rules held under them."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

_TOKENISED_SECTIONS = ("r", "p")
_POLICY_SECTIONS = ("p", "g")


@dataclass
class _Assertion:
    key: str
    value: str
    tokens: list[str]
    policy: list[list[str]] = field(default_factory=list)
    members: set[tuple[str, ...]] = field(default_factory=set)


class Model:
    """Sections of definitions (r, p, g, e, m) and the rules loaded for them."""

    def __init__(self) -> None:
        self._sections: dict[str, dict[str, _Assertion]] = {}

    def add_def(self, sec: str, key: str, value: str) -> bool:
        """Define ``key`` in section ``sec``; an empty value defines nothing."""
        if not value:
            return False
        parts = [part.strip() for part in value.split(",")]
        if sec in _TOKENISED_SECTIONS:
            tokens = [f"{key}_{part}" for part in parts]
        elif sec == "g":
            tokens = parts
        else:
            tokens = []
        self._sections.setdefault(sec, {})[key] = _Assertion(key, value, tokens)
        return True

    def _assertion(self, sec: str, ptype: str) -> _Assertion:
        try:
            return self._sections[sec][ptype]
        except KeyError:
            raise KeyError(f"missing policy definition: {sec}.{ptype}") from None

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Add a rule; returns False if it was already present."""
        assertion = self._assertion(sec, ptype)
        key = tuple(rule)
        if key in assertion.members:
            return False
        assertion.members.add(key)
        assertion.policy.append(list(rule))
        return True

    def get_policy(self, sec: str, ptype: str) -> list[list[str]]:
        return [list(rule) for rule in self._assertion(sec, ptype).policy]

    def has_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Whether the rule is present; raises ValueError if its size does not fit."""
        assertion = self._assertion(sec, ptype)
        expected = len(assertion.tokens)
        if sec == "p" and len(rule) != expected:
            raise ValueError(
                f"invalid policy rule size: expected {expected}, got {len(rule)}, rule: {list(rule)}"
            )
        if sec == "g" and len(rule) < expected:
            raise ValueError(
                f"grouping policy elements do not meet role definition: {list(rule)}"
            )
        return tuple(rule) in assertion.members

    def policies(self, sec: str) -> Iterator[tuple[str, list[list[str]]]]:
        """Yield (ptype, rules) for every definition in the section."""
        for ptype, assertion in self._sections.get(sec, {}).items():
            yield ptype, [list(rule) for rule in assertion.policy]

    def clear_policy(self) -> None:
        """Drop every loaded rule, keeping the definitions."""
        for sec in _POLICY_SECTIONS:
            for assertion in self._sections.get(sec, {}).values():
                assertion.policy.clear()
                assertion.members.clear()


def load_policy_array(tokens: Sequence[str], model: Model) -> None:
    """Load one line (ptype followed by values) into the model, skipping duplicates."""
    if not tokens or not tokens[0]:
        raise ValueError("policy line has no policy type")
    key = tokens[0]
    sec = key[:1]
    rule = list(tokens[1:])
    if model.has_policy(sec, key, rule):
        return
    model.add_policy(sec, key, rule)