"""Stored policy rules and the filters used to select them."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any

VALUE_FIELDS = ("v0", "v1", "v2", "v3", "v4", "v5")
_FILTER_FIELDS = ("ptype",) + VALUE_FIELDS


@dataclass
class CasbinRule:
    """One policy line as stored in the collection: a type and up to six values."""

    ptype: str = ""
    v0: str = ""
    v1: str = ""
    v2: str = ""
    v3: str = ""
    v4: str = ""
    v5: str = ""
    key: str = ""

    @property
    def values(self) -> list[str]:
        return [getattr(self, name) for name in VALUE_FIELDS]

    def to_document(self) -> dict[str, str]:
        """The document written to the database; the key is left out when empty."""
        document: dict[str, str] = {}
        if self.key:
            document["_key"] = self.key
        document["ptype"] = self.ptype
        for name in VALUE_FIELDS:
            document[name] = getattr(self, name)
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> CasbinRule:
        """Read a stored document; missing or null fields become empty strings."""
        loaded: dict[str, str] = {}
        for name, source in (("key", "_key"), ("ptype", "ptype")) + tuple(
            (name, name) for name in VALUE_FIELDS
        ):
            value = document.get(source)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise TypeError(f"field {source!r} must be a string, got {value!r}")
            loaded[name] = value
        return cls(**loaded)

    def to_policy(self) -> list[str]:
        """The type followed by the values, with trailing empty fields dropped."""
        line = [self.ptype, *self.values]
        while line and not line[-1]:
            line.pop()
        return line


def rule_from_policy(ptype: str, rule: Sequence[str]) -> CasbinRule:
    """Build a stored rule from a policy type and its values (at most six kept)."""
    values = dict(zip(VALUE_FIELDS, rule))
    return CasbinRule(ptype=ptype, **values)


@dataclass
class Filter:
    """Selects rules whose fields are among the listed values; empty fields match all."""

    ptype: Sequence[str] = ()
    v0: Sequence[str] = ()
    v1: Sequence[str] = ()
    v2: Sequence[str] = ()
    v3: Sequence[str] = ()
    v4: Sequence[str] = ()
    v5: Sequence[str] = ()

    def conditions(self) -> tuple[list[str], dict[str, list[str]]]:
        """Query conditions for the non-empty fields and their bind variables."""
        clauses: list[str] = []
        bind_vars: dict[str, list[str]] = {}
        for name in _FILTER_FIELDS:
            wanted = list(getattr(self, name))
            if wanted:
                clauses.append(f"doc.{name} IN @{name}")
                bind_vars[name] = wanted
        return clauses, bind_vars


@dataclass
class BatchFilter:
    """Several filters applied one after another."""

    filters: list[Filter] = field(default_factory=list)

    def __iter__(self) -> Iterator[Filter]:
        return iter(self.filters)

    def __len__(self) -> int:
        return len(self.filters)


__all__ = [
    "BatchFilter",
    "CasbinRule",
    "Filter",
    "VALUE_FIELDS",
    "rule_from_policy",
]

# Keep the field order check close to the definition it depends on.
assert tuple(f.name for f in fields(CasbinRule))[1:7] == VALUE_FIELDS