"""Policy storage adapter that keeps rules in an ArangoDB collection."""

from __future__ import annotations

import copy as _copy
import threading
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, Protocol

from .client import ArangoClient, ArangoError, Collection, Database, StreamTransaction
from .model import Model, load_policy_array
from .options import (
    DEFAULT_COLLECTION_NAME,
    DEFAULT_DATABASE_NAME,
    Option,
    new_config,
)
from .rules import VALUE_FIELDS, BatchFilter, CasbinRule, Filter, rule_from_policy
from .transaction import ArangoTransactionContext

SAVE_BATCH_SIZE = 1000


class Enforcer(Protocol):
    """The part of an enforcer that transactions need."""

    def set_adapter(self, adapter: Any) -> Any: ...

    def load_policy(self) -> Any: ...


def _load_policy_line(rule: CasbinRule, model: Model) -> None:
    if not rule.ptype:
        return
    load_policy_array(rule.to_policy(), model)


def _match_clause(rule: CasbinRule, bind_vars: dict[str, Any]) -> str:
    """Equality conditions for the non-empty values of a rule."""
    clause = ""
    for name, value in zip(VALUE_FIELDS, rule.values):
        if value:
            clause += f" && doc.{name} == @{name}"
            bind_vars[name] = value
    return clause


class Adapter:
    """Loads and stores policy rules in one collection of one database."""

    def __init__(
        self,
        client: ArangoClient,
        database_name: str = DEFAULT_DATABASE_NAME,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        transaction: StreamTransaction | None = None,
    ) -> None:
        self.client = client
        self.database_name = database_name
        self.collection_name = collection_name
        self._transaction = transaction
        self._filtered = False
        self._lock = threading.Lock()
        self.database: Database = self._ensure_database()
        self.collection: Collection = self._ensure_collection()

    def _ensure_database(self) -> Database:
        try:
            return self.client.database(self.database_name)
        except ArangoError:
            return self.client.create_database(self.database_name)

    def _ensure_collection(self) -> Collection:
        try:
            return self.database.collection(self.collection_name)
        except ArangoError:
            return self.database.create_collection(self.collection_name)

    @property
    def active_transaction(self) -> StreamTransaction | None:
        """The streaming transaction this adapter writes through, if any."""
        return self._transaction

    @property
    def _trx_id(self) -> str | None:
        return self._transaction.id if self._transaction is not None else None

    def _bind(self, **extra: Any) -> dict[str, Any]:
        return {"@collection": self.collection_name, **extra}

    def _documents(self, query: str, bind_vars: Mapping[str, Any]) -> Iterator[Any]:
        with self.database.query(query, bind_vars, self._trx_id) as cursor:
            yield from cursor

    def _execute(self, query: str, bind_vars: Mapping[str, Any]) -> None:
        self.database.query(query, bind_vars, self._trx_id).close()

    def load_policy(self, model: Model) -> None:
        """Load every stored rule into the model."""
        for document in self._documents("FOR doc IN @@collection RETURN doc", self._bind()):
            _load_policy_line(CasbinRule.from_document(document), model)

    def load_filtered_policy(self, model: Model, filter: Any) -> None:
        """Load the rules matching a Filter, a BatchFilter or a list of Filters.

        Anything else is ignored; an empty set of filters loads everything.
        """
        if isinstance(filter, Filter):
            filters = [filter]
        elif isinstance(filter, BatchFilter):
            filters = list(filter)
        elif isinstance(filter, (list, tuple)) and all(isinstance(f, Filter) for f in filter):
            filters = list(filter)
        else:
            return

        if not filters:
            self.load_policy(model)
            return

        for selection in filters:
            clauses, values = selection.conditions()
            query = "FOR doc IN @@collection"
            if clauses:
                query += " FILTER " + " AND ".join(clauses)
            query += " RETURN doc"
            for document in self._documents(query, self._bind(**values)):
                _load_policy_line(CasbinRule.from_document(document), model)

        self._filtered = True

    def is_filtered(self) -> bool:
        return self._filtered

    def save_policy(self, model: Model) -> None:
        """Replace the whole collection with the rules held by the model."""
        self.collection.truncate(self._trx_id)
        batch: list[dict[str, str]] = []
        for sec in ("p", "g"):
            for ptype, rules in model.policies(sec):
                for rule in rules:
                    batch.append(rule_from_policy(ptype, rule).to_document())
                    if len(batch) >= SAVE_BATCH_SIZE:
                        self.collection.create_documents(batch, self._trx_id)
                        batch = []
        if batch:
            self.collection.create_documents(batch, self._trx_id)

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        self.collection.create_document(rule_from_policy(ptype, rule).to_document(), self._trx_id)

    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Remove stored rules matching the type and every non-empty value."""
        line = rule_from_policy(ptype, rule)
        bind_vars = self._bind(ptype=line.ptype)
        query = "FOR doc IN @@collection FILTER doc.ptype == @ptype"
        query += _match_clause(line, bind_vars)
        query += " REMOVE doc IN @@collection"
        self._execute(query, bind_vars)

    def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        documents = [rule_from_policy(ptype, rule).to_document() for rule in rules]
        self.collection.create_documents(documents, self._trx_id)

    def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        for rule in rules:
            self.remove_policy(sec, ptype, rule)

    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *args: str
    ) -> None:
        """Remove rules whose values from ``field_index`` on equal the given ones."""
        bind_vars = self._bind(ptype=ptype)
        query = "FOR doc IN @@collection FILTER doc.ptype == @ptype"
        for position, name in enumerate(VALUE_FIELDS):
            if field_index <= position < field_index + len(args):
                query += f" && doc.{name} == @{name}"
                bind_vars[name] = args[position - field_index]
        query += " REMOVE doc IN @@collection"
        self._execute(query, bind_vars)

    def update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> None:
        """Rewrite the stored rules matching ``old_rule`` with ``new_rule``."""
        old_line = rule_from_policy(ptype, old_rule)
        new_line = rule_from_policy(ptype, new_rule)
        bind_vars = self._bind(ptype=old_line.ptype)
        query = "FOR doc IN @@collection FILTER doc.ptype == @ptype"
        query += _match_clause(old_line, bind_vars)

        assignments = ", ".join(f"{name}: @new_{name}" for name in ("ptype",) + VALUE_FIELDS)
        query += f" UPDATE doc WITH {{ {assignments} }} IN @@collection"
        bind_vars["new_ptype"] = new_line.ptype
        for name, value in zip(VALUE_FIELDS, new_line.values):
            bind_vars[f"new_{name}"] = value
        self._execute(query, bind_vars)

    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> None:
        if len(new_rules) < len(old_rules):
            raise ValueError(
                f"{len(old_rules)} rules to update but only {len(new_rules)} replacements"
            )
        for old_rule, new_rule in zip(old_rules, new_rules):
            self.update_policy(sec, ptype, old_rule, new_rule)

    def update_filtered_policies(
        self,
        sec: str,
        ptype: str,
        new_policies: Sequence[Sequence[str]],
        field_index: int,
        *args: str,
    ) -> list[list[str]]:
        """Add the new policies; no old ones are removed, so none are returned."""
        for policy in new_policies:
            self.add_policy(sec, ptype, policy)
        return []

    def close(self) -> None:
        """Nothing to release: connections belong to the client."""

    def copy(self) -> Adapter:
        """A shallow copy without a transaction, sharing client and lock."""
        clone = _copy.copy(self)
        clone._transaction = None
        return clone

    def with_transaction(self, transaction: StreamTransaction) -> Adapter:
        """A copy whose reads and writes go through the given transaction."""
        clone = self.copy()
        clone._transaction = transaction
        return clone

    def transaction(self, enforcer: Enforcer, fn: Callable[[Enforcer], Any]) -> None:
        """Run ``fn`` with the enforcer bound to a transaction.

        The transaction commits if ``fn`` returns; if it raises, the transaction
        is aborted, the enforcer reloads its policy and the exception propagates.
        """
        with self._lock:
            original = self.copy()
            stream = self.database.begin_transaction([self.collection_name])
            enforcer.set_adapter(self.with_transaction(stream))
            try:
                fn(enforcer)
            except Exception:
                enforcer.set_adapter(original)
                stream.abort()
                enforcer.load_policy()
                raise
            enforcer.set_adapter(original)
            stream.commit()

    def begin_transaction(self) -> ArangoTransactionContext:
        """Start a transaction to be committed or rolled back by the caller."""
        stream = self.database.begin_transaction([self.collection_name])
        return ArangoTransactionContext(stream, self, self.collection_name)

    def preview(self, rules: list[CasbinRule], model: Model) -> None:
        """Keep in ``rules`` only those present in the model, in their order."""
        kept = []
        for rule in rules:
            line = rule.to_policy()
            if not line:
                continue
            key = line[0]
            if model.has_policy(key[:1], key, line[1:]):
                kept.append(rule)
        rules[:] = kept


def new_adapter(*args: Option) -> Adapter:
    """Connect with the given options, creating database and collection if needed."""
    config = new_config(*args)
    client = config.create_client()
    return Adapter(client, config.database_name, config.collection_name)


def new_filtered_adapter(*args: Option) -> Adapter:
    """Like new_adapter, but the adapter reports itself as filtered from the start."""
    adapter = new_adapter(*args)
    adapter._filtered = True
    return adapter


def new_adapter_from_client(
    client: ArangoClient, database_name: str, collection_name: str
) -> Adapter:
    """Use an existing client, creating database and collection if needed."""
    return Adapter(client, database_name, collection_name)