"""Explicit transactions handed out by the adapter."""

from __future__ import annotations

from typing import Any


class TransactionFinishedError(Exception):
    """Raised when a transaction is committed or rolled back a second time."""

    def __init__(self, message: str = "transaction already finished") -> None:
        super().__init__(message)


class ArangoTransactionContext:
    """A streaming transaction with commit, rollback and an adapter bound to it."""

    def __init__(self, transaction: Any, adapter: Any, collection_name: str) -> None:
        self.transaction = transaction
        self.adapter = adapter
        self.collection_name = collection_name
        self.committed = False
        self.rolled_back = False

    @property
    def finished(self) -> bool:
        return self.committed or self.rolled_back

    def __enter__(self) -> ArangoTransactionContext:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        if self.finished:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def commit(self) -> None:
        """Commit the transaction; a failed commit leaves it open."""
        if self.finished:
            raise TransactionFinishedError()
        self.transaction.commit()
        self.committed = True

    def rollback(self) -> None:
        """Abort the transaction; a failed abort leaves it open."""
        if self.finished:
            raise TransactionFinishedError()
        self.transaction.abort()
        self.rolled_back = True

    def get_adapter(self) -> Any:
        """An adapter whose writes go through this transaction."""
        return self.adapter.with_transaction(self.transaction)