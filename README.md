# arangocasbin

Stores Casbin-style authorization policies in an ArangoDB collection. The
adapter loads, saves, adds, removes and updates policy rules, can load a
filtered subset of rules, and can run changes inside ArangoDB stream
transactions.

Each rule is stored as one document with the fields `ptype` and `v0` to `v5`.
When an adapter is created it opens the database and the collection, creating
either one if it does not exist yet.

The package is made of these modules:

| Module                     | Contents                                                        |
|----------------------------|-----------------------------------------------------------------|
| `arangocasbin.adapter`     | `Adapter`, `new_adapter`, `new_filtered_adapter`, `new_adapter_from_client` |
| `arangocasbin.options`     | `Config`, `new_config` and the `with_*` options                 |
| `arangocasbin.client`      | `ArangoClient`, `Database`, `Collection`, `Cursor`, `StreamTransaction`, `ArangoError` |
| `arangocasbin.model`       | `Model`, an in-memory store of definitions and rules, and `load_policy_array` |
| `arangocasbin.rules`       | `CasbinRule`, `Filter`, `BatchFilter`, `rule_from_policy`       |
| `arangocasbin.transaction` | `ArangoTransactionContext`, `TransactionFinishedError`          |

## Connecting

```python
from arangocasbin.adapter import new_adapter
from arangocasbin.options import (
    with_authentication,
    with_collection,
    with_database,
    with_endpoints,
)

password = "password"

adapter = new_adapter(
    with_endpoints("http://localhost:8529"),
    with_authentication("root", password),
    with_database("casbin"),
    with_collection("casbin_rule"),
)
```

The defaults, as set by `new_config()`, are:

| Setting         | Default                 |
|-----------------|-------------------------|
| endpoints       | `http://localhost:8529` |
| username        | `root`                  |
| password        | empty                   |
| database_name   | `casbin`                |
| collection_name | `casbin_rule`           |

With several endpoints, for example the coordinators of a cluster, requests go
to them in turn:

```python
adapter = new_adapter(
    with_endpoints(
        "http://coordinator1:8529",
        "http://coordinator2:8529",
        "http://coordinator3:8529",
    ),
)
```

Server errors, and failures to reach the server, are raised as
`arangocasbin.client.ArangoError`, which carries the HTTP status in `code` and
ArangoDB's error number in `error_num` when the server sent them.

### TLS

`with_tls(ca_cert_path)` turns on TLS with a minimum of TLS 1.2 and, if the path
is not empty, trusts the CA certificate in that PEM file. `with_tls_config(ssl_context)`
turns on TLS with a ready-made `ssl.SSLContext` instead.

```python
from arangocasbin.options import with_tls

adapter = new_adapter(
    with_endpoints("https://localhost:8529"),
    with_tls("/path/to/ca-cert.pem"),
)
```

If you already have an `ArangoClient`, pass it to
`new_adapter_from_client(client, database_name, collection_name)`.
`Config.create_client(transport)` builds a client from a configuration and
accepts an `httpx` transport, which is handy for tests.

## Loading and saving policies

```python
from arangocasbin.model import Model

model = Model()
model.add_def("r", "r", "sub, obj, act")
model.add_def("p", "p", "sub, obj, act")
model.add_def("e", "e", "some(where (p.eft == allow))")
model.add_def("m", "m", "r.sub == p.sub && r.obj == p.obj && r.act == p.act")

model.add_policy("p", "p", ["alice", "data1", "read"])
model.add_policy("p", "p", ["bob", "data2", "write"])

adapter.save_policy(model)   # empties the collection, then writes the "p" and "g" rules

fresh = Model()
fresh.add_def("p", "p", "sub, obj, act")
adapter.load_policy(fresh)
fresh.get_policy("p", "p")   # [["alice", "data1", "read"], ["bob", "data2", "write"]]
```

`save_policy` writes documents in batches of 1000. Loading drops trailing
empty values, skips documents without a `ptype`, and skips rules already in the
model. Loading a `p` rule whose size does not match its definition raises
`ValueError`; a type without a definition raises `KeyError`.

## Changing rules

```python
adapter.add_policy("p", "p", ["charlie", "data3", "read"])
adapter.add_policies("p", "p", [["dave", "data4", "read"], ["erin", "data5", "write"]])

adapter.remove_policy("p", "p", ["charlie", "data3", "read"])
adapter.remove_policies("p", "p", [["dave", "data4", "read"]])
adapter.remove_filtered_policy("p", "p", 0, "alice")   # every rule whose v0 is "alice"

adapter.update_policy("p", "p", ["bob", "data2", "write"], ["bob", "data2", "read"])
adapter.update_policies("p", "p", [["bob", "data2", "read"]], [["bob", "data2", "write"]])
```

`remove_policy` and `update_policy` match on the type and on every non-empty
value of the given rule. `update_policies` raises `ValueError` if there are
fewer new rules than old ones. `update_filtered_policies` only adds the new
policies; it removes nothing and returns an empty list.

`Adapter.preview(rules, model)` keeps, in place and in order, only those
`CasbinRule` objects in the list that the model already holds.

## Filtered loading

Each field of a `Filter` lists the values that field may take; empty fields
match anything.

```python
from arangocasbin.rules import BatchFilter, Filter

adapter.load_filtered_policy(model, Filter(v0=["alice"]))
adapter.is_filtered()   # True

adapter.load_filtered_policy(
    model, BatchFilter([Filter(v0=["alice"]), Filter(ptype=["g"])])
)
```

`load_filtered_policy` takes a `Filter`, a `BatchFilter` or a list of filters.
An empty set of filters loads everything; any other kind of value is ignored.
`new_filtered_adapter(...)` takes the same options as `new_adapter` and
returns an adapter that reports itself as filtered from the start.

## Transactions

```python
tx = adapter.begin_transaction()
tx.get_adapter().add_policy("p", "p", ["alice", "data1", "read"])
tx.commit()        # or tx.rollback()
```

A transaction can be finished only once; calling `commit` or `rollback` a
second time raises `TransactionFinishedError`. Used as a context manager, the
transaction commits when the block ends normally and rolls back when it raises:

```python
with adapter.begin_transaction() as tx:
    tx.get_adapter().add_policy("p", "p", ["bob", "data2", "write"])
```

`Adapter.transaction(enforcer, fn)` binds an enforcer to a transaction while
`fn(enforcer)` runs, then puts the original adapter back. It commits if `fn`
returns; if `fn` raises, it aborts, calls `enforcer.load_policy()` and lets the
exception through. The enforcer only needs `set_adapter` and `load_policy`
methods.

## What this package does not do

It stores and retrieves rules; it does not decide access. `Model` keeps
definitions and rules but does not evaluate matchers or effects, and the
package has no enforcer of its own. Pair the adapter with an enforcer that
offers `set_adapter` and `load_policy` and that uses this `Model`.

## Tests

The tests use pytest and are in the `tests` directory:

```
pip install -e ".[test]"
pytest
```