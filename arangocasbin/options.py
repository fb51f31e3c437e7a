"""Connection settings and the options that adjust them."""

from __future__ import annotations

import ssl
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from .client import ArangoClient

DEFAULT_DATABASE_NAME = "casbin"
DEFAULT_COLLECTION_NAME = "casbin_rule"

Option = Callable[["Config"], None]


@dataclass
class Config:
    """Where and how to connect, and which database and collection to use."""

    endpoints: list[str] = field(default_factory=lambda: ["http://localhost:8529"])
    username: str = "root"
    password: str = ""
    database_name: str = DEFAULT_DATABASE_NAME
    collection_name: str = DEFAULT_COLLECTION_NAME
    tls_enabled: bool = False
    ca_cert_path: str = ""
    ssl_context: ssl.SSLContext | None = None

    def _verify(self) -> ssl.SSLContext | bool:
        if not self.tls_enabled:
            return True
        if self.ssl_context is not None:
            return self.ssl_context
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        if self.ca_cert_path:
            with open(self.ca_cert_path, encoding="ascii") as handle:
                context.load_verify_locations(cadata=handle.read())
        return context

    def create_client(self, transport: httpx.BaseTransport | None = None) -> ArangoClient:
        """Build a client from these settings; reads the CA file if one is set."""
        return ArangoClient(
            self.endpoints,
            self.username,
            self.password,
            verify=self._verify(),
            transport=transport,
        )


def with_endpoints(*args: str) -> Option:
    """Use the given endpoints, in round-robin order."""
    endpoints = list(args)

    def apply(config: Config) -> None:
        config.endpoints = endpoints

    return apply


def with_authentication(username: str, password: str) -> Option:
    def apply(config: Config) -> None:
        config.username = username
        config.password = password

    return apply


def with_database(name: str) -> Option:
    def apply(config: Config) -> None:
        config.database_name = name

    return apply


def with_collection(name: str) -> Option:
    def apply(config: Config) -> None:
        config.collection_name = name

    return apply


def with_tls(ca_cert_path: str) -> Option:
    """Enable TLS, trusting the CA certificate at the given path if not empty."""

    def apply(config: Config) -> None:
        config.tls_enabled = True
        config.ca_cert_path = ca_cert_path

    return apply


def with_tls_config(ssl_context: ssl.SSLContext) -> Option:
    """Enable TLS with a ready-made SSL context."""

    def apply(config: Config) -> None:
        config.tls_enabled = True
        config.ssl_context = ssl_context

    return apply


def new_config(*args: Option) -> Config:
    """Default settings with the given options applied in order."""
    config = Config()
    for option in args:
        option(config)
    return config