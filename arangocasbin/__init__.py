"""Policy storage adapter that keeps Casbin-style rules in ArangoDB."""

__version__ = "0.1.0"