"""Argument errors raised before any request reaches Grafana.

Resource errors (not found, non-2xx) are never raised; they come back as
``{"status": ..., "message": ...}`` result dicts.
"""
from __future__ import annotations


class GrafanaToolkitError(Exception):
    """Base class for all errors raised by grafana_toolkit."""


class InvalidArgumentError(GrafanaToolkitError, ValueError):
    """A caller-supplied argument is malformed or not allowed."""


class MissingParameterError(InvalidArgumentError):
    """A required parameter is absent."""


class TypeMismatchError(InvalidArgumentError, TypeError):
    """A parameter has the wrong type."""


class ZeroIdentifierError(InvalidArgumentError):
    """Datasource id 0 is reserved by Grafana and never addresses a resource."""
