"""
Parameter-contract checks shared by every resource operation.

    url = validate(params, "url", required=True, type=str)
    default = validate(params, "default", type=bool, default=False)
"""
from __future__ import annotations

from typing import Any, Optional, Union

from grafana_toolkit.errors import MissingParameterError, TypeMismatchError

TypeSpec = Union[type, tuple[type, ...]]


def _type_names(expected: TypeSpec) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _matches(value: Any, expected: TypeSpec) -> bool:
    types = expected if isinstance(expected, tuple) else (expected,)
    for t in types:
        # bool subclasses int; keep the two apart in both directions
        if isinstance(value, bool):
            if t is bool:
                return True
            continue
        if t is not bool and isinstance(value, t):
            return True
    return False


def validate(
    params: dict[str, Any],
    var: str,
    required: bool = False,
    type: Optional[TypeSpec] = None,  # noqa: A002
    default: Any = None,
) -> Any:
    """Return ``params[var]``, or ``default`` when it is optional and unset.

    Raises ``MissingParameterError`` for an absent required value and
    ``TypeMismatchError`` when the value does not match ``type``.
    """
    value = params.get(var)

    if value is None:
        if required:
            raise MissingParameterError(f"missing '{var}'")
        return default

    if type is not None and not _matches(value, type):
        raise TypeMismatchError(
            f"wrong type. '{var}' must be an {_type_names(type)}, "
            f"given '{value.__class__.__name__}'"
        )
    return value


def require_params(params: Any, name: str = "params") -> dict[str, Any]:
    """Check that ``params`` is a non-empty dict and return it."""
    if not isinstance(params, dict):
        raise TypeMismatchError(
            f"wrong type. '{name}' must be an dict, given '{params.__class__.__name__}'"
        )
    if not params:
        raise MissingParameterError(f"missing '{name}'")
    return params
