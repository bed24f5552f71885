"""Dashboard template helpers: panel-id normalisation, slugs and JSON probing."""
from __future__ import annotations

import copy
import json
import re
from typing import Any

import structlog

from grafana_toolkit.errors import InvalidArgumentError, MissingParameterError

log = structlog.get_logger(__name__)

FIRST_PANEL_ID = 10

_WHITESPACE = re.compile(r"\s+")


def assign_panel_ids(rows: list[dict[str, Any]], start: int = FIRST_PANEL_ID) -> tuple[list[dict[str, Any]], int]:
    """Number every panel across ``rows`` from ``start``.

    The counter runs on across row boundaries; rows without ``panels`` are
    skipped. Returns the renumbered copy of ``rows`` and the next free id.
    """
    next_id = start
    renumbered = []
    for row in rows:
        panels = row.get("panels")
        if panels is None:
            renumbered.append(row)
            continue
        new_panels = []
        for panel in panels:
            new_panels.append({**panel, "id": next_id})
            next_id += 1
        renumbered.append({**row, "panels": new_panels})
    return renumbered, next_id


def regenerate_template_ids(params: dict[str, Any]) -> str:
    """Renumber all panel ids (10, 11, 12, …) and return the dashboard as JSON.

    Accepts either an import payload (``{"dashboard": {"rows": [...]}}``) or
    a bare dashboard (``{"rows": [...]}``). ``params`` itself is left untouched.
    """
    if not isinstance(params, dict):
        raise InvalidArgumentError(
            f"wrong type. 'params' must be an dict, given '{params.__class__.__name__}'"
        )
    if not params:
        raise MissingParameterError("missing 'params'")

    result = copy.deepcopy(params)
    dashboard = result.get("dashboard") if isinstance(result.get("dashboard"), dict) else result

    rows = dashboard.get("rows")
    if rows is not None:
        dashboard["rows"], next_id = assign_panel_ids(rows)
        log.debug("template.ids_regenerated", panels=next_id - FIRST_PANEL_ID)

    return json.dumps(result, separators=(",", ":"), ensure_ascii=False)


def slug(text: str) -> str:
    """Lower-cased slug of ``text``.

    Whitespace is dropped when the text already contains a hyphen, otherwise
    each whitespace run becomes a single hyphen.
    """
    if not isinstance(text, str):
        raise InvalidArgumentError(
            f"wrong type. 'text' must be an str, given '{text.__class__.__name__}'"
        )

    if _WHITESPACE.search(text):
        text = _WHITESPACE.sub("" if "-" in text else "-", text)
    return text.lower()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def is_valid_json(text: Any, debug: bool = False) -> bool:
    try:
        json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError) as e:
        if debug:
            log.error("json.parse_error", error=str(e))
        return False
    return True
