"""
Datasource resource operations (http://docs.grafana.org/http_api/datasource/).

Datasources are addressed by name or numeric id. Names are resolved against a
fresh listing on every call; nothing is cached.

Malformed arguments raise before any request is made. A datasource that
cannot be found comes back as ``{"status": 404, "message": ...}``.
"""
from __future__ import annotations

import json
from typing import Any, Protocol, Union

import structlog

from grafana_toolkit.errors import InvalidArgumentError, ZeroIdentifierError
from grafana_toolkit.models import ById, DatasourceRef, to_ref
from grafana_toolkit.validator import require_params, validate

log = structlog.get_logger(__name__)

ENDPOINT = "/api/datasources"

VALID_TYPES = (
    "grafana",
    "graphite",
    "cloudwatch",
    "elasticsearch",
    "prometheus",
    "influxdb",
    "mysql",
    "opentsdb",
    "postgres",
)

Result = dict[str, Any]


class Transport(Protocol):
    def get(self, path: str) -> Result: ...
    def post(self, path: str, body: dict) -> Result: ...
    def put(self, path: str, body: dict) -> Result: ...
    def delete(self, path: str) -> Result: ...


def not_found(message: str) -> Result:
    return {"status": 404, "message": message}


def is_error(result: Any) -> bool:
    """True for a ``{status, message}`` result with a non-2xx status."""
    if not isinstance(result, dict):
        return True
    status = result.get("status")
    return isinstance(status, int) and not 200 <= status < 300


def canonical_keys(value: Any) -> Any:
    """Recursively convert every mapping key to ``str``."""
    if isinstance(value, dict):
        return {str(k): canonical_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [canonical_keys(v) for v in value]
    return value


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``overlay`` on ``base``; nested dicts merge, anything else is replaced."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class DatasourceClient:
    """CRUD for Grafana datasources on top of a ``get/post/put/delete`` transport."""

    def __init__(self, transport: Transport, debug: bool = False) -> None:
        self._transport = transport
        self._debug = debug

    def _debug_log(self, event: str, **kw: Any) -> None:
        if self._debug:
            log.debug(event, **kw)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_datasources(self) -> Union[dict[int, dict[str, Any]], Result]:
        """Return all datasources keyed by id.

        Any failure, including an empty response, gives
        ``{"status": 404, "message": "No Datasources found"}``.
        """
        self._debug_log("datasource.list", endpoint=ENDPOINT)
        result = self._transport.get(ENDPOINT)

        if not result or result.get("status") != 200:
            return not_found("No Datasources found")

        return {ds["id"]: ds for ds in result.get("message") or []}

    def resolve_identity(self, ref: Any) -> Union[int, Result]:
        """Translate a datasource name or id into its numeric id."""
        ref = to_ref(ref)
        if isinstance(ref, ById):
            return ref.id

        datasources = self.list_datasources()
        if is_error(datasources):
            return not_found(f"No Datasource '{ref.name}' found")

        datasource_id = next(
            (ds_id for ds_id, ds in datasources.items() if ds.get("name") == ref.name),
            None,
        )
        if datasource_id is None:
            return not_found(f"No Datasource '{ref.name}' found")
        if datasource_id == 0:
            raise ZeroIdentifierError("datasource id can not be 0")
        return datasource_id

    def get_datasource(self, ref: Union[int, str, DatasourceRef]) -> Result:
        """Fetch a single datasource by name or id."""
        datasource_id = self.resolve_identity(ref)
        if isinstance(datasource_id, dict):
            return datasource_id

        endpoint = f"{ENDPOINT}/{datasource_id}"
        self._debug_log("datasource.get", datasource_id=datasource_id, endpoint=endpoint)
        return self._transport.get(endpoint)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_datasource(self, params: dict[str, Any]) -> Result:
        """Create a datasource.

        Required: ``type``, ``name``, ``database``, ``url``.
        Optional: ``access`` (proxy), ``default`` (False), ``user``, ``password``,
        ``basic_user``, ``basic_password``, ``json_data``, ``json_secure``.

            client.create_datasource({
                "name": "graphite",
                "type": "graphite",
                "database": "graphite",
                "url": "http://localhost:8080",
                "json_data": {"graphiteVersion": "1.1"},
            })
        """
        require_params(params)

        ds_type = validate(params, "type", required=True, type=str)
        name = validate(params, "name", required=True, type=str)
        database = validate(params, "database", required=True, type=str)
        access = validate(params, "access", type=str, default="proxy")
        default = validate(params, "default", type=bool, default=False)
        user = validate(params, "user", type=str)
        password = validate(params, "password", type=str)
        url = validate(params, "url", required=True, type=str)
        json_data = validate(params, "json_data", type=dict)
        json_secure = validate(params, "json_secure", type=dict)
        ba_user = validate(params, "basic_user", type=str)
        ba_password = validate(params, "basic_password", type=str)

        if ds_type.lower() not in VALID_TYPES:
            raise InvalidArgumentError(
                f"wrong datasource type. only {', '.join(VALID_TYPES)} allowed, given '{ds_type}'"
            )

        payload = {
            "isDefault": default,
            "basicAuth": ba_user is not None or ba_password is not None,
            "basicAuthUser": ba_user,
            "basicAuthPassword": ba_password,
            "name": name,
            "type": ds_type,
            "url": url,
            "access": access,
            "database": database,
            "user": user,
            "password": password,
            "jsonData": json_data,
            "secureJsonData": json_secure,
        }
        payload = {k: v for k, v in payload.items() if v is not None}

        log.info("datasource.create", name=name, type=ds_type, database=database)
        self._debug_log("datasource.payload", payload=json.dumps(payload))
        return self._transport.post(ENDPOINT, payload)

    def update_datasource(self, params: dict[str, Any]) -> Result:
        """Merge ``data`` into an existing datasource and save it.

            client.update_datasource({
                "datasource": "graphite",
                "data": {"url": "http://localhost:2003"},
            })
        """
        require_params(params)

        data = validate(params, "data", required=True, type=dict)
        ref = to_ref(validate(params, "datasource", required=True, type=(str, int)))

        existing = self.get_datasource(ref)
        if is_error(existing):
            return existing

        existing = canonical_keys({k: v for k, v in existing.items() if k != "status"})
        datasource_id = existing.get("id")
        payload = deep_merge(existing, canonical_keys(data))

        endpoint = f"{ENDPOINT}/{datasource_id}"
        log.info("datasource.update", datasource_id=datasource_id, fields=sorted(data))
        self._debug_log("datasource.payload", endpoint=endpoint, payload=json.dumps(payload))
        return self._transport.put(endpoint, payload)

    def delete_datasource(self, ref: Union[int, str, DatasourceRef]) -> Result:
        """Delete a datasource by name or id."""
        datasource_id = self.resolve_identity(ref)
        if isinstance(datasource_id, dict):
            return datasource_id

        endpoint = f"{ENDPOINT}/{datasource_id}"
        log.info("datasource.delete", datasource_id=datasource_id)
        return self._transport.delete(endpoint)
