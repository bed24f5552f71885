"""Pydantic models for datasource references and MCP tool inputs."""
from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from grafana_toolkit.errors import InvalidArgumentError, ZeroIdentifierError
from grafana_toolkit.tools import is_valid_json


# ---------------------------------------------------------------------------
# Datasource identity
# ---------------------------------------------------------------------------

class ById(BaseModel):
    """Datasource addressed by its numeric id."""
    model_config = ConfigDict(frozen=True)

    id: int


class ByName(BaseModel):
    """Datasource addressed by its (server-unique) name."""
    model_config = ConfigDict(frozen=True)

    name: str


DatasourceRef = Union[ById, ByName]


def to_ref(value: Any) -> DatasourceRef:
    """Turn a raw caller value (name or id) into a ``DatasourceRef``."""
    if isinstance(value, (ById, ByName)):
        return value
    # bool is an int subclass but never a datasource id
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidArgumentError(
            "wrong type. 'datasource' must be an str (for a datasource name) "
            f"or an int (for a datasource id), given '{value.__class__.__name__}'"
        )
    if isinstance(value, str):
        if not value:
            raise InvalidArgumentError("missing 'datasource'")
        return ByName(name=value)
    if value == 0:
        raise ZeroIdentifierError("datasource id can not be 0")
    return ById(id=value)


# ---------------------------------------------------------------------------
# MCP tool input schemas
# ---------------------------------------------------------------------------

class DatasourceRefInput(BaseModel):
    """Tool input naming one datasource by name or id."""
    datasource: Union[StrictInt, StrictStr] = Field(..., description="Datasource name or numeric id")


class UpdateDatasourceInput(BaseModel):
    """Tool input for a merge-update."""
    datasource: Union[StrictInt, StrictStr] = Field(..., description="Datasource name or numeric id")
    data: dict[str, Any] = Field(..., description="Fields to overlay on the existing datasource")


class DashboardInput(BaseModel):
    """Tool input carrying a dashboard as a JSON string."""
    dashboard_json: str = Field(..., description="Dashboard JSON (object)", min_length=2)

    @field_validator("dashboard_json")
    @classmethod
    def must_be_object(cls, v: str) -> str:
        if not is_valid_json(v) or not v.lstrip().startswith("{"):
            raise ValueError("dashboard_json must be a JSON object")
        return v


class SlugInput(BaseModel):
    text: str = Field(..., description="Text to turn into a slug")
