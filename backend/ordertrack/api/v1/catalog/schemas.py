"""API schemas for catalog endpoints."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints, field_serializer

from ordertrack.models.catalog import Country, Machine, Panel
from ordertrack.utils.datetime_utils import serialize_api_datetime

ProductCode = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=32, pattern=r"^[A-Za-z0-9]+$"),
]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]

# =============================================================================
# Response Schemas
# =============================================================================


class CountryResponse(BaseModel):
    """Country response schema."""

    id: int
    name: str
    code: str

    @classmethod
    def from_model(cls, country: Country) -> "CountryResponse":
        return cls(id=country.id, name=country.name, code=country.code)  # type: ignore[arg-type]


class MachineResponse(BaseModel):
    """Machine response schema."""

    id: int
    name: str
    product_code: str
    created_by: int
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, machine: Machine) -> "MachineResponse":
        return cls(
            id=machine.id,  # type: ignore[arg-type]
            name=machine.name,
            product_code=machine.product_code,
            created_by=machine.created_by,
            created_at=machine.created_at,
        )


class PanelResponse(BaseModel):
    """Panel response schema."""

    id: int
    name: str
    panel_code: str
    parent_machine_id: int
    created_by: int
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, panel: Panel) -> "PanelResponse":
        return cls(
            id=panel.id,  # type: ignore[arg-type]
            name=panel.name,
            panel_code=panel.panel_code,
            parent_machine_id=panel.parent_machine_id,
            created_by=panel.created_by,
            created_at=panel.created_at,
        )


# =============================================================================
# Request Schemas
# =============================================================================


class MachineCreateRequest(BaseModel):
    """Request body for machine creation."""

    name: Name
    product_code: ProductCode


class MachineUpdateRequest(BaseModel):
    """Machines can only be renamed; the product code is fixed."""

    name: Name


class PanelCreateRequest(BaseModel):
    """Request body for panel creation."""

    name: Name
    panel_code: ProductCode
    parent_machine_id: int = Field(ge=1)


class PanelUpdateRequest(BaseModel):
    """Panels can be renamed or moved to another machine; the panel code is fixed."""

    name: Name | None = None
    parent_machine_id: int | None = Field(default=None, ge=1)
