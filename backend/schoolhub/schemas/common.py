"""Base schema, reference fields and response envelopes."""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..timeutil import ensure_utc

# SQLite hands back naive datetimes; all instants leave the service as UTC
UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Schema whose JSON names are camelCase; snake_case input is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def ref(name: str, default: Any = ...):
    """A foreign key read from ``<name>_id`` and exposed as ``<name>``."""
    return Field(default, validation_alias=AliasChoices(f"{name}_id", name), serialization_alias=name)


def ref_in(name: str, default: Any = ...):
    """A foreign key accepted as ``<name>`` or ``<name>Id`` on input."""
    return Field(default, validation_alias=AliasChoices(name, f"{name}Id", f"{name}_id"))


class UserBrief(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str


class BulkResult(BaseModel):
    student: str
    success: bool
    data: Optional[dict] = None
    message: Optional[str] = None
