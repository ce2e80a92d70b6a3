"""Base pydantic model shared by ledger domain entities."""

from pydantic import BaseModel as PydanticBaseModel, ConfigDict


class BaseModel(PydanticBaseModel):
    """Base model for ledger entities, loadable straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)
