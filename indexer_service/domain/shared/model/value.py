from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable value type compared by its fields."""

    model_config = ConfigDict(frozen=True)


class Aggregate(BaseModel):
    """Mutable domain entity; assignments are re-validated."""

    model_config = ConfigDict(validate_assignment=True)
