"""Common schemas used across the application."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API schema.

    JSON keys are camelCase on the wire; request bodies also accept the
    snake_case field names. ORM objects validate directly.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    total: int
    limit: int
    offset: int


class MessageResponse(CamelModel):
    message: str
