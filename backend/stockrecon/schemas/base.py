"""Shared schema configuration."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request body accepting camelCase (``openingFloat``) or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
