"""Base model shared by request and response bodies."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python.

    Accepts either form on input; FastAPI serializes responses by alias.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
