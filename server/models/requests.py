"""Base model for JSON request bodies; fields are camelCase on the wire."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Counts and durations are stored as 32-bit integers
Int32 = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]


class CamelModel(BaseModel):
    """Accepts `nickName` as well as `nick_name`."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
