from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema serialised with camelCase keys, as the front-end expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
