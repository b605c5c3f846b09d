from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response bodies; fields are exposed in camelCase."""

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class MessageResponse(BaseModel):
    message: str
