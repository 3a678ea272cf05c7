from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Modelos expostos na API usam camelCase no JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageModel(CamelModel):
    message: str | None = None
