from datetime import datetime, timezone
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# stored timestamps are naive UTC
UtcDatetime = Annotated[
    datetime,
    PlainSerializer(lambda v: v.replace(tzinfo=timezone.utc).isoformat(), return_type=str, when_used="json"),
]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, extra="forbid")
