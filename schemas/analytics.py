"""Analytics ingestion schemas."""

from datetime import datetime
from typing import Annotated, Dict, List, Optional, Union

from pydantic import Field, StrictBool, StringConstraints

from schemas.common import ApiModel

PropertyKey = Annotated[str, StringConstraints(min_length=1, max_length=64)]
PropertyValue = Union[
    StrictBool,
    Annotated[float, Field(allow_inf_nan=False)],
    Annotated[str, StringConstraints(max_length=256)],
    None,
]


class AnalyticsEventInput(ApiModel):
    event: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    timestamp: datetime
    properties: Optional[Dict[PropertyKey, PropertyValue]] = None


class AnalyticsBatch(ApiModel):
    events: List[AnalyticsEventInput] = Field(..., min_length=1, max_length=50)


class AnalyticsAccepted(ApiModel):
    success: bool = True
