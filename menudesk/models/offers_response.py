from typing import Annotated, Dict, List

from pydantic import BaseModel, StrictStr, StringConstraints, TypeAdapter

DayKey = Annotated[str, StringConstraints(pattern=r"^[0-6]$")]


class StoredOfferDay(BaseModel):
    """One day as stored in offers.json."""

    title: StrictStr = ""
    lines: List[StrictStr] = []


OffersFile = TypeAdapter(Dict[DayKey, StoredOfferDay])


class OfferDay(BaseModel):
    key: str
    name: str
    title: str
    lines: List[str]


class OffersResponse(BaseModel):
    dirty: bool
    days: List[OfferDay]
