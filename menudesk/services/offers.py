"""Weekly offers editing.

``offers.json`` maps a day index (``"0"`` = Sunday … ``"6"`` = Saturday) to
``{"title": str, "lines": [str, ...]}``.  Storage does not guarantee key
order, so days are always listed in numeric order.
"""

import copy
import json
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from menudesk.config import DAY_NAMES
from menudesk.models.offers_response import OffersFile

logger = logging.getLogger(__name__)

OFFERS_TIMEZONE = ZoneInfo("Asia/Dubai")
# Before this hour the previous day's offers still apply
ROLLOVER_HOUR = 4


def resolve_offer_day(now: Optional[datetime] = None) -> str:
    """Return the day key whose offers apply at *now*.

    Times are evaluated in Asia/Dubai; between 00:00 and 03:59 the previous
    day is still current.  Naive datetimes are taken to be UTC.
    """
    now = now or datetime.now(tz=OFFERS_TIMEZONE)
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    local = now.astimezone(OFFERS_TIMEZONE)
    if local.hour < ROLLOVER_HOUR:
        local -= timedelta(days=1)
    # datetime.weekday() is Monday=0; offer keys are Sunday=0
    return str((local.weekday() + 1) % 7)


class OffersModel:
    """Editable offers mapping with dirty tracking and reset.

    Raises:
        pydantic.ValidationError: if *data* is not keyed by day index or a
            day is not a {title, lines} object of strings.
    """

    def __init__(self, data: Dict[str, dict]) -> None:
        OffersFile.validate_python(data)
        self.data: Dict[str, dict] = copy.deepcopy(data)
        self.original: Dict[str, dict] = copy.deepcopy(data)
        self.dirty = False

    def _day(self, key: str) -> dict:
        key = str(key)
        if key not in self.data:
            if key not in {str(i) for i in range(len(DAY_NAMES))}:
                raise LookupError(f"Unknown day '{key}'.")
            self.data[key] = {"title": "", "lines": []}
        day = self.data[key]
        day.setdefault("title", "")
        day.setdefault("lines", [])
        return day

    def _line_index(self, day: dict, index: int) -> int:
        if not 0 <= index < len(day["lines"]):
            raise LookupError(f"Line {index} does not exist.")
        return index

    def days(self) -> List[dict]:
        """Return every day in numeric key order, with its display name."""
        result = []
        for key in sorted(self.data, key=int):
            day = self.data[key]
            result.append(
                {
                    "key": key,
                    "name": DAY_NAMES[int(key)],
                    "title": day.get("title", ""),
                    "lines": list(day.get("lines", [])),
                }
            )
        return result

    def set_title(self, key: str, title: str) -> None:
        self._day(key)["title"] = title
        self.dirty = True

    def add_line(self, key: str, text: str = "") -> int:
        lines = self._day(key)["lines"]
        lines.append(text)
        self.dirty = True
        return len(lines) - 1

    def set_line(self, key: str, index: int, text: str) -> None:
        day = self._day(key)
        day["lines"][self._line_index(day, index)] = text
        self.dirty = True

    def delete_line(self, key: str, index: int) -> None:
        day = self._day(key)
        del day["lines"][self._line_index(day, index)]
        self.dirty = True

    def reset(self) -> None:
        """Restore the data last loaded or saved."""
        self.data = copy.deepcopy(self.original)
        self.dirty = False
        logger.info("Offers reset to original values")

    def mark_clean(self) -> None:
        """Record the current data as saved."""
        self.original = copy.deepcopy(self.data)
        self.dirty = False

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2, ensure_ascii=False)

    def today(self, now: Optional[datetime] = None) -> dict:
        key = resolve_offer_day(now)
        day = self.data.get(key) or {"title": "", "lines": []}
        return {
            "key": key,
            "name": DAY_NAMES[int(key)],
            "title": day.get("title", ""),
            "lines": list(day.get("lines", [])),
        }
