"""
Input schema for NeoWs records.

feed, lookup and browse all return objects of this shape. Leaves are coerced
leniently (unparsable numbers become 0, non-scalar strings become empty and a
non-object orbital_data becomes None) but the structure itself is validated,
so a record without an id or with a non-list approach history fails with a
ValidationError instead of silently producing zeros.
"""
import math
from datetime import date
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field


def _to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _to_int(value: Any) -> int:
    return int(_to_float(value))


def _to_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _mapping_or_empty(value: Any) -> Any:
    # Missing nested blocks are common in browse pages; treat them as empty
    return value if isinstance(value, dict) else {}


def _require_id(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)) or str(value).strip() == "":
        raise ValueError("record has no usable id")
    return str(value)


def _list_or_empty(value: Any) -> Any:
    return [] if value is None else value


def _to_str(value: Any) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _to_optional_str(value: Any) -> Optional[str]:
    return _to_str(value) or None


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, dict) else None


LenientFloat = Annotated[float, BeforeValidator(_to_float)]
LenientInt = Annotated[int, BeforeValidator(_to_int)]
Flag = Annotated[bool, BeforeValidator(_to_flag)]
LenientStr = Annotated[str, BeforeValidator(_to_str)]
OptionalStr = Annotated[Optional[str], BeforeValidator(_to_optional_str)]


class RawMissDistance(BaseModel):
    astronomical: LenientFloat = 0.0
    lunar: LenientFloat = 0.0
    kilometers: LenientFloat = 0.0


class RawRelativeVelocity(BaseModel):
    kilometers_per_second: LenientFloat = 0.0
    kilometers_per_hour: LenientFloat = 0.0


class RawCloseApproach(BaseModel):
    close_approach_date: date
    close_approach_date_full: OptionalStr = None
    epoch_date_close_approach: LenientInt = 0
    relative_velocity: Annotated[RawRelativeVelocity, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=RawRelativeVelocity
    )
    miss_distance: Annotated[RawMissDistance, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=RawMissDistance
    )
    orbiting_body: LenientStr = ""


class RawDiameterRange(BaseModel):
    estimated_diameter_min: LenientFloat = 0.0
    estimated_diameter_max: LenientFloat = 0.0


class RawEstimatedDiameter(BaseModel):
    kilometers: Annotated[RawDiameterRange, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=RawDiameterRange
    )
    meters: Annotated[RawDiameterRange, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=RawDiameterRange
    )


class RawNeo(BaseModel):
    id: Annotated[str, BeforeValidator(_require_id)]
    neo_reference_id: OptionalStr = None
    name: LenientStr = ""
    nasa_jpl_url: OptionalStr = None
    absolute_magnitude_h: LenientFloat = 0.0
    estimated_diameter: Annotated[RawEstimatedDiameter, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=RawEstimatedDiameter
    )
    is_potentially_hazardous_asteroid: Flag = False
    is_sentry_object: Flag = False
    sentry_data: Optional[Any] = None
    close_approach_data: Annotated[List[RawCloseApproach], BeforeValidator(_list_or_empty)] = Field(
        default_factory=list
    )
    orbital_data: Annotated[Optional[Dict[str, Any]], BeforeValidator(_mapping_or_none)] = None
