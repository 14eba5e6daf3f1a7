from typing import Any

from pydantic import ValidationError

from neowatch.core.clock import Clock, utcnow
from neowatch.core.errors import MalformedRecord
from neowatch.schemas.neo import CelestialObject, CloseApproachData
from neowatch.schemas.raw import RawCloseApproach, RawNeo
from neowatch.services.risk import calculate_risk_score

ORBITING_BODY = "Earth"


def _to_approach(approach: RawCloseApproach) -> CloseApproachData:
    return CloseApproachData(
        approach_date=approach.close_approach_date,
        approach_datetime=approach.close_approach_date_full,
        epoch_ms=approach.epoch_date_close_approach,
        velocity_kmh=approach.relative_velocity.kilometers_per_hour,
        velocity_kms=approach.relative_velocity.kilometers_per_second,
        miss_distance_km=approach.miss_distance.kilometers,
        miss_distance_au=approach.miss_distance.astronomical,
        miss_distance_lunar=approach.miss_distance.lunar,
        orbiting_body=approach.orbiting_body,
    )


def parse_neo(raw: Any, clock: Clock = utcnow) -> CelestialObject:
    """
    Normalize one NeoWs record (feed, lookup or browse) into a CelestialObject.

    Only approaches to Earth are kept. The risk score is computed here and
    nowhere else. Raises MalformedRecord if the record fails validation.
    """
    try:
        record = RawNeo.model_validate(raw)
    except ValidationError as e:
        raise MalformedRecord(f"Unusable NeoWs record: {e.error_count()} validation error(s)") from e

    assessment = calculate_risk_score(record)
    approaches = [
        _to_approach(a) for a in record.close_approach_data
        if a.orbiting_body == ORBITING_BODY
    ]
    diameter = record.estimated_diameter

    return CelestialObject(
        id=record.id,
        neo_reference_id=record.neo_reference_id or record.id,
        name=record.name or record.id,
        nasa_jpl_url=record.nasa_jpl_url,
        absolute_magnitude=record.absolute_magnitude_h,
        diameter_min_km=diameter.kilometers.estimated_diameter_min,
        diameter_max_km=diameter.kilometers.estimated_diameter_max,
        diameter_min_m=diameter.meters.estimated_diameter_min,
        diameter_max_m=diameter.meters.estimated_diameter_max,
        is_hazardous=record.is_potentially_hazardous_asteroid,
        is_sentry=record.is_sentry_object,
        sentry_data=record.sentry_data,
        close_approaches=approaches,
        risk_score=assessment.risk_score,
        risk_level=assessment.risk_level,
        orbital_data=record.orbital_data,
        last_fetched=clock(),
    )
