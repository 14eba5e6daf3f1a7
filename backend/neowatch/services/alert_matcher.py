"""
Alert rule evaluation.

Pure functions over (CelestialObject, AlertRule); no I/O. `rule` is anything
with `kind` and `threshold` attributes, so both ORM rows and schemas work.
"""
from typing import Any

from neowatch.models.alert import AlertKind
from neowatch.schemas.neo import CelestialObject


def matches(obj: CelestialObject, rule: Any) -> bool:
    kind = AlertKind(rule.kind)

    if kind == AlertKind.DISTANCE:
        nearest = obj.nearest_approach
        if nearest is None:
            return False
        return nearest.miss_distance_km < rule.threshold

    if kind == AlertKind.DIAMETER:
        return obj.diameter_max_m > rule.threshold

    if kind == AlertKind.HAZARDOUS:
        return obj.is_hazardous is True

    if kind == AlertKind.SENTRY:
        return obj.is_sentry is True

    return False


def render_message(obj: CelestialObject, rule: Any) -> str:
    kind = AlertKind(rule.kind)

    if kind == AlertKind.DISTANCE:
        nearest = obj.nearest_approach
        distance = f"{nearest.miss_distance_km:,.0f} km" if nearest else "an unknown distance"
        return f"{obj.name} passes within {distance} of Earth (alert below {rule.threshold:,.0f} km)"

    if kind == AlertKind.DIAMETER:
        return (
            f"{obj.name} detected with an estimated diameter of {obj.diameter_max_m:,.0f} m "
            f"(alert above {rule.threshold:,.0f} m)"
        )

    if kind == AlertKind.HAZARDOUS:
        return (
            f"{obj.name} is flagged potentially hazardous, {obj.diameter_max_m:,.0f} m across, "
            f"risk score {obj.risk_score}"
        )

    if kind == AlertKind.SENTRY:
        return f"{obj.name} is on the Sentry impact-risk table, risk score {obj.risk_score}"

    return f"{obj.name} triggered an alert"
