"""
Record parser tests.

NeoWs numbers arrive as strings and blocks go missing in browse pages; the
parser must cope with both but reject records that have no identity.
"""
import pytest

from conftest import FIXED_NOW, make_approach, make_raw_neo
from neowatch.core.errors import MalformedRecord
from neowatch.services.neo_parser import parse_neo
from neowatch.services.risk import RiskLevel


def fixed_clock():
    return FIXED_NOW


class TestParseNeo:
    """Test normalization of one NeoWs record."""

    def test_basic_fields(self):
        obj = parse_neo(make_raw_neo(), clock=fixed_clock)
        assert obj.id == "3542519"
        assert obj.name == "(2010 PK9)"
        assert obj.diameter_max_km == 0.5
        assert obj.diameter_max_m == 500.0
        assert obj.last_fetched == FIXED_NOW

        approach = obj.close_approaches[0]
        assert approach.miss_distance_km == 5_000_000.0
        assert approach.velocity_kmh == 50_000.0
        assert approach.epoch_ms == 1705320000000
        assert str(approach.approach_date) == "2024-01-15"

    def test_only_earth_approaches_are_kept(self):
        raw = make_raw_neo(approaches=[
            make_approach(epoch_ms=1, body="Earth"),
            make_approach(epoch_ms=2, body="Venus"),
        ])
        obj = parse_neo(raw, clock=fixed_clock)
        assert [a.epoch_ms for a in obj.close_approaches] == [1]

    def test_end_to_end_score(self):
        raw = make_raw_neo(hazardous=True, diameter_max_km=0.5, approaches=[make_approach(miss_km=500_000.0)])
        obj = parse_neo(raw, clock=fixed_clock)
        assert obj.risk_score == 84
        assert obj.risk_level == RiskLevel.CRITICAL

    def test_unparsable_numbers_become_zero(self):
        approach = make_approach()
        approach["miss_distance"]["kilometers"] = "not-a-number"
        approach["relative_velocity"] = None
        raw = make_raw_neo(approaches=[approach])
        raw["absolute_magnitude_h"] = None

        obj = parse_neo(raw, clock=fixed_clock)
        assert obj.absolute_magnitude == 0.0
        assert obj.close_approaches[0].miss_distance_km == 0.0
        assert obj.close_approaches[0].velocity_kmh == 0.0

    def test_missing_name_falls_back_to_id(self):
        raw = make_raw_neo()
        del raw["name"]
        del raw["neo_reference_id"]
        obj = parse_neo(raw, clock=fixed_clock)
        assert obj.name == "3542519"
        assert obj.neo_reference_id == "3542519"

    def test_orbital_data_passes_through_unchanged(self):
        orbital = {
            "orbit_id": "12",
            "eccentricity": ".2394",
            "orbit_class": {"orbit_class_type": "APO", "orbit_class_range": "a > 1.0 AU"},
        }
        first = parse_neo(make_raw_neo(orbital_data=orbital), clock=fixed_clock)
        second = parse_neo(make_raw_neo(orbital_data=first.orbital_data), clock=fixed_clock)
        assert first.orbital_data == orbital
        assert second.orbital_data == orbital

    def test_null_and_non_string_text_fields_are_tolerated(self):
        raw = make_raw_neo()
        raw["name"] = None
        raw["neo_reference_id"] = {"unexpected": "object"}
        raw["nasa_jpl_url"] = ["not", "a", "url"]
        obj = parse_neo(raw, clock=fixed_clock)
        assert obj.name == "3542519"
        assert obj.neo_reference_id == "3542519"
        assert obj.nasa_jpl_url is None

    def test_numeric_name_is_kept_as_text(self):
        raw = make_raw_neo()
        raw["name"] = 433
        obj = parse_neo(raw, clock=fixed_clock)
        assert obj.name == "433"

    @pytest.mark.parametrize("orbital", ["garbage", 42, ["a", "b"]])
    def test_non_object_orbital_data_becomes_none(self, orbital):
        obj = parse_neo(make_raw_neo(orbital_data=orbital), clock=fixed_clock)
        assert obj.orbital_data is None

    def test_approach_without_orbiting_body_is_dropped(self):
        unknown = make_approach(epoch_ms=2)
        unknown["orbiting_body"] = None
        raw = make_raw_neo(approaches=[make_approach(epoch_ms=1), unknown])
        obj = parse_neo(raw, clock=fixed_clock)
        assert [a.epoch_ms for a in obj.close_approaches] == [1]

    @pytest.mark.parametrize("raw", [
        None,
        "3542519",
        [],
        {"name": "no id"},
        {"id": "", "name": "blank id"},
        {"id": "1", "close_approach_data": "not-a-list"},
        {"id": "1", "close_approach_data": [{"miss_distance": {}}]},
    ])
    def test_malformed_records_are_rejected(self, raw):
        with pytest.raises(MalformedRecord):
            parse_neo(raw, clock=fixed_clock)
