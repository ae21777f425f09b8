"""Tests for configuration record hydration."""

from hermit.lib.records import (
    CONFIG_FIELDS,
    DEFAULT_CONFIG,
    ConfigUpdate,
    hydrate,
    seed_document,
)


class TestHydrate:
    """Tests for hydrate()."""

    def test_empty_document_gets_all_defaults(self):
        assert hydrate({}) == DEFAULT_CONFIG
        assert hydrate(None) == DEFAULT_CONFIG

    def test_exposes_exactly_the_recognized_fields(self):
        record = hydrate({"userId": "u1", "_id": "abc", "updatedAt": "now"})
        assert tuple(record) == CONFIG_FIELDS
        assert "userId" not in record

    def test_older_document_falls_back_per_field(self):
        """A document stored before the schedule fields existed still reads fully."""
        record = hydrate({
            "userId": "u1",
            "minTemperature": 15,
            "maxTemperature": 28,
            "minHumidity": 30,
            "maxHumidity": 70,
            "minLight": 50,
            "maxLight": 900,
        })
        assert record["minTemperature"] == 15
        assert record["maxLight"] == 900
        assert record["heaterEnabled"] is True
        assert record["lightOnHour"] == 6
        assert record["lightOffHour"] == 18

    def test_null_values_fall_back_to_defaults(self):
        record = hydrate({"maxHumidity": None, "fanEnabled": None})
        assert record["maxHumidity"] == 80
        assert record["fanEnabled"] is True

    def test_false_and_zero_are_kept(self):
        record = hydrate({"fanEnabled": False, "lightOnHour": 0})
        assert record["fanEnabled"] is False
        assert record["lightOnHour"] == 0


class TestSeedDocument:
    """Tests for seed_document()."""

    def test_defaults_with_identity(self):
        document = seed_document("u1")
        assert document["userId"] == "u1"
        assert {k: document[k] for k in CONFIG_FIELDS} == DEFAULT_CONFIG

    def test_explicit_fields_win_over_defaults(self):
        document = seed_document("u1", {"maxTemperature": 35})
        assert document["maxTemperature"] == 35
        assert document["minTemperature"] == 20


class TestConfigUpdate:
    """Tests for the sparse update model."""

    def test_provided_skips_unset_and_null(self):
        update = ConfigUpdate.model_validate(
            {"minLight": 120, "fanEnabled": None, "color": "blue"}
        )
        assert update.provided() == {"minLight": 120}

    def test_integer_thresholds_stay_integers(self):
        update = ConfigUpdate.model_validate({"maxLight": 1200, "minTemperature": 18.5})
        assert update.provided() == {"maxLight": 1200, "minTemperature": 18.5}
        assert isinstance(update.provided()["maxLight"], int)
