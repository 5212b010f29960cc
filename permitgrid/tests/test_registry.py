"""City registry tests"""

import json

import pytest
from pydantic import ValidationError

from conftest import make_city
from permitgrid.core.config import Settings
from permitgrid.core.errors import ConfigurationError
from permitgrid.ingestion.arcgis import ArcGISConnector
from permitgrid.ingestion.opendata import OpenDataConnector
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.ingestion.scrape import ScrapePendingConnector


class TestDefaultRegistry:
    """Built-in municipalities"""

    def test_default_cities(self):
        registry = ConnectorRegistry.default()
        assert registry.keys == ["vancouver", "maple_ridge", "surrey", "coquitlam", "burnaby"]
        assert all(0 <= score <= 1 for score in registry.trust_scores().values())

    @pytest.mark.parametrize(
        "key, connector_cls",
        [
            ("vancouver", OpenDataConnector),
            ("maple_ridge", ArcGISConnector),
            ("surrey", ArcGISConnector),
            ("coquitlam", OpenDataConnector),
            ("burnaby", ScrapePendingConnector),
        ],
    )
    def test_connector_per_endpoint_kind(self, key, connector_cls):
        connector = ConnectorRegistry.default().build_connector(key)
        assert isinstance(connector, connector_cls)
        assert connector.name == key

    @pytest.mark.parametrize("value", ["maple_ridge", "Maple Ridge", "maple-ridge", "  MAPLE RIDGE "])
    def test_lookup_by_key_or_name(self, value):
        assert ConnectorRegistry.default().lookup_key(value) == "maple_ridge"

    def test_lookup_unknown(self):
        assert ConnectorRegistry.default().lookup_key("Atlantis") is None

    def test_get_unknown_raises(self):
        with pytest.raises(ConfigurationError, match="not in the registry"):
            ConnectorRegistry.default().get("atlantis")

    def test_describe(self):
        described = ConnectorRegistry.default().describe()
        burnaby = next(entry for entry in described if entry["key"] == "burnaby")
        assert burnaby["kind"] == "scrape"
        assert burnaby["trust_score"] == 0.8


class TestCustomRegistry:
    """Registries built from files, settings and plug-in kinds"""

    def test_duplicate_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="duplicate"):
            ConnectorRegistry([make_city("alpha"), make_city("alpha")])

    def test_from_file(self, tmp_path):
        path = tmp_path / "cities.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "key": "delta",
                        "name": "Delta",
                        "endpoint": {
                            "kind": "arcgis",
                            "url": "https://gis.delta.ca/arcgis/rest/services/Permits/FeatureServer/0/query",
                            "address_fields": ["CIVIC_ADDRESS"],
                        },
                        "trust_score": 0.75,
                        "fields": {"id": ["FOLDERRSN"], "address": [["STREET_NUM", "STREET_NAME"]]},
                    }
                ]
            )
        )

        registry = ConnectorRegistry.from_file(path)

        city = registry.get("delta")
        assert city.trust_score == 0.75
        assert city.prefix == "DEL"
        assert city.fields["address"] == [["STREET_NUM", "STREET_NAME"]]
        assert isinstance(registry.build_connector("delta"), ArcGISConnector)

    def test_from_settings_uses_registry_path(self, tmp_path):
        path = tmp_path / "cities.json"
        path.write_text(ConnectorRegistry([make_city("alpha"), make_city("beta")]).dump_json())

        registry = ConnectorRegistry.from_settings(Settings(REGISTRY_PATH=str(path), LOG_TO_FILE=False))

        assert registry.keys == ["alpha", "beta"]

    def test_invalid_trust_score_rejected(self, tmp_path):
        path = tmp_path / "cities.json"
        path.write_text(
            json.dumps([{"key": "x", "name": "X", "endpoint": {"kind": "opendata", "url": "https://x"}, "trust_score": 1.5}])
        )
        with pytest.raises(ValidationError):
            ConnectorRegistry.from_file(path)

    def test_register_kind(self):
        class SocrataConnector(OpenDataConnector):
            kind = "socrata"

        registry = ConnectorRegistry([make_city("omega", kind="socrata")])
        with pytest.raises(ConfigurationError):
            registry.build_connector("omega")

        registry.register_kind("socrata", SocrataConnector)
        assert isinstance(registry.build_connector("omega"), SocrataConnector)
