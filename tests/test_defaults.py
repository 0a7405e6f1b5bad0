"""
Tests for the defaults provider.
"""

import pytest

from layerconf.infrastructure.config.defaults import (
    DEFAULT_FIELDS, DefaultsProvider, FieldKind, FieldSpec, coerce, is_empty
)


class TestCoerce:
    """Test cases for raw string coercion."""

    def test_int(self) -> None:
        assert coerce(FieldKind.INT, "25565") == (True, 25565)
        assert coerce(FieldKind.INT, " 42 ") == (True, 42)
        assert coerce(FieldKind.INT, "3.5") == (False, None)
        assert coerce(FieldKind.INT, "abc") == (False, None)

    def test_number(self) -> None:
        assert coerce(FieldKind.NUMBER, "0.25") == (True, 0.25)
        assert coerce(FieldKind.NUMBER, "nan") == (False, None)
        assert coerce(FieldKind.NUMBER, "fast") == (False, None)

    def test_boolean_only_true_is_true(self) -> None:
        assert coerce(FieldKind.BOOLEAN, "TRUE") == (True, True)
        assert coerce(FieldKind.BOOLEAN, "true") == (True, True)
        assert coerce(FieldKind.BOOLEAN, "yes") == (True, False)
        assert coerce(FieldKind.BOOLEAN, "1") == (True, False)

    def test_list(self) -> None:
        assert coerce(FieldKind.LIST, " help, status ,, mission ") == (
            True, ["help", "status", "mission"])

    def test_string_is_stripped(self) -> None:
        assert coerce(FieldKind.STRING, "  mc.example.org ") == (True, "mc.example.org")

    def test_constant_never_coerces(self) -> None:
        assert coerce(FieldKind.CONSTANT, "false") == (False, None)

    @pytest.mark.parametrize("raw", [None, "", "undefined"])
    def test_empty_markers(self, raw) -> None:
        assert is_empty(raw)

    def test_non_empty(self) -> None:
        assert not is_empty("0")
        assert not is_empty(" ")


class TestDefaultsProvider:
    """Test cases for DefaultsProvider."""

    @pytest.fixture
    def provider(self) -> DefaultsProvider:
        return DefaultsProvider()

    def test_defaults_without_environment(self, provider: DefaultsProvider) -> None:
        config = provider.compute_defaults({})

        assert config["host"] == "localhost"
        assert config["port"] == 19132
        assert config["username"] == "DragonSlayerBot"
        assert config["skipPing"] is True
        assert config["offlineMode"] is False
        assert config["aiTemperature"] == 0.7
        assert config["logLevel"] == "info"
        assert config["allowedCommands"] == ["help", "status", "mission"]
        assert config["adminUsers"] == []
        assert config["experimentalFeatures"] == {
            "advancedAI": False,
            "predictiveNavigation": False,
            "dynamicDifficulty": False,
            "socialLearning": False,
        }

    def test_absent_values_are_omitted(self, provider: DefaultsProvider) -> None:
        config = provider.compute_defaults({})

        assert "geminiApiKey" not in config
        assert "webhookUrl" not in config

    def test_environment_values_are_coerced(self, provider: DefaultsProvider) -> None:
        config = provider.compute_defaults({
            "MINECRAFT_PORT": "25565",
            "AI_TEMPERATURE": "1.5",
            "DEBUG_MODE": "TRUE",
            "ADMIN_USERS": "alice, bob",
            "EXPERIMENTAL_ADVANCED_AI": "true",
        })

        assert config["port"] == 25565
        assert config["aiTemperature"] == 1.5
        assert config["debugMode"] is True
        assert config["adminUsers"] == ["alice", "bob"]
        assert config["experimentalFeatures"]["advancedAI"] is True
        assert config["experimentalFeatures"]["socialLearning"] is False

    @pytest.mark.parametrize("raw", ["", "undefined", "not-a-port", "12.5"])
    def test_unusable_int_falls_back(self, provider: DefaultsProvider, raw: str) -> None:
        assert provider.compute_defaults({"MINECRAFT_PORT": raw})["port"] == 19132

    def test_nan_number_falls_back(self, provider: DefaultsProvider) -> None:
        assert provider.compute_defaults({"AI_TOP_P": "NaN"})["aiTopP"] == 0.9

    def test_api_key_alias_chain(self, provider: DefaultsProvider) -> None:
        assert provider.compute_defaults(
            {"GOOGLE_API_KEY": "google"})["geminiApiKey"] == "google"
        assert provider.compute_defaults(
            {"GEMINI_API_KEY": "", "GEMINI_KEY": "second"})["geminiApiKey"] == "second"
        assert provider.compute_defaults(
            {"GEMINI_API_KEY": "first", "API_KEY": "third"})["geminiApiKey"] == "first"
        assert provider.compute_defaults(
            {"GEMINI_API_KEY": "undefined", "API_KEY": "third"})["geminiApiKey"] == "third"

    def test_whitespace_only_string_falls_back(self, provider: DefaultsProvider) -> None:
        assert provider.compute_defaults({"MINECRAFT_HOST": "   "})["host"] == "localhost"

    def test_constants_ignore_environment(self, provider: DefaultsProvider) -> None:
        assert provider.compute_defaults({"SKIP_PING": "false"})["skipPing"] is True

    def test_results_are_independent(self, provider: DefaultsProvider) -> None:
        first = provider.compute_defaults({})
        first["allowedCommands"].append("shutdown")
        first["experimentalFeatures"]["advancedAI"] = True

        second = provider.compute_defaults({})

        assert second["allowedCommands"] == ["help", "status", "mission"]
        assert second["experimentalFeatures"]["advancedAI"] is False

    def test_duplicate_fields_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate default field: port"):
            DefaultsProvider([
                FieldSpec("port", ("A",), FieldKind.INT, 1),
                FieldSpec("port", ("B",), FieldKind.INT, 2),
            ])

    def test_custom_fields(self) -> None:
        provider = DefaultsProvider([
            FieldSpec("region", ("REGION",), FieldKind.STRING, "eu"),
            FieldSpec("limits.cpu", ("CPU_LIMIT",), FieldKind.NUMBER, 1.0),
        ])

        assert provider.compute_defaults({"CPU_LIMIT": "2"}) == {
            "region": "eu",
            "limits": {"cpu": 2.0},
        }

    def test_default_table_is_complete(self) -> None:
        keys = {spec.key for spec in DEFAULT_FIELDS}

        for key in ("tickRate", "maxRequestsPerMinute", "learningDataPath",
                    "combatStrategy", "webhookUrl", "backupEnabled"):
            assert key in keys
