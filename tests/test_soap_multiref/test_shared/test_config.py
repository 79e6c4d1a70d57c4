"""Tests for the configuration system."""

import json

import pytest

from soap_multiref.shared.config import (
    DEFAULT_MAX_DEPTH,
    ConfigError,
    ConfigValidationError,
    FlattenConfig,
    SoapConfig,
    TransportConfig,
)


class TestFlattenConfig:
    """Test suite for FlattenConfig."""

    def test_default_configuration(self):
        """Test default flatten configuration values."""
        config = FlattenConfig()

        assert config.multiref_tag == "multiRef"
        assert config.suppress_multiref is True
        assert config.href_attribute == "href"
        assert config.id_attribute == "id"
        assert config.detect_cycles is True
        assert config.max_depth == DEFAULT_MAX_DEPTH
        assert config.preserve_text is False

    def test_flatten_config_validation_failures(self):
        """Test flatten configuration validation failures."""
        with pytest.raises(ConfigValidationError, match="multiref_tag cannot be empty"):
            FlattenConfig(multiref_tag="")

        with pytest.raises(ConfigValidationError, match="href_attribute cannot be empty"):
            FlattenConfig(href_attribute="")

        with pytest.raises(ConfigValidationError, match="id_attribute cannot be empty"):
            FlattenConfig(id_attribute="")

    def test_max_depth_validation_has_suggestion(self):
        """Test that an invalid max_depth names the field and suggests a fix."""
        with pytest.raises(ConfigValidationError) as exc_info:
            FlattenConfig(max_depth=0)

        assert exc_info.value.field_name == "max_depth"
        assert exc_info.value.suggestions

    def test_config_is_immutable(self):
        """Test that flatten configuration cannot be mutated."""
        config = FlattenConfig()
        with pytest.raises(AttributeError):
            config.max_depth = 3


class TestTransportConfig:
    """Test suite for TransportConfig."""

    def test_default_configuration(self):
        """Test default transport configuration values."""
        config = TransportConfig()

        assert config.timeout_seconds == 30.0
        assert config.verify_tls is True
        assert config.soap_action == ""
        assert config.extra_headers == {}

    def test_timeout_must_be_positive(self):
        """Test that a non-positive timeout is rejected."""
        with pytest.raises(ConfigValidationError, match="timeout_seconds must be > 0"):
            TransportConfig(timeout_seconds=0)

    @pytest.mark.parametrize("header", ["Content-Type", "SOAPAction", "soapaction"])
    def test_managed_headers_are_rejected(self, header):
        """Test that headers set by the transport cannot be overridden."""
        with pytest.raises(ConfigValidationError, match="managed by the transport"):
            TransportConfig(extra_headers={header: "x"})


class TestSoapConfig:
    """Test suite for SoapConfig."""

    def test_default_configuration(self):
        """Test default aggregate configuration."""
        config = SoapConfig()

        assert config.flatten == FlattenConfig()
        assert config.transport == TransportConfig()
        assert config.correlation_id is None
        assert config.name is None

    def test_override_nested_fields(self):
        """Test overriding nested fields with component__field notation."""
        config = SoapConfig().override(
            flatten__max_depth=32,
            transport__soap_action="urn:getQuote",
            correlation_id="req-1",
        )

        assert config.flatten.max_depth == 32
        assert config.transport.soap_action == "urn:getQuote"
        assert config.correlation_id == "req-1"

    def test_override_does_not_modify_original(self):
        """Test that override returns a new instance."""
        original = SoapConfig()
        original.override(flatten__detect_cycles=False)

        assert original.flatten.detect_cycles is True

    def test_override_unknown_component(self):
        """Test that an unknown component is reported."""
        with pytest.raises(ConfigValidationError, match="Unknown configuration component"):
            SoapConfig().override(parser__max_depth=3)

    def test_override_unknown_field(self):
        """Test that an unknown nested field is reported."""
        with pytest.raises(ConfigValidationError):
            SoapConfig().override(flatten__no_such_field=True)

    def test_override_revalidates(self):
        """Test that overridden values are validated again."""
        with pytest.raises(ConfigValidationError, match="max_depth must be >= 1"):
            SoapConfig().override(flatten__max_depth=0)

    def test_json_round_trip(self):
        """Test serialization to JSON and back."""
        config = SoapConfig(name="custom").override(
            flatten__preserve_text=True,
            transport__extra_headers={"X-Trace": "1"},
        )

        restored = SoapConfig.from_json(config.to_json())

        assert restored == config

    def test_to_dict_structure(self):
        """Test dictionary layout of the configuration."""
        data = SoapConfig().to_dict()

        assert set(data) == {"flatten", "transport", "correlation_id", "name"}
        assert data["flatten"]["multiref_tag"] == "multiRef"
        assert data["transport"]["extra_headers"] == {}

    def test_from_dict_partial(self):
        """Test that missing keys keep their defaults."""
        config = SoapConfig.from_dict({"flatten": {"max_depth": 10}})

        assert config.flatten.max_depth == 10
        assert config.flatten.detect_cycles is True
        assert config.transport == TransportConfig()

    def test_from_dict_unknown_key(self):
        """Test that unknown top-level keys are rejected."""
        with pytest.raises(ConfigValidationError, match="Unknown configuration key: parser"):
            SoapConfig.from_dict({"parser": {}})

    def test_from_dict_unknown_nested_key(self):
        """Test that unknown nested keys are rejected."""
        with pytest.raises(ConfigValidationError):
            SoapConfig.from_dict({"flatten": {"depth": 3}})

    def test_from_dict_component_must_be_object(self):
        """Test that components must be JSON objects."""
        with pytest.raises(ConfigValidationError, match="flatten must be an object"):
            SoapConfig.from_dict({"flatten": 3})

    def test_from_json_invalid(self):
        """Test error handling for invalid JSON."""
        with pytest.raises(ConfigValidationError, match="Invalid configuration JSON"):
            SoapConfig.from_json("{not json")

        with pytest.raises(ConfigValidationError, match="must be an object"):
            SoapConfig.from_json(json.dumps([1, 2]))

    def test_validation_error_is_config_error(self):
        """Test the configuration exception hierarchy."""
        assert issubclass(ConfigValidationError, ConfigError)


class TestPresets:
    """Test suite for preset configurations."""

    def test_strict_preset(self):
        """Test the strict preset."""
        config = SoapConfig.strict()

        assert config.name == "strict"
        assert config.flatten.detect_cycles is True
        assert config.flatten.max_depth == 64

    def test_lenient_preset(self):
        """Test the lenient preset."""
        config = SoapConfig.lenient()

        assert config.name == "lenient"
        assert config.flatten.preserve_text is True
        assert config.flatten.max_depth == 512
