"""Configuration classes for SOAP multiRef flattening.

This module provides configuration objects for the flattener and the HTTP
transport, plus an aggregate ``SoapConfig`` that can be overridden,
serialized to JSON and loaded back.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

# Deep enough for any real encoder output, well below the interpreter's
# default recursion limit.
DEFAULT_MAX_DEPTH = 256
DEFAULT_TIMEOUT_SECONDS = 30.0


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class FlattenConfig:
    """Configuration for reference indexing and substitution."""

    multiref_tag: str = "multiRef"
    suppress_multiref: bool = True
    href_attribute: str = "href"
    id_attribute: str = "id"
    detect_cycles: bool = True
    # longest chain of nested href expansions
    max_depth: int = DEFAULT_MAX_DEPTH
    preserve_text: bool = False

    def __post_init__(self) -> None:
        """Validate flatten configuration."""
        if not self.multiref_tag:
            raise ConfigValidationError("multiref_tag cannot be empty", "multiref_tag")
        if not self.href_attribute:
            raise ConfigValidationError("href_attribute cannot be empty", "href_attribute")
        if not self.id_attribute:
            raise ConfigValidationError("id_attribute cannot be empty", "id_attribute")
        if self.max_depth < 1:
            raise ConfigValidationError(
                "max_depth must be >= 1",
                "max_depth",
                suggestions=[f"Use the default of {DEFAULT_MAX_DEPTH}"],
            )


@dataclass(frozen=True)
class TransportConfig:
    """Configuration for outbound SOAP HTTP calls."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    verify_tls: bool = True
    soap_action: str = ""
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate transport configuration."""
        if self.timeout_seconds <= 0:
            raise ConfigValidationError("timeout_seconds must be > 0", "timeout_seconds")
        for name in self.extra_headers:
            if name.lower() in ("content-type", "soapaction"):
                raise ConfigValidationError(
                    f"Header {name!r} is managed by the transport",
                    "extra_headers",
                    suggestions=["Set soap_action instead of a SOAPAction header"],
                )


_COMPONENTS = ("flatten", "transport")


@dataclass(frozen=True)
class SoapConfig:
    """Complete configuration for flattening, decoding and transport.

    Immutable, so one instance can be shared between threads.
    """

    flatten: FlattenConfig = field(default_factory=FlattenConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    correlation_id: Optional[str] = None
    name: Optional[str] = None

    def override(self, **kwargs: Any) -> "SoapConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Fields to override; nested fields use the
                ``component__field`` notation

        Returns:
            New SoapConfig instance with overrides applied

        Example:
            >>> config = SoapConfig().override(flatten__max_depth=32)
            >>> config.flatten.max_depth
            32
        """
        nested_overrides: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}", key
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                top_level[key] = value

        new_fields: Dict[str, Any] = {}
        for component in _COMPONENTS:
            current = getattr(self, component)
            if component in nested_overrides:
                try:
                    new_fields[component] = replace(current, **nested_overrides[component])
                except TypeError as e:
                    raise ConfigValidationError(str(e), component) from e
        new_fields.update(top_level)

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, dict):
                return {key: _dataclass_to_dict(value) for key, value in obj.items()}
            return obj

        return _dataclass_to_dict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoapConfig":
        """Create configuration from dictionary.

        Unknown keys raise ``ConfigValidationError`` rather than being
        silently ignored.
        """
        components = {
            "flatten": FlattenConfig,
            "transport": TransportConfig,
        }
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key in components:
                if not isinstance(value, dict):
                    raise ConfigValidationError(f"{key} must be an object", key)
                try:
                    values[key] = components[key](**value)
                except TypeError as e:
                    raise ConfigValidationError(str(e), key) from e
            elif key in cls.__dataclass_fields__:
                values[key] = value
            else:
                raise ConfigValidationError(f"Unknown configuration key: {key}", key)
        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "SoapConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def strict(cls) -> "SoapConfig":
        """Preset with cycle detection and a shallow depth limit."""
        return cls(
            flatten=FlattenConfig(detect_cycles=True, max_depth=64),
            name="strict",
        )

    @classmethod
    def lenient(cls) -> "SoapConfig":
        """Preset that keeps interleaved text and allows long reference chains."""
        return cls(
            flatten=FlattenConfig(preserve_text=True, max_depth=512),
            name="lenient",
        )
