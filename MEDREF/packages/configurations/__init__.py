from __future__ import annotations

from MEDREF.packages.configurations.base import (
    ConfigurationError,
    configuration_section,
    load_configuration_data,
)

from MEDREF.packages.configurations.reference import (
    MatchingSettings,
    ReferenceCacheSettings,
    ReferenceSettings,
    SourceDescriptor,
    SourceSettings,
    TermSettings,
    build_reference_settings,
    get_reference_settings,
    reference_settings,
)

__all__ = [
    "ConfigurationError",
    "configuration_section",
    "load_configuration_data",
    "MatchingSettings",
    "ReferenceCacheSettings",
    "ReferenceSettings",
    "SourceDescriptor",
    "SourceSettings",
    "TermSettings",
    "build_reference_settings",
    "get_reference_settings",
    "reference_settings",
]
