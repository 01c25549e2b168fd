from __future__ import annotations

from typing import Any, Iterator, Mapping

from localmatch.config.settings import Settings

"""
Per-request settings overrides.

`DiscoverySession.discover(..., overrides=...)` lets a caller tune ranking for a
single run, e.g. a wider radius or different composite weights. Only the
ranking sections may be touched:
- `discovery`: radius defaults and weighting toggles
- `scoring`: composite weights, urgency levels and multipliers
- `arrival`: travel speed, out-of-area penalty, default response time

Location acquisition (`geolocation`), service URLs (`services`) and `app` are
fixed for the process. The merged payload is re-validated, so an override can
never produce an invalid `Settings`.
"""

OVERRIDABLE_SECTIONS: frozenset[str] = frozenset({"discovery", "scoring", "arrival"})


def _leaf_paths(value: Any, prefix: str) -> Iterator[str]:
    if isinstance(value, Mapping) and value:
        for key, child in value.items():
            yield from _leaf_paths(child, f"{prefix}.{key}")
    else:
        yield prefix


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # Always returns a new dict: `base` comes from the shared cached settings.
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def validate_overrides(overrides: Mapping[str, Any]) -> None:
    """Raise `ValueError` naming every disallowed dotted path, or a non-mapping section."""
    rejected = [
        path
        for section, value in overrides.items()
        if section not in OVERRIDABLE_SECTIONS
        for path in _leaf_paths(value, str(section))
    ]
    if rejected:
        joined = ", ".join(f"'{p}'" for p in rejected)
        raise ValueError(f"settings_overrides contains a disallowed key: {joined}")

    for section, value in overrides.items():
        if not isinstance(value, Mapping):
            raise ValueError(f"settings_overrides key '{section}' must be a mapping")


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return `settings` with `overrides` merged in, or `settings` itself when there are none."""
    if not overrides:
        return settings
    validate_overrides(overrides)
    merged = _deep_merge(settings.model_dump(mode="python"), overrides)
    return Settings.model_validate(merged)
