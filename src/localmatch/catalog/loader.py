"""
Provider catalog loader.

Candidates normally arrive from the caller, but the CLI (and demos) read them from
a local JSON file: either a list of provider records or an object with a
`providers` list. Records are validated into `ProviderCandidate` models.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from localmatch.core.env import resolve_project_path
from localmatch.domain.errors import InvalidCandidateError
from localmatch.domain.models import ProviderCandidate


_CANDIDATES_ADAPTER = TypeAdapter(list[ProviderCandidate])


def load_candidates(path: str | Path) -> list[ProviderCandidate]:
    """Load and validate a provider catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("providers", [])
    try:
        return _CANDIDATES_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InvalidCandidateError(f"Invalid provider catalog {resolved}: {exc}") from exc
