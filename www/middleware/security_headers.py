"""Security headers injection middleware."""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml

from www.middleware.csp_builder import build_csp, merge_csp, parse_csp
from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()

_PRESETS_PATH = Path(__file__).parent.parent / "config" / "header_presets.yaml"

_CSP_HEADER = "content-security-policy"

# Cache loaded presets
_presets: dict | None = None


def _load_presets() -> dict:
    """Load header presets from YAML, caching after first load."""
    global _presets
    if _presets is not None:
        return _presets
    if not _PRESETS_PATH.exists():
        logger.error("header_presets_not_found", path=str(_PRESETS_PATH))
        _presets = {}
        return _presets
    with open(_PRESETS_PATH) as f:
        _presets = yaml.safe_load(f) or {}
    return _presets


def reset_presets_cache() -> None:
    """Reset the presets cache (for testing)."""
    global _presets
    _presets = None


def resolve_headers(preset_name: str = "www", csp_override: str = "") -> dict[str, str]:
    """Headers for a preset, with any CSP override directives merged in."""
    presets = _load_presets()
    if preset_name not in presets:
        logger.warning("unknown_header_preset", preset=preset_name, fallback="www")
    preset = presets.get(preset_name, presets.get("www", {}))

    headers = {name.lower(): str(value) for name, value in preset.items()}
    if csp_override:
        base = parse_csp(headers.get(_CSP_HEADER, ""))
        merged = merge_csp(base, parse_csp(csp_override))
        headers[_CSP_HEADER] = build_csp(merged)
    return headers


class SecurityHeaders(Middleware):
    """Set the fixed security headers on every response passing through.

    Headers are written before the rest of the chain runs, so error pages
    rendered by the boundary carry them too.
    """

    def __init__(self, preset: str = "www", csp_override: str = "") -> None:
        self._headers = resolve_headers(preset, csp_override)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        for header_name, header_value in self._headers.items():
            context.headers[header_name] = header_value
        return await call_next(context)
