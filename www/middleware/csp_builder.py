"""Content-Security-Policy string helpers."""

from __future__ import annotations

CspDirectives = dict[str, list[str]]


def parse_csp(policy: str) -> CspDirectives:
    """Split a policy into ``{directive: [sources]}``, directive names lower-cased.

    >>> parse_csp("default-src 'self' cdnjs.cloudflare.com; img-src *")
    {'default-src': ["'self'", 'cdnjs.cloudflare.com'], 'img-src': ['*']}
    """
    directives: CspDirectives = {}
    for chunk in (policy or "").split(";"):
        tokens = chunk.split()
        if tokens:
            directives[tokens[0].lower()] = tokens[1:]
    return directives


def merge_csp(base: CspDirectives, extra: CspDirectives) -> CspDirectives:
    """Add the sources in ``extra`` to ``base`` without duplicates; base order is kept."""
    merged = {directive: list(sources) for directive, sources in base.items()}
    for directive, sources in extra.items():
        target = merged.setdefault(directive, [])
        for source in sources:
            if source not in target:
                target.append(source)
    return merged


def build_csp(directives: CspDirectives) -> str:
    """Join directives back into a header value.

    >>> build_csp({"default-src": ["'self'"], "upgrade-insecure-requests": []})
    "default-src 'self'; upgrade-insecure-requests"
    """
    return "; ".join(" ".join([directive, *sources]) for directive, sources in directives.items())
