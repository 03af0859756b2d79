# csp_server/csp/directives.py
# Baseline directive table (built once, read-only) and a copy-on-write builder.

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .errors import DirectiveTableError

SELF = "'self'"
NONE = "'none'"


def freeze_directives(table: Iterable[Tuple[str, Iterable[str]]]) -> Mapping[str, Tuple[str, ...]]:
    """Validate (name, tokens) pairs and return them as a read-only ordered mapping."""
    frozen: Dict[str, Tuple[str, ...]] = {}
    for name, tokens in table:
        tokens = tuple(tokens)
        if not name or not name.strip():
            raise DirectiveTableError("directive name must be non-empty")
        if name in frozen:
            raise DirectiveTableError(f"directive {name!r} declared twice")
        if not tokens:
            raise DirectiveTableError(f"directive {name!r} has no sources")
        frozen[name] = tokens
    if not frozen:
        raise DirectiveTableError("directive table is empty")
    return MappingProxyType(frozen)


# Insertion order here is the rendering order of the header.
BASELINE_DIRECTIVES = freeze_directives([
    ("default-src", [SELF]),
    ("script-src", [
        SELF,
        "https://www.googletagmanager.com",
        "https://www.google-analytics.com",
        "https://js.sentry-cdn.com",
        "https://www.clarity.ms",
    ]),
    ("style-src", [
        SELF,
        "https://fonts.googleapis.com",
    ]),
    ("img-src", [
        SELF,
        "data:",
        "https:",
        "https://www.google-analytics.com",
        "https://www.googletagmanager.com",
    ]),
    ("font-src", [
        SELF,
        "https://fonts.gstatic.com",
        "data:",
    ]),
    ("connect-src", [
        SELF,
        "https://www.google-analytics.com",
        "https://region1.google-analytics.com",
        "https://www.googletagmanager.com",
        "https://*.ingest.sentry.io",
        "https://www.clarity.ms",
        "https://c.clarity.ms",
    ]),
    ("frame-src", [NONE]),  # no framing of third parties
    ("object-src", [NONE]),
    ("base-uri", [SELF]),
    ("form-action", [SELF]),
])


class DirectiveTable:
    """
    Per-request working copy of a directive table.

    Appending to a known directive keeps its position; unknown directives go
    to the end. The source mapping is never touched.
    """

    def __init__(self, source: Mapping[str, Tuple[str, ...]] = BASELINE_DIRECTIVES):
        self._directives: Dict[str, List[str]] = {name: list(tokens) for name, tokens in source.items()}

    @classmethod
    def from_baseline(cls) -> "DirectiveTable":
        return cls(BASELINE_DIRECTIVES)

    def append(self, name: str, *tokens: str) -> "DirectiveTable":
        if not tokens:
            return self
        self._directives.setdefault(name, []).extend(tokens)
        return self

    def set(self, name: str, *tokens: str) -> "DirectiveTable":
        if not tokens:
            raise DirectiveTableError(f"directive {name!r} cannot be set to an empty source list")
        self._directives[name] = list(tokens)
        return self

    def get(self, name: str) -> Tuple[str, ...]:
        return tuple(self._directives.get(name, ()))

    def names(self) -> List[str]:
        return list(self._directives)

    def freeze(self) -> Mapping[str, Tuple[str, ...]]:
        return freeze_directives((name, tokens) for name, tokens in self._directives.items())

    def render(self) -> str:
        """Join as ``"<name> <tokens>"`` entries separated by ``"; "``."""
        return "; ".join(f"{name} {' '.join(tokens)}" for name, tokens in self.freeze().items())

    def __contains__(self, name: str) -> bool:
        return name in self._directives

    def __len__(self) -> int:
        return len(self._directives)
