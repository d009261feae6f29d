"""Typed references from shots to reference assets.

Shots store references as ``hero-<i>``, ``support-<i>``, ``item-<i>``,
``loc-<i>`` or ``none``. Lookups are by position in the owning list and a
reference that no longer resolves means "no character".
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .models import ProjectAssets, ReferenceAsset

NO_REFERENCE = "none"

_REF_PATTERN = re.compile(r"^(hero|support|item|loc)-(\d+)$")


class RefKind(str, Enum):
    HERO = "hero"
    SUPPORT = "support"
    ITEM = "item"
    LOCATION = "loc"


@dataclass(frozen=True)
class CharacterRef:
    kind: RefKind
    index: int

    def __str__(self) -> str:
        return f"{self.kind.value}-{self.index}"

    @property
    def label(self) -> str:
        """Symbolic id used inside prompts, e.g. ``HERO-0``."""
        return f"{self.kind.value.upper()}-{self.index}"


def parse_ref(raw: str | None) -> CharacterRef | None:
    if not raw:
        return None
    m = _REF_PATTERN.match(raw.strip().lower())
    if not m:
        return None
    return CharacterRef(RefKind(m.group(1)), int(m.group(2)))


def normalize_ref(raw: str | None) -> str:
    """Canonical string form; anything unparseable becomes ``none``."""
    ref = parse_ref(raw)
    return str(ref) if ref else NO_REFERENCE


def resolve_ref(ref: CharacterRef | str | None, assets: ProjectAssets) -> ReferenceAsset | None:
    """Look up the referenced asset. ``None`` when it does not resolve."""
    if isinstance(ref, str) or ref is None:
        ref = parse_ref(ref)
        if ref is None:
            return None
    pool = {
        RefKind.HERO: assets.heroes,
        RefKind.SUPPORT: assets.supports,
        RefKind.ITEM: assets.items,
        RefKind.LOCATION: assets.locations,
    }[ref.kind]
    if 0 <= ref.index < len(pool):
        return pool[ref.index]
    return None


def cast_lines(assets: ProjectAssets) -> dict[str, str]:
    """Symbolic id listings for script prompts."""
    return {
        "heroes": "; ".join(f"HERO-{i} ({h.name or 'Protag'})" for i, h in enumerate(assets.heroes)),
        "supports": "; ".join(f"SUPPORT-{i} ({s.name or 'Extra'})" for i, s in enumerate(assets.supports)),
        "items": "; ".join(f"ITEM-{i} ({item.name})" for i, item in enumerate(assets.items)),
        "locations": "; ".join(f"LOC-{i} ({loc.name})" for i, loc in enumerate(assets.locations)),
    }
