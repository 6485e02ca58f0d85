"""
Persona profiles: five difficulty tiers for the Tal persona.

A profile bundles everything that makes one opponent differ from another:
how often it blunders on purpose, how strongly the Tal-style bonuses pull
its move choice, how much material it will give up for an attack, and how
long it pretends to think. Profiles are immutable; resolve() returns the
shared frozen instance, which callers cannot modify.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersonaProfile:
    """
    One difficulty tier.

    Attributes:
        key:                 Lookup name ("beginner" ... "legend").
        name:                Display name.
        rating:              Approximate playing strength (Elo), for display.
        search_depth:        Depth an engine of this strength would search.
                             Informational only; the engine does not search.
        think_time_ms:       Mean simulated thinking delay per move.
        intensity:           0..1, weight of the stylistic bonuses.
        mistake_rate:        0..1, chance of playing a random legal move.
        sacrifice_threshold: Most material (pawns, as a negative number) the
                             persona accepts losing in a sacrifice.
        description:         Short tagline shown when picking a tier.
    """

    key: str
    name: str
    rating: int
    search_depth: int
    think_time_ms: int
    intensity: float
    mistake_rate: float
    sacrifice_threshold: float
    description: str = ""


DEFAULT_PROFILE = "intermediate"

PROFILES = MappingProxyType({
    p.key: p
    for p in (
        PersonaProfile("beginner", "Beginner", 800, 3, 500,
                       0.2, 0.30, -5, "Learning the style"),
        PersonaProfile("intermediate", "Intermediate", 1200, 7, 800,
                       0.4, 0.15, -3, "Showing some tricks"),
        PersonaProfile("advanced", "Advanced", 1600, 12, 1200,
                       0.6, 0.05, -2, "Aggressive play"),
        PersonaProfile("master", "Master", 2000, 18, 2000,
                       0.8, 0.02, -1.5, "Full tactical power"),
        PersonaProfile("legend", "Legend", 2700, 25, 3000,
                       1.0, 0.0, -1, "Prime Tal unleashed"),
    )
})


def resolve(name: str | None) -> PersonaProfile:
    """
    Return the profile called `name` (case-insensitive).

    Unknown or missing names fall back to the intermediate tier; this is
    never an error.
    """
    profile = PROFILES.get((name or "").strip().lower())
    if profile is None:
        _log.debug("unknown persona %r, using %s", name, DEFAULT_PROFILE)
        return PROFILES[DEFAULT_PROFILE]
    return profile
