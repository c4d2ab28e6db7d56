"""Vibe catalog - the five selectable vibes and how they render."""

from vibecheck.schemas.places import VibeOption, VibeStyle

# Ordered from hottest to deadest; level counts down from 5.
_CATALOG = [
    ("Bagulho Doido", "#FF4500", "flame"),
    ("Animado", "#FFD700", "musical-notes"),
    ("Normal", "#1E90FF", "beer"),
    ("Parado", "#A9A9A9", "moon"),
    ("Miado", "#8B0000", "skull"),
]

HIGH_VIBE_INTENSITY = 4
UNKNOWN_VIBE_STYLE = VibeStyle(color="#ccc", icon="help-circle", intensity=0)

VIBE_OPTIONS: list[VibeOption] = [
    VibeOption(
        name=name,
        level=len(_CATALOG) - index,
        style=VibeStyle(color=color, icon=icon, intensity=len(_CATALOG) - index),
    )
    for index, (name, color, icon) in enumerate(_CATALOG)
]

_BY_NAME = {option.name.lower(): option for option in VIBE_OPTIONS}


def find_vibe(name: str | None) -> VibeOption | None:
    """Look up a vibe by name, ignoring case and surrounding whitespace."""
    if not name:
        return None
    return _BY_NAME.get(name.strip().lower())


def get_vibe_style(name: str | None) -> VibeStyle:
    option = find_vibe(name)
    return option.style if option else UNKNOWN_VIBE_STYLE


def is_high_vibe(name: str | None) -> bool:
    return get_vibe_style(name).intensity >= HIGH_VIBE_INTENSITY
