"""Deterministic genre colors shared by every chart.

Colors depend only on the set of genres shown, never on the order they were
seen, so the activity chart and the distribution chart always agree.
"""

from typing import Iterable

from ..db.schemas import UNKNOWN_GENRE

# Earthy palette: forest greens, sage and muted blues
GENRE_COLOR_PALETTE: tuple[str, ...] = (
    "#244633",  # Deep forest green
    "#789D72",  # Sage green
    "#5C82B5",  # Muted blue
    "#526D5E",  # Dark teal
    "#729D7E",  # Light sage
    "#576F63",  # Muted forest
    "#8BA888",  # Soft sage
    "#6B8FA3",  # Softer blue
    "#3D5C4A",  # Medium forest
    "#9DB49A",  # Pale sage
    "#7A9BB0",  # Light steel blue
    "#4A6B5A",  # Forest mid-tone
)

# Reserved for the sentinel genre
UNKNOWN_GENRE_COLOR = "#929291"


def assign_colors(genres: Iterable[str]) -> dict[str, str]:
    """Map each genre to a palette color.

    Genres are sorted and assigned palette entries by sorted position,
    cycling when there are more genres than colors. "Unknown" always gets
    ``UNKNOWN_GENRE_COLOR``.

    Example:
        >>> assign_colors({"Mystery", "Fiction"})
        {'Fiction': '#244633', 'Mystery': '#789D72'}
    """
    colors = {}
    for index, genre in enumerate(sorted(set(genres))):
        if genre == UNKNOWN_GENRE:
            colors[genre] = UNKNOWN_GENRE_COLOR
        else:
            colors[genre] = GENRE_COLOR_PALETTE[index % len(GENRE_COLOR_PALETTE)]
    return colors


def genre_color(genre: str, all_genres: Iterable[str]) -> str:
    """Color for one genre, consistent with ``assign_colors(all_genres)``.

    Genres outside ``all_genres`` get the first palette color.
    """
    if genre == UNKNOWN_GENRE:
        return UNKNOWN_GENRE_COLOR
    return assign_colors(all_genres).get(genre, GENRE_COLOR_PALETTE[0])
