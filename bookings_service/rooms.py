"""The fixed catalogue of bookable rooms."""

from typing import Tuple

ROOMS: Tuple[str, ...] = (
    "Lantai 1 - Aula Mini",
    "Lantai 2",
    "Lantai 3 - Aula Bhakti Husada",
)


def is_known_room(name: str) -> bool:
    return name in ROOMS
