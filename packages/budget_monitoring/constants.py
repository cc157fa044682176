"""Static lookup tables and defaults shared by the import pipeline and CLI.

Lookup tables are ordered: resolvers walk them top to bottom and the first
fragment contained in the input wins, so longer fragments that embed a
shorter one (``cabmhm`` vs ``cabm``) must come first.
"""

from __future__ import annotations

# Free-text campus fragment -> canonical campus id. Canonical ids are included
# as their own fragments so resolving an already-resolved id is stable.
CAMPUS_ID_MAP: tuple[tuple[str, str], ...] = (
    ("pablo borbon", "pb"),
    ("pb", "pb"),
    ("lemery", "lemery"),
    ("lem", "lemery"),
    ("rosario", "rosario"),
    ("ros", "rosario"),
    ("san juan", "san-juan"),
    ("san-juan", "san-juan"),
    ("sj", "san-juan"),
)

DEFAULT_CAMPUS_ID = "pb"

# Campus id -> budget-code prefix.
CAMPUS_CODES: dict[str, str] = {
    "pb": "PB",
    "lemery": "LEM",
    "rosario": "ROS",
    "san-juan": "SJ",
}

CAMPUS_DISPLAY_NAMES: dict[str, str] = {
    "pb": "Pablo Borbon",
    "lemery": "Lemery",
    "rosario": "Rosario",
    "san-juan": "San Juan",
}

COLLEGE_ID_MAP: tuple[tuple[str, str], ...] = (
    ("cabeihm", "cabeihm"),
    ("cabmhm", "cabmhm"),
    ("cabm", "cabm"),
    ("ccje", "ccje"),
    ("cas", "cas"),
    ("chs", "chs"),
    ("cte", "cte"),
)

CURRENCY_SYMBOL = "₱"

DEFAULT_FUND_CATEGORY = "Extension"
DEFAULT_FUNDING_SOURCE = "University Fund"
DEFAULT_PROGRAM_CODE = "EXT"

PREVIEW_ROWS = 5


def campus_display_name(campus_id: str) -> str:
    return CAMPUS_DISPLAY_NAMES.get(campus_id, campus_id)
