"""Province -> city lookup table.

Loaded once at import time from the static JSON file named by
``settings.CITIES_FILE`` and exposed through read-only mappings.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, NamedTuple, Tuple

from vicomm.config import settings


class City(NamedTuple):
    id: str
    name: str
    slug: str
    province: str


def load_cities(path: Path) -> Mapping[str, Tuple[City, ...]]:
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)

    table = {}
    for province, cities in raw.items():
        table[province] = tuple(
            City(id=c["id"], name=c["name"], slug=c["slug"], province=province)
            for c in cities
        )
    return MappingProxyType(table)


CITIES_BY_PROVINCE: Mapping[str, Tuple[City, ...]] = load_cities(settings.CITIES_FILE)

_CITIES_BY_ID: Mapping[str, City] = MappingProxyType(
    {city.id: city for cities in CITIES_BY_PROVINCE.values() for city in cities}
)


def provinces() -> list[str]:
    return list(CITIES_BY_PROVINCE.keys())


def cities_in(province: str) -> Tuple[City, ...]:
    # Raises KeyError for unknown provinces
    return CITIES_BY_PROVINCE[province]


def all_cities() -> list[City]:
    return list(_CITIES_BY_ID.values())
