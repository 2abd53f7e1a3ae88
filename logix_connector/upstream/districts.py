"""Known districts and their Logix database numbers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class District:
    id: str
    label: str
    db_number: str


DISTRICTS: Dict[str, District] = {
    "demo": District(id="demo", label="Demo", db_number="0000"),
    "bellwood": District(id="bellwood", label="Bellwood", db_number="0001"),
    "proviso": District(id="proviso", label="Proviso", db_number="0002"),
}

DEFAULT_DISTRICT = "demo"


def list_districts() -> List[District]:
    return list(DISTRICTS.values())


def resolve_tenant(district_id: str) -> str:
    """Map a district id to its database number, defaulting to the demo district."""
    district = DISTRICTS.get(district_id)
    if district is None:
        logger.warning("Unknown district %r, using %s", district_id, DEFAULT_DISTRICT)
        district = DISTRICTS[DEFAULT_DISTRICT]
    return district.db_number
