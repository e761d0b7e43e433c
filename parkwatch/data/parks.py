"""
Monitored parks, grouped by resort.
entity_id is the themeparks.wiki entity for the park (see https://api.themeparks.wiki/v1/destinations).
Add or edit entries here; the pipeline picks them up through the registry.
"""
from typing import TypedDict


class ParkEntry(TypedDict):
    id: str
    name: str
    entity_id: str
    timezone: str
    location: str


WALT_DISNEY_WORLD = "walt-disney-world"
DISNEYLAND = "disneyland"

DEFAULT_RESORT = WALT_DISNEY_WORLD

PARKS_BY_RESORT: dict[str, list[ParkEntry]] = {
    WALT_DISNEY_WORLD: [
        {
            "id": "wdw-magic-kingdom",
            "name": "Magic Kingdom",
            "entity_id": "75ea578a-adc8-4116-a54d-dccb60765ef9",
            "timezone": "America/New_York",
            "location": "Walt Disney World, Orlando, FL",
        },
        {
            "id": "wdw-epcot",
            "name": "EPCOT",
            "entity_id": "47f90d2c-e191-4239-a466-5892ef59a88b",
            "timezone": "America/New_York",
            "location": "Walt Disney World, Orlando, FL",
        },
        {
            "id": "wdw-hollywood-studios",
            "name": "Disney's Hollywood Studios",
            "entity_id": "288747d1-8b4f-4a64-867e-ea7c9b27bad8",
            "timezone": "America/New_York",
            "location": "Walt Disney World, Orlando, FL",
        },
        {
            "id": "wdw-animal-kingdom",
            "name": "Disney's Animal Kingdom",
            "entity_id": "1c84a229-8862-4648-9c71-378ddd2c7693",
            "timezone": "America/New_York",
            "location": "Walt Disney World, Orlando, FL",
        },
    ],
    DISNEYLAND: [
        {
            "id": "dl-disneyland",
            "name": "Disneyland Park",
            "entity_id": "7340550b-c14d-4def-80bb-acdb51d49a66",
            "timezone": "America/Los_Angeles",
            "location": "Disneyland, Anaheim, CA",
        },
        {
            "id": "dl-california-adventure",
            "name": "Disney California Adventure",
            "entity_id": "832fcd51-ea19-4e77-85c7-75d5843b127c",
            "timezone": "America/Los_Angeles",
            "location": "Disneyland, Anaheim, CA",
        },
    ],
}


def list_resorts() -> list[str]:
    return list(PARKS_BY_RESORT.keys())


def get_parks(resort: str) -> list[dict]:
    """Return park entries for one resort (copies). Empty list for an unknown resort."""
    return [dict(p) for p in PARKS_BY_RESORT.get(resort, [])]
