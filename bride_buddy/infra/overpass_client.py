"""Place lookup against the OpenStreetMap Overpass API."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Tags that describe what kind of business a place is, most specific first.
_TYPE_TAGS = ("shop", "craft", "amenity", "office", "tourism", "leisure")


class PlaceLookupError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Place:
    name: str
    address: str | None
    phone: str | None
    website: str | None
    place_type: str | None


def _quote_regex(text: str) -> str:
    # Regex-escape first, then escape for the double-quoted Overpass string literal.
    escaped = re.sub(r"([\\.^$|?*+()\[\]{}])", r"\\\1", text)
    return escaped.replace("\\", "\\\\").replace('"', '\\"')


def build_query(*, name: str, latitude: float, longitude: float, radius_km: float, limit: int, timeout_s: int = 25) -> str:
    radius_m = int(max(radius_km, 0.1) * 1000)
    pattern = _quote_regex(name)
    around = f"(around:{radius_m},{latitude},{longitude})"
    return (
        f"[out:json][timeout:{timeout_s}];"
        f'(node["name"~"{pattern}",i]{around};'
        f'way["name"~"{pattern}",i]{around};);'
        f"out center {limit};"
    )


def format_address(tags: dict[str, str]) -> str | None:
    street = " ".join(p for p in (tags.get("addr:housenumber"), tags.get("addr:street")) if p)
    locality = " ".join(p for p in (tags.get("addr:state"), tags.get("addr:postcode")) if p)
    parts = [p for p in (street, tags.get("addr:city"), locality) if p]
    if parts:
        return ", ".join(parts)
    return tags.get("addr:full") or None


def place_from_element(element: dict[str, Any]) -> Place | None:
    tags = element.get("tags") or {}
    name = tags.get("name")
    if not name:
        return None

    place_type = next((tags[t] for t in _TYPE_TAGS if tags.get(t)), None)
    return Place(
        name=name,
        address=format_address(tags),
        phone=tags.get("phone") or tags.get("contact:phone"),
        website=tags.get("website") or tags.get("contact:website"),
        place_type=place_type,
    )


async def search_places(
    *,
    name: str,
    latitude: float,
    longitude: float,
    radius_km: float,
    limit: int,
    url: str,
    timeout_s: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Place]:
    """Find places near a point whose name contains `name` (case-insensitive)."""

    query = build_query(
        name=name,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        limit=limit,
        timeout_s=max(1, math.ceil(timeout_s)),
    )
    try:
        async with httpx.AsyncClient(timeout=timeout_s, transport=transport) as client:
            resp = await client.post(url, data={"data": query})
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise PlaceLookupError(f"Place lookup failed: {e}") from e

    elements = body.get("elements") if isinstance(body, dict) else None
    if not isinstance(elements, list):
        raise PlaceLookupError("Place lookup returned no elements list")

    places: list[Place] = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        place = place_from_element(element)
        if place is not None:
            places.append(place)
        if len(places) >= limit:
            break
    logger.info("Place lookup name=%r radius_km=%s -> %d result(s)", name, radius_km, len(places))
    return places
