from __future__ import annotations

import logging
import math
from typing import Any

import redis

from bride_buddy import store
from bride_buddy.agents.base import ToolCall
from bride_buddy.api.models import UserLocation, Vendor
from bride_buddy.config import ChatSettings
from bride_buddy.infra.overpass_client import Place, PlaceLookupError, search_places

logger = logging.getLogger(__name__)

SEARCH_VENDORS = "search_vendors"
DEFAULT_RADIUS_KM = 50

SEARCH_VENDORS_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SEARCH_VENDORS,
        "description": (
            "The user just named a real-world wedding vendor they booked or are considering. "
            "Look it up near the user and add it to their vendor tracker."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Vendor business name as the user said it"},
                "category": {
                    "type": "string",
                    "description": "Service category, e.g. photographer, florist, venue, caterer",
                },
                "radius_km": {
                    "type": "number",
                    "description": "Search radius around the user in kilometers",
                    "default": DEFAULT_RADIUS_KM,
                },
            },
            "required": ["query", "category"],
        },
    },
}


def no_location_notice(query: str) -> str:
    return (
        f"\n\n📍 I'd love to look up {query} for you, but I need your location to search nearby. "
        "Turn on location sharing and mention them again!"
    )


def lookup_failed_notice(query: str) -> str:
    return f"\n\n😕 I had trouble searching for {query} right now. Please try again in a moment."


def no_results_notice(query: str) -> str:
    return (
        f'\n\n🔍 I couldn\'t find a match for "{query}" nearby. '
        "You can add them manually in your vendor tracker!"
    )


def confirmation_text(places: list[Place], *, added: set[str]) -> str:
    """Confirmation for a lookup; names not in `added` were already tracked."""

    if len(places) == 1:
        p = places[0]
        if p.name in added:
            lines = [f"\n\n✨ I found **{p.name}** and added them to your vendor tracker!"]
        else:
            lines = [f"\n\n✨ I found **{p.name}**. They're already in your vendor tracker!"]
        if p.phone:
            lines.append(f"📞 {p.phone}")
        if p.website:
            lines.append(f"🌐 {p.website}")
        if p.address:
            lines.append(f"📍 {p.address}")
        return "\n".join(lines)

    if all(p.name in added for p in places):
        lines = [f"\n\n✨ I found {len(places)} matches and added them to your vendor tracker:"]
    else:
        lines = [f"\n\n✨ I found {len(places)} matches:"]
    for idx, p in enumerate(places, start=1):
        details = " · ".join(d for d in (p.address, p.phone, p.website) if d)
        line = f"{idx}. **{p.name}**" + (f" - {details}" if details else "")
        if p.name not in added:
            line += " (already in your tracker)"
        lines.append(line)
    return "\n".join(lines)


def search_radius_km(raw: object) -> float:
    """Radius from tool arguments; anything not a positive finite number means the default."""

    try:
        radius = float(raw) if raw is not None else DEFAULT_RADIUS_KM
    except (TypeError, ValueError):
        return DEFAULT_RADIUS_KM
    if not math.isfinite(radius) or radius <= 0:
        return DEFAULT_RADIUS_KM
    return radius


def vendor_notes(place: Place) -> str | None:
    parts = [
        f"Phone: {place.phone}" if place.phone else "",
        f"Website: {place.website}" if place.website else "",
        f"Address: {place.address}" if place.address else "",
    ]
    notes = "; ".join(p for p in parts if p)
    return notes or None


def vendor_from_place(*, user_id: str, place: Place, category: str | None, query: str) -> Vendor:
    return Vendor(
        user_id=user_id,
        name=place.name,
        service=category or place.place_type or query,
        amount=None,
        paid=False,
        notes=vendor_notes(place),
    )


async def run_search_vendors(
    *,
    r: redis.Redis,
    user_id: str,
    call: ToolCall,
    location: UserLocation | None,
    settings: ChatSettings,
) -> str:
    """Execute one search_vendors call and return the text to append to the reply.

    Lookup problems never fail the turn; they come back as conversational notices.
    """

    query = str(call.arguments.get("query") or "").strip()
    if call.malformed or not query:
        logger.warning("search_vendors called with unusable arguments: %r", call.arguments)
        return lookup_failed_notice(query or "that vendor")

    if location is None:
        logger.info("search_vendors query=%r skipped: no user location", query)
        return no_location_notice(query)

    category = str(call.arguments.get("category") or "").strip() or None
    radius_km = search_radius_km(call.arguments.get("radius_km"))

    try:
        places = await search_places(
            name=query,
            latitude=location.latitude,
            longitude=location.longitude,
            radius_km=radius_km,
            limit=settings.vendor_search_max_results,
            url=settings.overpass_url,
            timeout_s=settings.overpass_timeout_s,
        )
    except PlaceLookupError as e:
        logger.warning("search_vendors query=%r failed: %s", query, e)
        return lookup_failed_notice(query)

    if not places:
        return no_results_notice(query)

    vendors = [vendor_from_place(user_id=user_id, place=p, category=category, query=query) for p in places]
    inserted = store.add_vendors_if_missing(r=r, user_id=user_id, vendors=vendors)
    logger.info("search_vendors query=%r found=%d inserted=%d", query, len(places), len(inserted))
    return confirmation_text(places, added={v.name for v in inserted})
