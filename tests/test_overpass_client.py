from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from bride_buddy.infra.overpass_client import (
    PlaceLookupError,
    build_query,
    format_address,
    place_from_element,
    search_places,
)

URL = "http://overpass.test/api/interpreter"


def test_build_query_is_radius_bounded_and_case_insensitive() -> None:
    q = build_query(name="Sarah's Studio", latitude=40.7, longitude=-74.0, radius_km=50, limit=5)
    assert '["name"~"Sarah\'s Studio",i]' in q
    assert "(around:50000,40.7,-74.0)" in q
    assert q.endswith("out center 5;")


def test_build_query_escapes_regex_and_quotes() -> None:
    q = build_query(name='A.B "Best" (NYC)', latitude=0, longitude=0, radius_km=1, limit=5)
    assert r'A\\.B \"Best\" \\(NYC\\)' in q


def test_address_is_assembled_from_components() -> None:
    tags = {
        "addr:housenumber": "12",
        "addr:street": "Main St",
        "addr:city": "Springfield",
        "addr:state": "IL",
        "addr:postcode": "62701",
    }
    assert format_address(tags) == "12 Main St, Springfield, IL 62701"
    assert format_address({}) is None


def test_place_normalization_prefers_contact_fallbacks() -> None:
    place = place_from_element(
        {"tags": {"name": "Bloom", "shop": "florist", "contact:phone": "555-0100", "contact:website": "https://bloom.test"}}
    )
    assert place is not None
    assert place.phone == "555-0100"
    assert place.website == "https://bloom.test"
    assert place.place_type == "florist"
    assert place_from_element({"tags": {"shop": "florist"}}) is None


@pytest.mark.asyncio
async def test_search_posts_query_and_caps_results() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["data"] = parse_qs(request.content.decode())["data"][0]
        elements = [{"type": "node", "tags": {"name": f"Studio {i}"}} for i in range(8)]
        elements.insert(0, {"type": "node", "tags": {}})
        return httpx.Response(200, json={"elements": elements})

    places = await search_places(
        name="Studio",
        latitude=1.0,
        longitude=2.0,
        radius_km=10,
        limit=5,
        url=URL,
        timeout_s=5,
        transport=httpx.MockTransport(handler),
    )

    assert "(around:10000,1.0,2.0)" in seen["data"]
    assert [p.name for p in places] == [f"Studio {i}" for i in range(5)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(504, text="gateway timeout"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"remark": "no elements"}),
    ],
)
async def test_search_failures_raise_lookup_error(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(PlaceLookupError):
        await search_places(
            name="x", latitude=0, longitude=0, radius_km=1, limit=5, url=URL, timeout_s=5,
            transport=httpx.MockTransport(handler),
        )


@pytest.mark.asyncio
async def test_network_error_raises_lookup_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(PlaceLookupError):
        await search_places(
            name="x", latitude=0, longitude=0, radius_km=1, limit=5, url=URL, timeout_s=5,
            transport=httpx.MockTransport(handler),
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(("timeout_s", "expected"), [(0.5, "[timeout:1]"), (2.2, "[timeout:3]"), (25, "[timeout:25]")])
async def test_server_timeout_rounds_up_to_whole_seconds(timeout_s: float, expected: str) -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["data"] = parse_qs(request.content.decode())["data"][0]
        return httpx.Response(200, json={"elements": []})

    await search_places(
        name="x", latitude=0, longitude=0, radius_km=1, limit=5, url=URL, timeout_s=timeout_s,
        transport=httpx.MockTransport(handler),
    )

    assert seen["data"].startswith(f"[out:json]{expected};")
