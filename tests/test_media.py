from __future__ import annotations

import base64

import httpx
import pytest

from linkedin_profile_pkg.media import MAX_IMAGE_BYTES, inline_images, to_data_uri
from linkedin_profile_pkg.models import ProfileRecord, RawEntry, RawScrape

PHOTO = "https://media.licdn.com/dms/image/photo.jpg"
LOGO = "https://media.licdn.com/dms/image/logo.png"


def _client(hits):
    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(str(request.url))
        if request.url.path.endswith("photo.jpg"):
            return httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})
        if request.url.path.endswith("logo.png"):
            return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png; charset=binary"})
        if request.url.path.endswith("huge.png"):
            return httpx.Response(200, content=b"0" * (MAX_IMAGE_BYTES + 1))
        return httpx.Response(403)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_to_data_uri():
    async with _client([]) as client:
        uri = await to_data_uri(client, LOGO)
        assert uri == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()
        assert await to_data_uri(client, "https://media.licdn.com/expired.jpg") == ""
        assert await to_data_uri(client, "https://media.licdn.com/huge.png") == ""
        assert await to_data_uri(client, "") == ""
        assert await to_data_uri(client, "data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"


@pytest.mark.asyncio
async def test_inline_images_fetches_each_url_once():
    hits = []
    raw = RawScrape(
        profile=ProfileRecord(name="Jane Doe", photo_url=PHOTO),
        experience=[
            RawEntry(primary="Engineer", secondary="Acme", logo=LOGO),
            RawEntry(primary="Lead", secondary="Acme", logo=LOGO),
            RawEntry(primary="Intern", secondary="Globex"),
        ],
    )
    async with _client(hits) as client:
        out = await inline_images(raw, client)

    assert out.profile.photo_url.startswith("data:image/jpeg;base64,")
    assert out.experience[0].logo.startswith("data:image/png;base64,")
    assert out.experience[1].logo == out.experience[0].logo
    assert out.experience[2].logo == ""
    assert hits.count(LOGO) == 1
