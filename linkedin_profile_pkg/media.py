import base64
import logging
from typing import Dict

import httpx

from .models import RawScrape

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
IMAGE_TIMEOUT_S = 10.0


async def to_data_uri(client: httpx.AsyncClient, url: str) -> str:
    """Download an image and return it as a ``data:`` URI; "" on any failure.

    LinkedIn CDN image URLs are signed and expire within days, so the site
    embeds the bytes instead of linking them.
    """
    if not url:
        return ""
    if url.startswith("data:"):
        return url
    try:
        async with client.stream("GET", url, timeout=IMAGE_TIMEOUT_S) as resp:
            if resp.status_code != 200:
                logger.warning("Failed to download image %s: status %d", url, resp.status_code)
                return ""
            data = bytearray()
            async for chunk in resp.aiter_bytes():
                data.extend(chunk)
                if len(data) > MAX_IMAGE_BYTES:
                    logger.warning("Image %s exceeds %d bytes, skipping", url, MAX_IMAGE_BYTES)
                    return ""
            content_type = resp.headers.get("content-type", "image/jpeg").split(";")[0]
    except httpx.HTTPError as e:
        logger.warning("Failed to download image %s: %s", url, e)
        return ""
    logger.info("Converted image to base64 data URI (%d bytes)", len(data))
    return f"data:{content_type};base64,{base64.b64encode(bytes(data)).decode('ascii')}"


async def inline_images(raw: RawScrape, client: httpx.AsyncClient | None = None) -> RawScrape:
    """Replace photo and logo URLs with data URIs. Same URL is fetched once."""
    own_client = client is None
    client = client or httpx.AsyncClient(follow_redirects=True)
    fetched: Dict[str, str] = {}

    async def convert(url: str) -> str:
        if url not in fetched:
            fetched[url] = await to_data_uri(client, url)
        return fetched[url]

    try:
        profile = raw.profile.model_copy(update={"photo_url": await convert(raw.profile.photo_url)})

        async def convert_entries(entries):
            out = []
            for e in entries:
                out.append(e.model_copy(update={"logo": await convert(e.logo)}) if e.logo else e)
            return out

        experience = await convert_entries(raw.experience)
        education = await convert_entries(raw.education)
    finally:
        if own_client:
            await client.aclose()
    return RawScrape(profile=profile, experience=experience, education=education, skills=raw.skills)

