import json
import logging
import os
from typing import Any

from .config import APP_VERSION
from .models import EducationEntry, ExperienceEntry, GeneratedEnvelope, ProfileRecord, ScrapeResult

logger = logging.getLogger(__name__)

SOURCE_LINKEDIN = "linkedin"


def build_envelope(result: ScrapeResult, source: str = SOURCE_LINKEDIN, version: str = APP_VERSION) -> GeneratedEnvelope:
    """Wrap a result with generation time, source tag and schema version.

    The static site's API layer reads ``data`` and ignores the rest, so the
    payload shape must not change between versions without bumping it.
    """
    return GeneratedEnvelope(source=source, version=version, data=result.model_dump(mode="json"))


def placeholder_result() -> ScrapeResult:
    """Stand-in data used when a scrape fails, so the site still renders."""
    return ScrapeResult(
        profile=ProfileRecord(
            name="Your Name",
            headline="Software Engineer",
            location="Vienna, Austria",
            summary="LinkedIn data requires manual configuration or authentication. See README for setup instructions.",
        ),
        experience=(
            ExperienceEntry(
                title="Software Engineer",
                company="Tech Company",
                location="Remote",
                start_date="2020-01",
                end_date="Present",
                description="Building awesome software",
            ),
        ),
        education=(
            EducationEntry(
                school="University",
                degree="Bachelor of Science",
                field="Computer Science",
                start_date="2014",
                end_date="2018",
            ),
        ),
        skills=("Go", "TypeScript", "Docker", "Kubernetes"),
    )


def write_envelope(envelope: GeneratedEnvelope, output_dir: str, filename: str | None = None) -> str:
    """Write the envelope as indented JSON and return the path."""
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename or f"{envelope.source}.json")
    payload: Any = envelope.model_dump(mode="json")
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)
    logger.info("Saved: %s", path)
    return path
