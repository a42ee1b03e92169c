import asyncio
import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, HTTPException

from linkedin_profile_pkg import scraper_logging
from linkedin_profile_pkg.config import APP_VERSION, DATA_AUTO_REFRESH
from linkedin_profile_pkg.errors import ConfigurationError, ScraperError
from linkedin_profile_pkg.loader import DataLoader, DataNotFound
from linkedin_profile_pkg.response import build_envelope, write_envelope
from linkedin_profile_pkg.service import ProfileScraper

logger = logging.getLogger("app")

_loader = DataLoader()


def get_loader() -> DataLoader:
    return _loader


def get_scraper() -> ProfileScraper:
    return ProfileScraper()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scraper_logging.init_logging()
    task = None
    if DATA_AUTO_REFRESH:
        task = asyncio.create_task(_loader.run_auto_refresh())
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


app = FastAPI(title="LinkedIn profile data", version=APP_VERSION, lifespan=lifespan)


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/linkedin")
async def get_linkedin(loader: DataLoader = Depends(get_loader)):
    try:
        envelope = loader.load_envelope("linkedin")
    except DataNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=500, detail=f"Invalid data file: {e}")
    return envelope.data


@app.post("/scrape/linkedin")
async def scrape_linkedin(
    loader: DataLoader = Depends(get_loader),
    scraper: ProfileScraper = Depends(get_scraper),
):
    """Run a fresh scrape and replace the served linkedin.json."""
    try:
        result = await scraper.refresh()
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScraperError as e:
        logger.error("Scrape failed (%s): %s", type(e).__name__, e)
        raise HTTPException(
            status_code=502,
            detail={"error": type(e).__name__, "message": str(e), "debug": scraper.debug_tags},
        )
    envelope = build_envelope(result)
    write_envelope(envelope, loader.data_dir)
    return {
        "found": True,
        "generated_at": envelope.generated_at,
        "experience": len(result.experience),
        "education": len(result.education),
        "skills": len(result.skills),
        "debug": scraper.debug_tags,
    }


if __name__ == "__main__":
    uvicorn.run(
        "app:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
    )
