#!/usr/bin/env python3
"""
LinkedIn Profile Scraper - data generation CLI

Logs into LinkedIn with the account from the environment, scrapes the
configured profile and writes ``linkedin.json`` for the portfolio site.
When anything goes wrong a placeholder file is written instead, so the
other data sources still get generated.

Environment:
    LINKEDIN_EMAIL, LINKEDIN_PASSWORD   login pair (required)
    LINKEDIN_TOTP_SECRET                base32 seed for the 2FA challenge
    LINKEDIN_PROFILE_URL                profile to scrape

Usage:
    python scraper.py [OPTIONS]

Example:
    python scraper.py --output data/generated --debug
    python scraper.py --cookies cookies.json --headless false
"""

import argparse
import asyncio
import logging
import sys

from linkedin_profile_pkg import scraper_logging
from linkedin_profile_pkg.config import DATA_DIR, HEADLESS, load_credentials
from linkedin_profile_pkg.cookies_auth import load_cookies_file
from linkedin_profile_pkg.errors import ScraperError
from linkedin_profile_pkg.models import ScrapeResult
from linkedin_profile_pkg.response import build_envelope, placeholder_result, write_envelope
from linkedin_profile_pkg.service import ProfileScraper

logger = logging.getLogger("scraper")


async def generate(args: argparse.Namespace) -> tuple[ScrapeResult, bool]:
    """Return the result to write and whether it is real data."""
    scraper = None
    try:
        scraper = ProfileScraper(
            credentials=load_credentials(args.profile_url),
            headless=args.headless,
            debug=args.debug,
        )
        if args.cookies:
            scraper.seed_session(load_cookies_file(args.cookies))
        if args.no_cache:
            result = await scraper.scrape_with_retry()
        else:
            result = await scraper.get_cached()
    except ScraperError as e:
        logger.error("LinkedIn scrape failed (%s): %s", type(e).__name__, e)
        if args.debug and scraper is not None:
            logger.info("Debug tags: %s", ", ".join(scraper.debug_tags))
        logger.warning("Writing placeholder data")
        return placeholder_result(), False
    if args.debug:
        logger.info("Debug tags: %s", ", ".join(scraper.debug_tags))
    return result, True


def main():
    parser = argparse.ArgumentParser(
        description="Scrape a LinkedIn profile into linkedin.json",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --output data/generated --debug
  %(prog)s --profile-url https://www.linkedin.com/in/johndoe/ --no-cache
  %(prog)s --cookies cookies.json --headless false
        """
    )
    parser.add_argument(
        "--output",
        "-o",
        default=DATA_DIR,
        help=f"Output directory for linkedin.json (default: {DATA_DIR})"
    )
    parser.add_argument(
        "--profile-url",
        help="LinkedIn profile URL to scrape (default: LINKEDIN_PROFILE_URL)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Save a screenshot and HTML on failure and log the debug tags"
    )
    parser.add_argument(
        "--headless",
        type=lambda x: x.lower() in ("true", "1", "yes"),
        default=HEADLESS,
        help="Run browser in headless mode (default: true)"
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore a cached result and scrape now"
    )
    parser.add_argument(
        "--cookies",
        help="Path to an exported cookies.json used to seed the saved session"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()
    scraper_logging.init_logging("DEBUG" if args.verbose else None)

    try:
        result, real = asyncio.run(generate(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)

    path = write_envelope(build_envelope(result), args.output)
    logger.info("LinkedIn data written to %s", path)
    sys.exit(0 if real else 1)


if __name__ == "__main__":
    main()
