"""LinkedIn profile scraper package.

Small modules behind one orchestrator (``service.ProfileScraper``): a cached
session store, a login state machine with TOTP support, an extractor built
from ordered strategies, and a normalizer that turns raw page text into
canonical records.
"""
