"""Typed failures raised by the scraper.

Callers decide whether to retry by looking at ``retryable``; anything that
needs a human (bad password, missing 2FA seed) is never retryable.
"""


class ScraperError(Exception):
    retryable = False


class ConfigurationError(ScraperError):
    """Credentials or profile URL missing; raised before a browser starts."""


class NavigationError(ScraperError):
    """Network or page-load failure, including an unreachable profile root."""
    retryable = True


class PageLoadTimeout(NavigationError):
    pass


class SessionProbeError(NavigationError):
    """Reserved for callers that probe a session directly.

    The authenticator never raises it: a probe that cannot reach an
    authenticated page routes to a fresh login instead.
    """


class AuthenticationError(ScraperError):
    """Base of the login failures; none of them is retryable."""


class CredentialsRejected(AuthenticationError):
    pass


class ChallengeRequired(AuthenticationError):
    pass


class ChallengeTimeout(AuthenticationError):
    pass


class ScrapeTimeout(ScraperError):
    retryable = True


class PartialExtractionWarning(ScraperError):
    """Logged, never raised out of the extractor: one field or section is empty."""

    def __init__(self, section: str, reason: str):
        super().__init__(f"{section}: {reason}")
        self.section = section
        self.reason = reason
