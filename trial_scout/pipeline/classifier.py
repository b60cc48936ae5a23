"""Filter chain turning raw search hits into candidate campaign URLs.

Filter order:
  1. UrlDeduplicationFilter  : exact URL, first occurrence wins
  2. DomainAllowListFilter   : supported crowdfunding platforms only
  3. PlatformRuleFilter      : per-platform campaign URL shape
  4. ExcludePatternFilter    : generic non-campaign pages

Rejected hits are dropped without error; zero survivors is a normal outcome.
"""

import logging
import re
from collections.abc import Callable, Iterable
from urllib.parse import urlparse

from trial_scout.core.config import DEFAULT_DOMAINS
from trial_scout.core.schemas import CandidateURL, RawHit

logger = logging.getLogger(__name__)

# A filter is a callable that takes hits and returns a subset.
Filter = Callable[[list[RawHit]], list[RawHit]]

# Matched case-insensitively against the raw URL and against
# "<scheme>://<host><path>/" (trailing slash forced) plus "?<query>".
EXCLUDE_PATTERNS: tuple[str, ...] = (
    # search / discovery
    "/search/",
    "/s?",
    "?q=",
    "&q=",
    "/discover/",
    "/browse/",
    "/explore/",
    "/c/",
    "/category/",
    "/categories/",
    "/tags/",
    "/tag/",
    "/trending/",
    # help / info
    "://help.",
    "://support.",
    "/help/",
    "/helpcenter/",
    "/support/",
    "/faq/",
    "/about/",
    "/about-us/",
    "/how-it-works/",
    "/pricing/",
    "/fees/",
    "/blog/",
    "/press/",
    "/careers/",
    "/contact/",
    "/start/",
    "/create/",
    "/sign-up/",
    "/signup/",
    # legal
    "/terms/",
    "/privacy/",
    "/legal/",
    "/cookie-policy/",
    # auth
    "/login/",
    "/log-in/",
    "/signin/",
    "/sign-in/",
    "/register/",
    "/account/",
    "/manage/",
    "/dashboard/",
    # localized mirrors
    "/en-gb/",
    "/en-au/",
    "/en-ca/",
    "/en-ie/",
    "/de-de/",
    "/es-es/",
    "/fr-fr/",
    "/it-it/",
    "/nl-nl/",
    "/pt-pt/",
    "/pt-br/",
    "/es-mx/",
    # sitemaps / feeds / resources
    "sitemap",
    ".xml",
    "/rss/",
    "/feed/",
    # social-network non-donation paths
    "/share/",
    "/sharer",
    "facebook.com/groups/",
    "facebook.com/events/",
    "twitter.com/",
    "x.com/",
    "instagram.com/",
    "linkedin.com/",
)

# Top-level paths that are site pages rather than campaign slugs on
# platforms whose campaigns live at /<slug>.
RESERVED_SLUGS: frozenset[str] = frozenset({
    "about", "account", "blog", "campaigns", "careers", "contact", "create",
    "discover", "donate", "explore", "faq", "fees", "help", "home", "how-it-works",
    "login", "pricing", "privacy", "register", "search", "signin", "signup",
    "start", "support", "terms", "trending",
})

_SINGLE_SEGMENT = re.compile(r"^/([a-z0-9][a-z0-9_.-]*)/?$", re.IGNORECASE)


def _gofundme_rule(path: str) -> bool:
    return re.match(r"^/f/[^/]+/?$", path, re.IGNORECASE) is not None


def _single_slug_rule(path: str) -> bool:
    match = _SINGLE_SEGMENT.match(path)
    return match is not None and match.group(1).lower() not in RESERVED_SLUGS


def _plumfund_rule(path: str) -> bool:
    return re.match(r"^/([a-z-]+-)?crowdfunding/[^/]+/?$", path, re.IGNORECASE) is not None


# domain -> positive URL-path rule; domains without an entry fall back to
# the exclude patterns alone.
PLATFORM_RULES: dict[str, Callable[[str], bool]] = {
    "gofundme.com": _gofundme_rule,
    "givesendgo.com": _single_slug_rule,
    "fundly.com": _single_slug_rule,
    "plumfund.com": _plumfund_rule,
}


def match_platform(url: str, domains: Iterable[str]) -> str | None:
    """Return the supported domain the URL belongs to, or None."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return None
    for domain in domains:
        if host == domain or host.endswith(f".{domain}"):
            return domain
    return None


def _normalized(url: str) -> str:
    parsed = urlparse(url.strip())
    text = f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}/".lower()
    if parsed.query:
        text += f"?{parsed.query.lower()}"
    return text


class UrlDeduplicationFilter:
    """Keep the first hit for each exact URL."""

    def __call__(self, hits: list[RawHit]) -> list[RawHit]:
        seen: set[str] = set()
        result: list[RawHit] = []
        for hit in hits:
            if hit.url not in seen:
                seen.add(hit.url)
                result.append(hit)
        deduped = len(hits) - len(result)
        if deduped:
            logger.debug("UrlDeduplicationFilter: removed %d duplicates", deduped)
        return result


class DomainAllowListFilter:
    """Remove hits outside the supported platform domains."""

    def __init__(self, domains: Iterable[str]) -> None:
        self._domains = [d.lower().strip() for d in domains if d.strip()]

    def __call__(self, hits: list[RawHit]) -> list[RawHit]:
        result = [h for h in hits if match_platform(h.url, self._domains) is not None]
        removed = len(hits) - len(result)
        if removed:
            logger.debug("DomainAllowListFilter: removed %d off-platform hits", removed)
        return result


class PlatformRuleFilter:
    """Keep hits whose URL has the campaign shape of its platform."""

    def __init__(
        self,
        domains: Iterable[str],
        rules: dict[str, Callable[[str], bool]],
    ) -> None:
        self._domains = [d.lower().strip() for d in domains if d.strip()]
        self._rules = rules

    def __call__(self, hits: list[RawHit]) -> list[RawHit]:
        result = [h for h in hits if self._accepts(h.url)]
        removed = len(hits) - len(result)
        if removed:
            logger.debug("PlatformRuleFilter: removed %d non-campaign URLs", removed)
        return result

    def _accepts(self, url: str) -> bool:
        platform = match_platform(url, self._domains)
        if platform is None:
            return False
        rule = self._rules.get(platform)
        if rule is None:
            return True
        return rule(urlparse(url).path or "/")


class ExcludePatternFilter:
    """Remove hits whose URL contains any generic non-campaign pattern."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._patterns = [p.lower() for p in patterns if p]

    def __call__(self, hits: list[RawHit]) -> list[RawHit]:
        result = [h for h in hits if not self.is_excluded(h.url)]
        removed = len(hits) - len(result)
        if removed:
            logger.debug("ExcludePatternFilter: removed %d excluded URLs", removed)
        return result

    def is_excluded(self, url: str) -> bool:
        raw = url.lower()
        normalized = _normalized(url)
        return any(p in raw or p in normalized for p in self._patterns)


def run_filter_chain(hits: list[RawHit], filters: list[Filter]) -> list[RawHit]:
    """Apply filters in order, returning the surviving hits."""
    result = hits
    for f in filters:
        result = f(result)
    return result


class CandidateClassifier:
    """Dedupe and classify merged search hits into CandidateURLs."""

    def __init__(
        self,
        domains: Iterable[str] | None = None,
        platform_rules: dict[str, Callable[[str], bool]] | None = None,
        exclude_patterns: Iterable[str] | None = None,
    ) -> None:
        self._domains = [
            d.lower().strip() for d in (domains if domains is not None else DEFAULT_DOMAINS)
        ]
        rules = platform_rules if platform_rules is not None else PLATFORM_RULES
        patterns = exclude_patterns if exclude_patterns is not None else EXCLUDE_PATTERNS
        self._filters: list[Filter] = [
            UrlDeduplicationFilter(),
            DomainAllowListFilter(self._domains),
            PlatformRuleFilter(self._domains, rules),
            ExcludePatternFilter(patterns),
        ]

    def classify(self, hits: list[RawHit]) -> list[CandidateURL]:
        survivors = run_filter_chain(hits, self._filters)
        candidates = [
            CandidateURL(
                **hit.model_dump(),
                platform=match_platform(hit.url, self._domains) or "",
            )
            for hit in survivors
        ]
        logger.info("Classified %d hits into %d candidates", len(hits), len(candidates))
        return candidates
