"""
Job discovery interface.

Discovery clients turn a preference set into candidate jobs. They raise
DiscoveryFailed when the service errors and NoResults when it answers with
nothing, so the orchestrator can retry the first and stop on the second.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from autoapply.config import settings
from autoapply.pipeline.errors import DiscoveryFailed, NoResults
from autoapply.pipeline.models import CandidateJob, JobPreferences, normalize_company

logger = logging.getLogger(__name__)


def build_queries(preferences: JobPreferences) -> list[str]:
    """One search query per keyword, with location/remote hints."""
    queries = []
    for keyword in preferences.keywords:
        keyword = keyword.strip()
        if not keyword:
            continue
        query = f"{keyword} jobs"
        if preferences.remote:
            query += " remote"
        if preferences.location:
            query += f" in {preferences.location}"
        queries.append(query)
    return queries


def dedupe_jobs(jobs: Sequence[CandidateJob], limit: int | None = None) -> list[CandidateJob]:
    """Same URL, or same company + title = 1 entry. Keeps first occurrence."""
    seen_urls: set[str] = set()
    seen_keys: set[tuple[str, str]] = set()
    unique: list[CandidateJob] = []

    for job in jobs:
        url = job.source_url.rstrip("/")
        key = (normalize_company(job.company), job.title.strip().lower())
        if url in seen_urls or (job.company != "Unknown" and key in seen_keys):
            continue
        seen_urls.add(url)
        seen_keys.add(key)
        unique.append(job)
        if limit and len(unique) >= limit:
            break
    return unique


class JobDiscoveryClient(ABC):
    """Returns raw candidate jobs for a preference set."""

    source_name: str = "generic"

    @abstractmethod
    def discover(self, preferences: JobPreferences) -> list[CandidateJob]:
        """Return candidates; raise DiscoveryFailed or NoResults."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source_name={self.source_name!r})"


class DiscoveryChain(JobDiscoveryClient):
    """Queries each client in order and merges their results."""

    source_name = "chain"

    def __init__(self, clients: Sequence[JobDiscoveryClient], max_results: int | None = None):
        if not clients:
            raise ValueError("DiscoveryChain needs at least one client")
        self.clients = list(clients)
        self.max_results = max_results or settings.max_search_results

    def discover(self, preferences: JobPreferences) -> list[CandidateJob]:
        collected: list[CandidateJob] = []
        failures: list[str] = []

        for client in self.clients:
            try:
                collected.extend(client.discover(preferences))
            except NoResults:
                logger.info(f"{client.source_name} returned no results")
            except DiscoveryFailed as e:
                logger.warning(f"{client.source_name} discovery failed: {e}")
                failures.append(f"{client.source_name}: {e}")

            if len(collected) >= self.max_results:
                break

        if collected:
            return dedupe_jobs(collected, limit=self.max_results)
        if len(failures) == len(self.clients):
            raise DiscoveryFailed("Failed to fetch job listings (" + "; ".join(failures) + ")")
        raise NoResults()


def create_discovery_client() -> JobDiscoveryClient:
    """Discovery chain from configured API keys: Tavily first, Brave as backup."""
    from autoapply.tools.brave_search import BraveDiscoveryClient
    from autoapply.tools.tavily_search import TavilyDiscoveryClient

    clients: list[JobDiscoveryClient] = []
    if settings.tavily_api_key:
        clients.append(TavilyDiscoveryClient())
    if settings.brave_api_key:
        clients.append(BraveDiscoveryClient())
    if not clients:
        raise ValueError("No discovery API configured (set TAVILY_API_KEY or BRAVE_API_KEY)")
    return DiscoveryChain(clients)
