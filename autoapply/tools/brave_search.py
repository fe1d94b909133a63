"""
Brave discovery client.

Uses the Brave Search API to find job postings. Backup for Tavily.
"""

import logging

import httpx

from autoapply.config import settings
from autoapply.pipeline.errors import DiscoveryFailed, NoResults
from autoapply.pipeline.models import CandidateJob, JobPreferences
from autoapply.tools.discovery import JobDiscoveryClient, build_queries
from autoapply.utils.parser import parse_search_hit

logger = logging.getLogger(__name__)

BRAVE_API_URL = "https://api.search.brave.com/res/v1/web/search"


class BraveDiscoveryClient(JobDiscoveryClient):
    """Backup discovery via Brave web search."""

    source_name = "brave"

    def __init__(self, http_client: httpx.Client | None = None, max_results: int | None = None):
        self._http_client = http_client
        self.max_results = max_results or settings.max_search_results

    def _search(self, client: httpx.Client, query: str) -> list[dict]:
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": settings.brave_api_key,
        }
        params = {"q": query, "count": self.max_results}

        try:
            response = client.get(BRAVE_API_URL, headers=headers, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise DiscoveryFailed(f"Brave search HTTP error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise DiscoveryFailed(f"Brave search error: {e}") from e

        return data.get("web", {}).get("results", [])

    def discover(self, preferences: JobPreferences) -> list[CandidateJob]:
        if not settings.brave_api_key and self._http_client is None:
            raise DiscoveryFailed("BRAVE_API_KEY not set")

        queries = build_queries(preferences)
        if not queries:
            raise NoResults("Job search keywords are required")

        jobs: list[CandidateJob] = []
        client = self._http_client or httpx.Client(timeout=settings.search_timeout)
        try:
            for query in queries:
                for r in self._search(client, query):
                    if not r.get("url"):
                        continue
                    description = r.get("description", "") or ""
                    hit = parse_search_hit(r.get("title", ""), description)
                    jobs.append(
                        CandidateJob(
                            title=hit["title"] or "Unknown position",
                            company=hit["company"],
                            location=hit["location"],
                            description=description,
                            source_url=r["url"],
                        )
                    )
        finally:
            if self._http_client is None:
                client.close()

        logger.info(f"Brave returned {len(jobs)} results for {len(queries)} queries")
        if not jobs:
            raise NoResults()
        return jobs
