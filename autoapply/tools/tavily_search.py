"""
Tavily discovery client.

Uses the Tavily API to search the web for job postings.
"""

import logging

from tavily import TavilyClient

from autoapply.config import settings
from autoapply.pipeline.errors import DiscoveryFailed, NoResults
from autoapply.pipeline.models import CandidateJob, JobPreferences
from autoapply.tools.discovery import JobDiscoveryClient, build_queries
from autoapply.utils.parser import parse_search_hit

logger = logging.getLogger(__name__)


class TavilyDiscoveryClient(JobDiscoveryClient):
    """Primary discovery via Tavily web search."""

    source_name = "tavily"

    def __init__(self, client: TavilyClient | None = None, max_results: int | None = None):
        self._client = client
        self.max_results = max_results or settings.max_search_results

    def _get_client(self) -> TavilyClient:
        """Get or create Tavily client (lazy - only when API key is set)."""
        if self._client is None:
            if not settings.tavily_api_key:
                raise DiscoveryFailed("TAVILY_API_KEY not set")
            self._client = TavilyClient(api_key=settings.tavily_api_key)
        return self._client

    def discover(self, preferences: JobPreferences) -> list[CandidateJob]:
        queries = build_queries(preferences)
        if not queries:
            raise NoResults("Job search keywords are required")

        client = self._get_client()
        jobs: list[CandidateJob] = []
        for query in queries:
            try:
                results = client.search(query=query, max_results=self.max_results, topic="general")
            except Exception as e:
                raise DiscoveryFailed(f"Tavily search error: {e}") from e

            for r in results.get("results", []):
                if not r.get("url"):
                    continue
                content = r.get("content", "") or ""
                hit = parse_search_hit(r.get("title", ""), content)
                jobs.append(
                    CandidateJob(
                        title=hit["title"] or "Unknown position",
                        company=hit["company"],
                        location=hit["location"],
                        description=content,
                        source_url=r["url"],
                    )
                )

        logger.info(f"Tavily returned {len(jobs)} results for {len(queries)} queries")
        if not jobs:
            raise NoResults()
        return jobs
