"""
External collaborators of the pipeline.

- discovery: discovery interface and the Tavily -> Brave chain
- tavily_search / brave_search: web search discovery clients
- match_scorer: resume/job match scoring
- notifier: completion and error notifications
"""

import autoapply.pipeline  # noqa: F401  load pipeline first to avoid a circular import
from autoapply.tools.discovery import DiscoveryChain, JobDiscoveryClient, create_discovery_client
from autoapply.tools.match_scorer import KeywordMatchScorer, LLMMatchScorer, MatchScorer, create_match_scorer
from autoapply.tools.notifier import Notifier, WebhookNotifier, create_notifier

__all__ = [
    "JobDiscoveryClient",
    "DiscoveryChain",
    "create_discovery_client",
    "MatchScorer",
    "LLMMatchScorer",
    "KeywordMatchScorer",
    "create_match_scorer",
    "Notifier",
    "WebhookNotifier",
    "create_notifier",
]
