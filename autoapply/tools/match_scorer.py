"""
Match scorers.

Score a job description against a parsed resume (0-100 plus reasons).
- LLMMatchScorer: DeepSeek chat model, memoized so identical inputs give
  the same answer
- KeywordMatchScorer: deterministic skill overlap, used without a model key
"""

import hashlib
import json
import logging
import re
import threading
from abc import ABC, abstractmethod

from cachetools import TTLCache
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_deepseek import ChatDeepSeek

from autoapply.config import settings
from autoapply.pipeline.errors import InvalidScoringInput, ScoringFailed
from autoapply.pipeline.models import MatchResult, ResumeProfile
from autoapply.utils.parser import parse_match_response

logger = logging.getLogger(__name__)

MATCH_PROMPT = """Analyze the match between a resume and a job description.

Return ONLY a JSON object (no markdown, no explanation):
{"score": 85, "reasons": ["reason 1", "reason 2"]}

Rules:
- score: integer 0-100 (100 = perfect fit)
- reasons: 2-5 short reasons, most important first, MAX 12 words each
- Judge skills, seniority and role fit only
"""

MAX_DESCRIPTION_CHARS = 6000


class MatchScorer(ABC):
    """Scores a job description against a resume."""

    @abstractmethod
    def score(self, resume: ResumeProfile, job_description: str) -> MatchResult:
        """Return a MatchResult; raise ScoringFailed if no score can be produced."""


class LLMMatchScorer(MatchScorer):
    """Remote model scorer with a bounded TTL cache."""

    def __init__(self, model=None, cache_ttl: int | None = None, cache_size: int = 1024):
        self._model = model
        # Shared by concurrent runs on worker threads
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl or settings.score_cache_ttl)
        self._lock = threading.Lock()

    def _get_model(self):
        if self._model is None:
            if not settings.deepseek_api_key:
                raise ValueError("DEEPSEEK_API_KEY not set")
            self._model = ChatDeepSeek(
                model=settings.deepseek_model,
                api_key=settings.deepseek_api_key,
                temperature=0,
            )
        return self._model

    @staticmethod
    def _cache_key(resume: ResumeProfile, job_description: str) -> str:
        payload = resume.model_dump_json() + "\n" + job_description
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def score(self, resume: ResumeProfile, job_description: str) -> MatchResult:
        if not job_description.strip():
            raise InvalidScoringInput("Job description is empty")

        key = self._cache_key(resume, job_description)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        messages = [
            SystemMessage(content=MATCH_PROMPT),
            HumanMessage(
                content=f"Resume: {json.dumps(resume.model_dump())}\n\n"
                f"Job Description: {job_description[:MAX_DESCRIPTION_CHARS]}"
            ),
        ]
        try:
            response = self._get_model().invoke(messages)
        except Exception as e:
            raise ScoringFailed(f"Match model error: {e}") from e

        parsed = parse_match_response(getattr(response, "content", "") or "")
        if parsed is None:
            raise ScoringFailed("Match model returned no usable score")

        result = MatchResult(score=parsed["score"], reasons=parsed["reasons"])
        with self._lock:
            self._cache[key] = result
        return result


class KeywordMatchScorer(MatchScorer):
    """Share of resume skills mentioned in the description."""

    def score(self, resume: ResumeProfile, job_description: str) -> MatchResult:
        if not resume.skills:
            raise InvalidScoringInput("Resume has no skills to match")

        text = job_description.lower()
        matched, missing = [], []
        for skill in resume.skills:
            pattern = r"(?<!\w)" + re.escape(skill.lower()) + r"(?!\w)"
            (matched if re.search(pattern, text) else missing).append(skill)

        score = round(100 * len(matched) / len(resume.skills))
        reasons = []
        if matched:
            reasons.append("Matched skills: " + ", ".join(matched))
        if missing:
            reasons.append("Missing skills: " + ", ".join(missing))
        return MatchResult(score=score, reasons=reasons)


def create_match_scorer() -> MatchScorer:
    """LLM scorer when a model key is configured, keyword overlap otherwise."""
    if settings.deepseek_api_key:
        return LLMMatchScorer()
    logger.warning("DEEPSEEK_API_KEY not set - using keyword match scorer")
    return KeywordMatchScorer()
