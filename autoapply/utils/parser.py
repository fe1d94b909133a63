"""
Parsing helpers for external service output.

- extract_json: tolerant JSON extraction from model replies
  (clean JSON, fenced blocks, JSON embedded in prose)
- parse_match_response: score/reasons from a match-scoring reply
- parse_search_hit: job title/company/location from a web search hit
"""

import json
import re
from typing import Any


def extract_json(text: str) -> dict | list | None:
    """
    Extract JSON from a model reply using several strategies.

    Args:
        text: Raw reply text

    Returns:
        Parsed JSON (dict or list) or None if nothing parses
    """
    if not text or not text.strip():
        return None

    for strategy in (_try_clean_json, _try_fenced, _try_find_json_bounds):
        result = strategy(text)
        if result is not None:
            return result
    return None


def _try_clean_json(text: str) -> dict | list | None:
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        return None


def _try_fenced(text: str) -> dict | list | None:
    """```json ... ``` first, then any fenced block."""
    for pattern in (r"```json\s*([\s\S]*?)\s*```", r"```(?:\w*)\s*([\s\S]*?)\s*```"):
        for match in re.findall(pattern, text, re.IGNORECASE):
            try:
                return json.loads(match.strip())
            except json.JSONDecodeError:
                continue
    return None


def _try_find_json_bounds(text: str) -> dict | list | None:
    """Find the first balanced object or array in the text."""
    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = text.find(open_char)
        if start == -1:
            continue
        candidate = _extract_balanced(text, start, open_char, close_char)
        if candidate:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue
    return None


def _extract_balanced(text: str, start: int, open_char: str, close_char: str) -> str | None:
    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start:], start):
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def parse_match_response(text: str) -> dict | None:
    """
    Parse a match-scoring reply.

    Accepts {"score": 85, "reasons": [...]} and common variants
    ("match_score", "matchScore", a single "reason" string, "85%").

    Returns:
        {"score": float clamped to 0..100, "reasons": list[str]} or None
    """
    data = extract_json(text)
    if not isinstance(data, dict):
        return None

    raw_score = data.get("score", data.get("match_score", data.get("matchScore")))
    score = _coerce_score(raw_score)
    if score is None:
        return None

    reasons = data.get("reasons") or data.get("match_reasons") or data.get("reason") or []
    if isinstance(reasons, str):
        reasons = [reasons]

    return {
        "score": min(100.0, max(0.0, score)),
        "reasons": [str(r).strip() for r in reasons if str(r).strip()],
    }


def _coerce_score(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value)
        if match:
            return float(match.group())
    return None


# "Senior Engineer at Acme", "Senior Engineer - Acme | LinkedIn", "Acme hiring Senior Engineer"
_SITE_SUFFIX = re.compile(r"\s*[|\-–]\s*(?:LinkedIn|Indeed(?:\.com)?|Glassdoor|Lever|Greenhouse)\s*$", re.IGNORECASE)
_AT_PATTERN = re.compile(r"^(?P<title>.+?)\s+at\s+(?P<company>.+)$", re.IGNORECASE)
_HIRING_PATTERN = re.compile(r"^(?P<company>.+?)\s+(?:is\s+)?hiring\s+(?:an?\s+)?(?P<title>.+)$", re.IGNORECASE)
_DASH_PATTERN = re.compile(r"^(?P<title>.+?)\s+[-–|]\s+(?P<company>[^-–|]+)$")


def parse_search_hit(title: str, content: str = "") -> dict:
    """
    Split a search-result title into job title and company.

    Returns dict with: title, company, location
    """
    cleaned = _SITE_SUFFIX.sub("", (title or "").strip())
    job_title, company = cleaned, "Unknown"

    for pattern in (_AT_PATTERN, _HIRING_PATTERN, _DASH_PATTERN):
        m = pattern.match(cleaned)
        if m:
            job_title = m.group("title").strip()
            company = m.group("company").strip()
            break

    return {
        "title": job_title,
        "company": company,
        "location": normalize_location(f"{title} {content}"),
    }


def normalize_location(loc: Any) -> str:
    """Normalize location to: remote, hybrid, onsite, or unknown."""
    if not loc:
        return "unknown"

    loc_str = str(loc).lower()
    if re.search(r"\bremote\b", loc_str):
        return "remote"
    if re.search(r"\bhybrid\b", loc_str):
        return "hybrid"
    if re.search(r"\b(?:onsite|on-site|in office)\b", loc_str):
        return "onsite"
    return "unknown"
