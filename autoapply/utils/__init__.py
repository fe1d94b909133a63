"""Utility modules."""

from .parser import extract_json, normalize_location, parse_match_response, parse_search_hit

__all__ = ["extract_json", "parse_match_response", "parse_search_hit", "normalize_location"]
