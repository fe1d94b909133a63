"""
AutoApply Backend.

Core components:
- pipeline: run orchestrator, cooldown, backoff, submission policy, status
- tools: job discovery, match scoring, notifications
- db: profile store, runs, applications and follow-ups
- api: FastAPI endpoints
"""
