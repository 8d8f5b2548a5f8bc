"""
Remote collaborators.

Components:
    - github: GitHub Actions REST client (runs, artifacts, lookup and delete by id)
    - resilient: retry/backoff/pagination wrapper used for every remote call
"""

from .github import ActionsClient, GitHubActionsClient
from .resilient import ResilientClient

__all__ = [
    "ActionsClient",
    "GitHubActionsClient",
    "ResilientClient",
]
