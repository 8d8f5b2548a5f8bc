"""
Artifact Quota CLI entry point.

Usage:
    python -m artifact_quota reclaim --limit 1GB --request-size 200MB --remove-direction oldest
"""

from .cli import main

if __name__ == "__main__":
    main()
