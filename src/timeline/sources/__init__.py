"""Candidate sources for timeline generation.

Providers pull posts from the content store, one visibility origin each:
- PublicPostsProvider: public posts
- CirclePostsProvider: posts scoped to the viewer's circles
- GroupPostsProvider: posts scoped to the viewer's groups
- ConnectionPostsProvider: posts by the viewer's accepted connections
"""

from timeline.sources.base import ContentStore, SocialGraph
from timeline.sources.memory import (
    InMemoryContentStore,
    InMemorySocialGraph,
    in_memory_sources,
)
from timeline.sources.providers import (
    CirclePostsProvider,
    ConnectionPostsProvider,
    GroupPostsProvider,
    PublicPostsProvider,
    SourceProvider,
    default_providers,
)

__all__ = [
    # Collaborator interfaces
    "ContentStore",
    "SocialGraph",
    "InMemoryContentStore",
    "InMemorySocialGraph",
    "in_memory_sources",
    # Providers
    "SourceProvider",
    "PublicPostsProvider",
    "CirclePostsProvider",
    "GroupPostsProvider",
    "ConnectionPostsProvider",
    "default_providers",
]
