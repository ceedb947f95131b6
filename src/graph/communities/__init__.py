"""Community detection over the entity graph and the community store."""

from loreweave.graph.communities.index import CommunityIndex
from loreweave.graph.communities.models import Community, CommunityType

__all__ = ["Community", "CommunityIndex", "CommunityType"]
