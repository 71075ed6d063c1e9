"""Game content adapters and the cache they share.

Adapters are invoked only on behalf of the current host (round start and
queue refills) and by the per-game challenge endpoints.
"""

from partyroom.content.cache import ContentCache
from partyroom.content.adapters import fetch_challenges, fallback_challenges

__all__ = ['ContentCache', 'fetch_challenges', 'fallback_challenges']
