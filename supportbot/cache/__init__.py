"""Cache package: backends, answer cache and chat history."""

from supportbot.cache.backend import CacheBackend, MemoryCacheBackend, RedisCacheBackend
from supportbot.cache.history import ConversationHistory, ConversationTurn
from supportbot.cache.response_cache import CachedAnswer, ResponseCache, make_cache_key, normalize_query

__all__ = [
    "CacheBackend",
    "CachedAnswer",
    "ConversationHistory",
    "ConversationTurn",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "ResponseCache",
    "make_cache_key",
    "normalize_query",
]
