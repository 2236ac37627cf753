"""
Cache utilities for the Gameweek Predictor
Caches leaderboard responses and clears them when scoring inputs change
"""

import functools

from flask import current_app, request

from predictor import cache

LEADERBOARD_PREFIXES = (
    "league_standings",
    "overall_leaderboard",
    "last_round_leaderboard",
    "form_leaderboard",
    "user_stats",
)


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path and arguments"""
    path = request.path
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=300, key_prefix="view"):
    """
    Decorator for caching route responses

    Only successful responses are cached so a transient 404 is not pinned.

    Args:
        timeout: Cache timeout in seconds (default 5 minutes)
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(*args, **kwargs)
            if isinstance(result, tuple) and len(result) > 1 and result[1] != 200:
                return result

            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate cache keys matching a pattern

    Args:
        pattern: Pattern to match cache keys
    """
    try:
        # SimpleCache and NullCache cannot delete by pattern
        cache.clear()
        current_app.logger.info(f"Cache cleared for pattern: {pattern}")
    except Exception as e:
        current_app.logger.error(f"Failed to clear cache: {e}")


def invalidate_leaderboards(reason=""):
    """Drop cached standings and leaderboards after results or submissions change"""
    invalidate_cache_pattern(f"leaderboards ({reason})" if reason else "leaderboards")


def get_cache_stats():
    """Get cache statistics"""
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
        "prefixes": list(LEADERBOARD_PREFIXES),
    }
