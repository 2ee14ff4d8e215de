"""
Cached receivables summary.

Keys embed a generation number; bumping it invalidates every branch at
once without a key scan, so the same code works on Redis and LocMem.
A missing counter is reseeded from the clock, never from a constant, so
an evicted counter cannot come back to a generation that still has
summaries cached under it.
"""
import logging
import threading
import time
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

GENERATION_KEY = 'receivables_generation'
SUMMARY_KEY = 'receivables_summary'

_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily stop signal driven invalidation for bulk updates.
    Remember to call invalidate_receivables() after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _seed():
    return time.time_ns()


def _generation():
    generation = cache.get(GENERATION_KEY)
    if generation is None:
        cache.add(GENERATION_KEY, _seed(), None)
        generation = cache.get(GENERATION_KEY)
    return generation


def summary_cache_key(branch=None):
    return f"{SUMMARY_KEY}:{_generation()}:{branch or 'all'}"


def get_cached_summary(branch, compute):
    key = summary_cache_key(branch)
    data = cache.get(key)
    if data is not None:
        logger.debug(f"Cache HIT for {key}")
        return data
    logger.debug(f"Cache MISS for {key}")
    data = compute(branch)
    cache.set(key, data, settings.RECEIVABLES_CACHE_TTL)
    return data


def invalidate_receivables():
    try:
        cache.incr(GENERATION_KEY)
    except ValueError:
        cache.set(GENERATION_KEY, _seed(), None)
    except Exception as e:
        logger.warning(f"Could not invalidate receivables cache: {str(e)}")
