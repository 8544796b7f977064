# common/utils.py

import math
import time
import logging

from django.core.exceptions import ValidationError

from common.conf import get_setting
from common.exceptions import NotFound

logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUP HELPERS
# =============================================================================

def resolve_instance(model, value, label=None):
    """
    Accept either a model instance or a primary key and return the instance.

    Raises:
        NotFound: if the key does not resolve (malformed UUIDs included)
    """
    label = label or model._meta.verbose_name.title()

    if isinstance(value, model):
        return value

    if value in (None, ''):
        raise NotFound(f"{label} not found")

    try:
        return model.objects.get(pk=value)
    except (model.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"{label} {value} not found") from None


# =============================================================================
# BATCH HELPERS
# =============================================================================

def chunked(items, size=None):
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    size = size or get_setting('BATCH_SIZE')
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


def pause_between_chunks():
    """Short pause between chunks to bound load on the store."""
    pause = get_setting('BATCH_PAUSE_SECONDS')
    if pause:
        time.sleep(pause)


# =============================================================================
# NUMBERS
# =============================================================================

def round_half_up(value):
    """Round a non-negative number to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def clamp_percentage(value):
    """Clamp a percentage into [0, 100]."""
    return max(0.0, min(100.0, float(value)))
