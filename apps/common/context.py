# common/context.py

"""
Thread-local caller context.

The engine never authenticates anybody. The gateway (or a management
command) hands over an already-authorized caller id and role. Those are
kept here for the lifetime of the request so models can stamp
``created_by_id``/``updated_by_id`` and services can attribute history
entries.
"""

from threading import local
import logging

logger = logging.getLogger(__name__)

# Thread-local storage
_thread_locals = local()


def set_caller_context(caller_id=None, role=None, request_path=None):
    """
    Set the current caller context for this thread.

    Args:
        caller_id: Pre-validated id of the user performing the operation
        role: Pre-validated role of that user (e.g. 'admin', 'teacher')
        request_path: Path of the originating request, if any
    """
    _thread_locals.caller_context = {
        'caller_id': str(caller_id) if caller_id else None,
        'role': role or None,
        'request_path': request_path or '',
    }

    logger.debug(f"Set caller context: caller={caller_id}, role={role}")


def get_caller_context():
    """
    Get the current caller context for this thread.

    Returns:
        dict or None: caller_id, role and request_path
    """
    return getattr(_thread_locals, 'caller_context', None)


def get_caller_id(default=None):
    """Shortcut for the current caller id."""
    context = get_caller_context()
    if context and context.get('caller_id'):
        return context['caller_id']
    return default


def clear_caller_context():
    """Clear the caller context for this thread."""
    if hasattr(_thread_locals, 'caller_context'):
        delattr(_thread_locals, 'caller_context')
        logger.debug("Cleared caller context")


# ============================================================================
# CONTEXT MANAGER
# ============================================================================

class CallerContext:
    """
    Context manager for temporarily setting the caller.

    Used by management commands and batch sweeps that run outside a request.

    Example:
        with CallerContext(caller_id='system', role='admin'):
            SemesterManagementService.progress_validated_students()
    """

    def __init__(self, caller_id=None, role=None):
        self.context = {
            'caller_id': str(caller_id) if caller_id else None,
            'role': role or None,
            'request_path': '',
        }
        self.previous_context = None

    def __enter__(self):
        self.previous_context = get_caller_context()
        _thread_locals.caller_context = self.context
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context:
            _thread_locals.caller_context = self.previous_context
        else:
            clear_caller_context()
