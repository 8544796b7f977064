# common/models.py

"""
Base model for the semester progression engine.

Every persistent entity carries:
- a UUID primary key
- created/updated timestamps
- the id of the caller who created and last updated it, taken from the
  thread-local caller context
- an optional change reason
"""

from django.db import models
from django.utils import timezone
import uuid
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# BASE MODEL
# =============================================================================

class BaseModel(models.Model):
    """
    Abstract base model with an audit trail.

    ``created_by_id``/``updated_by_id`` are plain strings rather than foreign
    keys: callers are resolved by the surrounding user service and only their
    ids are recorded here.
    """

    # Core identification
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField(
        "Created At",
        blank=True,
        editable=False,
        db_index=True,
        help_text="When this record was created"
    )
    updated_at = models.DateTimeField(
        "Updated At",
        blank=True,
        editable=False,
        db_index=True,
        help_text="When this record was last updated"
    )

    created_by_id = models.CharField(
        "Created By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of the caller who created this record"
    )
    updated_by_id = models.CharField(
        "Updated By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of the caller who last updated this record"
    )

    change_reason = models.CharField(
        "Change Reason",
        max_length=255,
        blank=True,
        null=True,
        help_text="Explanation for why this change was made"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Set timestamps and populate the audit fields from the caller context.
        """
        from common.context import get_caller_context

        is_new = self._state.adding
        now = timezone.now()

        if is_new:
            # Only set if not already provided (respects manual override)
            if not self.created_at:
                self.created_at = now
            if not self.updated_at:
                self.updated_at = now
        else:
            self.updated_at = now

        context = get_caller_context()

        if context:
            caller_id = context.get('caller_id')
            if caller_id:
                if is_new and not self.created_by_id:
                    self.created_by_id = caller_id
                self.updated_by_id = caller_id
        elif is_new:
            logger.debug(
                f"No caller context available when creating {self.__class__.__name__}. "
                f"Audit fields will not be populated."
            )

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'updated_at', 'updated_by_id'}

        return super().save(*args, **kwargs)

    def get_audit_trail(self):
        """
        Get audit information for this record.

        Returns:
            dict: Audit trail information
        """
        return {
            'created_at': self.created_at,
            'created_by_id': self.created_by_id,
            'updated_at': self.updated_at,
            'updated_by_id': self.updated_by_id,
            'change_reason': self.change_reason,
        }
