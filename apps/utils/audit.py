# utils/audit.py

import logging

audit_logger = logging.getLogger("definition_audit")
logger = logging.getLogger(__name__)


def log_definition_change(entity_type, entity, changes=None, impact_summary='', action='UPDATE'):
    """
    Record definition edits in DefinitionChangeLog.

    A failure to log never blocks the write that triggered it.

    Args:
        entity_type (str): e.g. 'class', 'section', 'subject', 'fee_type'
        entity: The changed model instance (its school owns the log rows)
        changes (dict, optional): {field: {'old': ..., 'new': ...}} as returned
            by TimeStampedModel.tracked_changes()
        impact_summary (str, optional): Human readable consequence of the change
        action (str): CREATE, UPDATE or DELETE; CREATE/DELETE log a single row
    """
    try:
        from django.db import transaction
        from utils.context import get_current_user_id
        from utils.models import DefinitionChangeLog

        user_id = get_current_user_id()
        entity_id = entity.pk
        school_id = getattr(entity, 'school_id', None)
        rows = []

        if changes:
            for field_name, values in changes.items():
                rows.append(DefinitionChangeLog(
                    entity_type=entity_type,
                    school_id=school_id,
                    entity_id=str(entity_id),
                    field_name=field_name,
                    old_value=values.get('old'),
                    new_value=values.get('new'),
                    changed_by=user_id,
                    impact_summary=impact_summary,
                ))
        elif action in ('CREATE', 'DELETE'):
            rows.append(DefinitionChangeLog(
                entity_type=entity_type,
                school_id=school_id,
                entity_id=str(entity_id),
                field_name=action.lower(),
                changed_by=user_id,
                impact_summary=impact_summary,
            ))

        if rows:
            # Savepoint: a failed insert must not abort the caller's transaction
            with transaction.atomic():
                DefinitionChangeLog.objects.bulk_create(rows)
            audit_logger.info(
                f"{action} {entity_type}:{entity_id} by {user_id or 'system'} "
                f"({len(rows)} field change(s))"
            )

    except Exception as e:
        logger.error(f"Error logging definition change for {entity_type}:{getattr(entity, 'pk', None)}: {e}", exc_info=True)
