# fees/signals.py

"""
Fee signal handlers

- Installment status derived from its amounts on save
- StudentFee aggregate re-derived when an installment is saved or deleted
- StudentFee rows protected from deletion while installments exist
"""

from django.core.exceptions import ValidationError
from django.db.models.signals import post_delete, post_save, pre_delete, pre_save
from django.dispatch import receiver
import logging

from fees.aggregation import derive_status, keep_overdue

logger = logging.getLogger(__name__)


def _refresh_aggregate(installment):
    from fees.services import FeeService
    from students.models import Student

    student = Student.all_objects.filter(pk=installment.student_id).first()
    if student is None:
        return
    FeeService.recompute_for(student, installment.academic_year, create=False)


@receiver(pre_save, sender='fees.FeeInstallment')
def fee_installment_pre_save(sender, instance, **kwargs):
    instance.status = keep_overdue(
        instance.status, derive_status(instance.paid_amount, instance.amount)
    )


@receiver(post_save, sender='fees.FeeInstallment')
def fee_installment_post_save(sender, instance, created, **kwargs):
    if kwargs.get('raw'):
        return
    _refresh_aggregate(instance)
    logger.debug(f"Refreshed fee aggregate after saving installment {instance.pk}")


@receiver(post_delete, sender='fees.FeeInstallment')
def fee_installment_post_delete(sender, instance, **kwargs):
    _refresh_aggregate(instance)
    logger.debug(f"Refreshed fee aggregate after deleting installment {instance.pk}")


@receiver(pre_delete, sender='fees.StudentFee')
def student_fee_pre_delete(sender, instance, origin=None, **kwargs):
    # Deleting the student removes its installments in the same cascade
    origin_model = getattr(origin, 'model', None) or type(origin)
    if origin_model is not sender:
        return
    if instance.installments().exists():
        raise ValidationError(
            "A student fee record cannot be deleted while installments exist for that year."
        )
