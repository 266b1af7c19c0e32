"""Daily bill numbering: INV<YYYYMMDD><NNNN>."""

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..models import BillSequence


@transaction.atomic
def next_bill_number(*, when=None) -> str:
    """
    Issue the next bill number for the (local) day of ``when``.

    The day's ``BillSequence`` row is locked until the caller's transaction
    ends, so concurrent bills get distinct numbers. Numbers of cancelled
    bills are never handed out again.
    """
    day = timezone.localdate(when or timezone.now())

    # get_or_create retries the lookup if a concurrent insert wins
    BillSequence.objects.get_or_create(day=day)
    sequence = BillSequence.objects.select_for_update().get(day=day)
    sequence.last_value += 1
    sequence.save(update_fields=['last_value'])

    return f"{settings.BILLING_BILL_NUMBER_PREFIX}{day:%Y%m%d}{sequence.last_value:04d}"
