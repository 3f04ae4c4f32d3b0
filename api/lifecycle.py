import logging

from django.conf import settings

from .exceptions import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def valid_statuses(model):
    return [value for value, _label in model.STATUS_CHOICES]


def change_status(queryset, pk, new_status):
    """
    Set the status of the record `pk` within `queryset` and return it refreshed.

    The target must belong to the model's status enum. With
    STRICT_STATUS_TRANSITIONS on, the model's transition table is enforced too.
    Concurrent writers are not detected: the last write wins.
    """
    model = queryset.model
    allowed = valid_statuses(model)
    if new_status not in allowed:
        raise ValidationError({'status': [f"Status inválido. Use um de: {', '.join(allowed)}"]})

    record = queryset.filter(pk=pk).first()
    if record is None:
        raise NotFoundError()

    if getattr(settings, 'STRICT_STATUS_TRANSITIONS', False) and record.status != new_status:
        if new_status not in model.STATUS_TRANSITIONS.get(record.status, set()):
            raise InvalidTransitionError(
                f"Não é possível mudar de {record.status} para {new_status}."
            )

    previous = record.status
    record.status = new_status
    record.save(update_fields=['status', 'updated_at'])
    logger.info(f"{model.__name__} {pk} status {previous} -> {new_status}")
    return record
