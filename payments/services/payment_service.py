import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from api.exceptions import ValidationError
from job.models import Job
from payments.models import Payment
from .mercadopago_service import MercadoPagoService

logger = logging.getLogger(__name__)

SETTLED_STATUSES = {Payment.STATUS_APPROVED, Payment.STATUS_REJECTED, Payment.STATUS_CANCELLED}


def is_exempt(company):
    exempt = {email.lower() for email in settings.PAYMENT_EXEMPT_EMAILS}
    return (company.email or '').lower() in exempt


def create_paid_job(company, job_fields):
    """
    Publish a job behind a checkout. Exempt companies get the job active right away;
    everyone else gets a paused job, a pending payment and a checkout URL.
    """
    if is_exempt(company):
        job = Job.objects.create(
            company=company,
            status=Job.STATUS_ACTIVE,
            payment_status=Payment.STATUS_APPROVED,
            **job_fields,
        )
        logger.info(f"Exempt company {company.company_id} published job {job.job_id} without payment")
        return {'job': job, 'payment': None, 'is_exempt': True, 'checkout_url': None, 'preference_id': None}

    amount = settings.JOB_POSTING_PRICE
    with transaction.atomic():
        job = Job.objects.create(
            company=company,
            status=Job.STATUS_PAUSED,
            payment_status=Payment.STATUS_PENDING,
            **job_fields,
        )
        payment = Payment.objects.create(company=company, job=job, amount=amount)

        preference = MercadoPagoService().create_preference(
            job_title=job.title,
            company=company,
            amount=amount,
            external_reference=payment.payment_id,
        )

        payment.preference_id = str(preference.get('id', ''))
        payment.processor_data = preference
        payment.save(update_fields=['preference_id', 'processor_data', 'updated_at'])

        job.payment = payment
        job.save(update_fields=['payment', 'updated_at'])

    logger.info(f"Job {job.job_id} awaiting payment {payment.payment_id}")
    return {
        'job': job,
        'payment': payment,
        'is_exempt': False,
        'checkout_url': preference.get('init_point'),
        'preference_id': payment.preference_id,
    }


def find_payment(processor_payment_id, processor_data):
    payment = Payment.objects.filter(processor_payment_id=str(processor_payment_id)).first()
    if payment:
        return payment

    reference = str(processor_data.get('external_reference') or '')
    if reference.isdigit():
        return Payment.objects.filter(payment_id=int(reference)).first()
    return None


def handle_webhook(payload):
    """Apply a processor notification to the matching payment and its job."""
    if not isinstance(payload, dict) or payload.get('type') != 'payment':
        return {'received': True, 'handled': False}

    processor_payment_id = (payload.get('data') or {}).get('id')
    if not processor_payment_id:
        raise ValidationError({'data': ['Identificador do pagamento ausente.']})

    processor_data = MercadoPagoService().get_payment(processor_payment_id)
    new_status = processor_data.get('status')
    logger.info(f"Payment {processor_payment_id} reported as {new_status}")

    if new_status not in SETTLED_STATUSES:
        return {'received': True, 'handled': False}

    payment = find_payment(processor_payment_id, processor_data)
    if payment is None:
        logger.warning(f"No local payment matches processor payment {processor_payment_id}")
        return {'received': True, 'handled': False}

    if payment.status == new_status:
        return {'received': True, 'handled': False}
    if new_status not in Payment.STATUS_TRANSITIONS[payment.status]:
        logger.warning(f"Ignoring {new_status} for payment {payment.payment_id} already {payment.status}")
        return {'received': True, 'handled': False}

    now = timezone.now()
    with transaction.atomic():
        payment.status = new_status
        payment.processor_payment_id = str(processor_payment_id)
        payment.processor_data = processor_data
        if new_status == Payment.STATUS_APPROVED:
            payment.paid_at = now
        payment.save()

        if payment.job_id:
            job_updates = {'payment_status': new_status, 'updated_at': now}
            if new_status == Payment.STATUS_APPROVED:
                job_updates['status'] = Job.STATUS_ACTIVE
            Job.objects.filter(pk=payment.job_id).update(**job_updates)

    if new_status == Payment.STATUS_APPROVED:
        logger.info(f"Job {payment.job_id} activated after payment approval")
    return {'received': True, 'handled': True, 'status': new_status}
