import json
import logging

import requests
from django.conf import settings

from api.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class MercadoPagoService:
    def __init__(self, access_token=None, api_url=None, timeout=None):
        self.access_token = access_token or settings.MERCADOPAGO_ACCESS_TOKEN
        self.api_url = (api_url or settings.MERCADOPAGO_API_URL).rstrip('/')
        self.timeout = timeout or settings.EXTERNAL_HTTP_TIMEOUT

    def _headers(self):
        if not self.access_token:
            logger.error("MERCADOPAGO_ACCESS_TOKEN is not configured in settings")
            raise ExternalServiceError('Sistema de pagamento não configurado')
        return {
            'Authorization': f"Bearer {self.access_token}",
            'Content-Type': 'application/json',
        }

    def _request(self, method, path, payload=None):
        endpoint = f"{self.api_url}/{path.lstrip('/')}"
        headers = self._headers()
        try:
            response = requests.request(
                method,
                endpoint,
                data=json.dumps(payload) if payload is not None else None,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Mercado Pago returned {e.response.status_code} for {path}: {e.response.text}")
            raise ExternalServiceError(f"Erro no sistema de pagamento: {e.response.status_code}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Mercado Pago request to {path} failed: {str(e)}")
            raise ExternalServiceError('Erro ao conectar com o sistema de pagamento') from e

    def create_preference(self, job_title, company, amount, external_reference):
        notification_url = settings.PAYMENT_NOTIFICATION_URL
        preference = {
            'items': [{
                'title': f"Publicação de Vaga: {job_title}",
                'description': f'Publicação da vaga "{job_title}" no {settings.SITE_NAME} para {company.name}',
                'quantity': 1,
                'currency_id': 'BRL',
                'unit_price': float(amount),
            }],
            'payer': {
                'name': company.name,
                'email': company.email,
            },
            'back_urls': {
                'success': f"{notification_url}?status=success",
                'failure': f"{notification_url}?status=failure",
                'pending': f"{notification_url}?status=pending",
            },
            'auto_return': 'approved',
            'external_reference': str(external_reference),
            'notification_url': notification_url,
            'statement_descriptor': 'VAGAS PG',
        }
        logger.info(f"Creating Mercado Pago preference for {company.name}")
        return self._request('POST', 'checkout/preferences', preference)

    def get_payment(self, processor_payment_id):
        return self._request('GET', f"v1/payments/{processor_payment_id}")
