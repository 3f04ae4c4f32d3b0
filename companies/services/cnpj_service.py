import logging
import re

import requests
from django.conf import settings

from api.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def clean_cnpj(cnpj):
    return re.sub(r'\D', '', cnpj or '')


def is_valid_cnpj(cnpj):
    """Check the two CNPJ verification digits."""
    numbers = clean_cnpj(cnpj)
    if len(numbers) != 14:
        return False
    if numbers == numbers[0] * 14:
        return False

    def check_digit(digits, weights):
        total = sum(int(d) * w for d, w in zip(digits, weights))
        remainder = total % 11
        return 0 if remainder < 2 else 11 - remainder

    first = check_digit(numbers[:12], [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    if int(numbers[12]) != first:
        return False
    second = check_digit(numbers[:13], [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    return int(numbers[13]) == second


class CnpjService:
    def __init__(self, base_url=None, timeout=None):
        self.base_url = base_url or settings.CNPJ_LOOKUP_URL
        self.timeout = timeout or settings.EXTERNAL_HTTP_TIMEOUT

    def lookup(self, cnpj):
        numbers = clean_cnpj(cnpj)
        if len(numbers) != 14:
            return {'valid': False, 'message': 'CNPJ deve ter 14 dígitos'}
        if not is_valid_cnpj(numbers):
            return {'valid': False, 'message': 'CNPJ com formato inválido'}

        logger.info(f"Looking up CNPJ {numbers}")
        try:
            response = requests.get(
                f"{self.base_url.rstrip('/')}/{numbers}",
                headers={'User-Agent': 'Mozilla/5.0'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"CNPJ lookup failed for {numbers}: {str(e)}")
            raise ExternalServiceError('Erro ao consultar base de dados da Receita Federal') from e

        if data.get('status') == 'ERROR':
            return {'valid': False, 'message': 'CNPJ não encontrado na Receita Federal'}

        if data.get('situacao') != 'ATIVA':
            return {
                'valid': False,
                'message': f"Empresa com situação: {data.get('situacao')}. Apenas empresas ativas podem se cadastrar.",
            }

        activities = data.get('atividade_principal') or [{}]
        return {
            'valid': True,
            'message': 'CNPJ válido e empresa ativa',
            'company_data': {
                'name': data.get('nome', ''),
                'address': f"{data.get('logradouro', '')}, {data.get('numero', '')} - "
                           f"{data.get('bairro', '')}, {data.get('municipio', '')} - {data.get('uf', '')}",
                'activity': activities[0].get('text', 'Não informado'),
            },
        }

    def lookup_fail_open(self, cnpj):
        """Lookup used by registration: failures are logged, never raised."""
        try:
            result = self.lookup(cnpj)
        except ExternalServiceError as e:
            logger.warning(f"CNPJ validation skipped for {cnpj}: {e.detail}")
            return None
        if not result['valid']:
            logger.warning(f"CNPJ {cnpj} did not validate: {result['message']}")
        return result
