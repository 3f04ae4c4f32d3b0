from django.conf import settings

from companies.models import Company

SYSTEM_COMPANY_DEFAULTS = {
    'name': 'VAGAS PG - Sistema Automático',
    'email': 'sistema@vagaspg.com',
    'phone': '(42) 0000-0000',
    'address': 'Sistema Automático',
    'sector': 'Tecnologia',
    'legal_representative': 'Sistema',
    'description': 'Empresa utilizada para vagas cadastradas pela administração.',
    'status': Company.STATUS_ACTIVE,
}


def get_system_company():
    """Return the pseudo-company that owns administrator postings, creating it on first use."""
    company, _ = Company.objects.get_or_create(
        cnpj=Company.SYSTEM_CNPJ,
        owner=None,
        defaults={**SYSTEM_COMPANY_DEFAULTS, 'city': settings.DEFAULT_CITY},
    )
    return company


def company_for(user):
    """The company owned by the given account, or None."""
    if not user or not user.is_authenticated:
        return None
    return Company.objects.filter(owner=user).first()
