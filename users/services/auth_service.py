import logging

from django.contrib.auth import authenticate, login, logout
from django.db import transaction
from rest_framework.authtoken.models import Token

from api.exceptions import ValidationError
from companies.models import Company
from companies.services.cnpj_service import CnpjService
from users.models import Profile

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ['name', 'cnpj', 'phone', 'address', 'city', 'sector', 'legal_representative', 'description']
REQUIRED_FIELDS = ['email', 'password', 'name', 'cnpj', 'phone', 'address', 'sector', 'legal_representative']


def sign_up(data):
    """
    Create the account identity and its company in one go.
    The company starts active; a failing registry lookup never blocks sign-up.
    """
    missing = {field: ['Este campo é obrigatório.'] for field in REQUIRED_FIELDS
               if not str(data.get(field) or '').strip()}
    if missing:
        raise ValidationError(missing)

    email = data['email'].strip().lower()
    if Profile.objects.filter(email=email).exists():
        raise ValidationError({'email': ['Este email já está cadastrado.']})

    CnpjService().lookup_fail_open(data['cnpj'])

    with transaction.atomic():
        profile = Profile.objects.create_user(email=email, password=data['password'])
        company = Company.objects.create(
            owner=profile,
            email=email,
            status=Company.STATUS_ACTIVE,
            **{field: (data.get(field) or '').strip() for field in COMPANY_FIELDS},
        )

    token, _ = Token.objects.get_or_create(user=profile)
    logger.info(f"Registered company {company.company_id} for {email}")
    return profile, company, token


def sign_in(request, email, password):
    if not email or not password:
        raise ValidationError('Email e senha são obrigatórios.')

    user = authenticate(request, username=email.strip().lower(), password=password)
    if user is None:
        logger.warning(f"Failed sign-in for {email}")
        raise ValidationError('Email ou senha inválidos.')

    login(request, user)
    token, _ = Token.objects.get_or_create(user=user)
    return user, token


def sign_out(request):
    if request.user.is_authenticated:
        Token.objects.filter(user=request.user).delete()
    logout(request)
