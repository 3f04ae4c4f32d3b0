import google.genai as genai
from google.genai import types
from django.conf import settings
from dataclasses import asdict, dataclass, field
import logging
import json
import re

from api.exceptions import ExternalServiceError, ExtractionParseError, ValidationError
from job.models import Job
from job.utils import normalize_benefits

logger = logging.getLogger(__name__)

ASSISTANT_UNAVAILABLE = 'Não foi possível conectar ao assistente. Tente novamente.'

JOB_FIELDS_TEMPLATE = """
{
  "title": "título da vaga",
  "company": "nome da empresa",
  "description": "descrição detalhada da vaga",
  "requirements": "requisitos e qualificações necessárias",
  "salary": "faixa salarial (se mencionada)",
  "location": "localização (se for Ponta Grossa ou Curitiba)",
  "contract_type": "tipo de contrato (CLT, PJ, Freelancer, Estágio)",
  "work_mode": "modalidade (Presencial, Remoto, Híbrido)",
  "experience_level": "nível de experiência (Estagiário, Júnior, Pleno, Sênior, Especialista)",
  "benefits": ["lista", "de", "benefícios"],
  "application_method": "como se candidatar (WhatsApp, Email, Telefone, Presencial, Site, Outro)",
  "contact_info": "número, email ou endereço para candidatura",
  "has_external_application": true
}
"""

CONTACT_PHRASES = re.compile(
    r'(?:enviar|envie|mandar|mande|encaminhar|encaminhe)\s+(?:o\s+|seu\s+)?(?:curr[ií]culo|cv)s?\s+(?:para|no|pelo)',
    re.IGNORECASE,
)
EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+(?:\.[\w-]+)+')
PHONE_PATTERN = re.compile(r'\(?\d{2}\)?\s*9?\s?\d{4}[-\s.]?\d{4}')
WHATSAPP_PATTERN = re.compile(r'whats\s*app|zap|wpp', re.IGNORECASE)


def _pick(value, choices, default):
    """Match a value against model choices case-insensitively, falling back to the default."""
    if not value:
        return default
    lowered = str(value).strip().lower()
    for stored, _label in choices:
        if stored.lower() == lowered:
            return stored
    return default


@dataclass
class ExtractedJob:
    title: str = ''
    company: str = ''
    description: str = ''
    requirements: str = ''
    salary: str = Job.DEFAULT_SALARY
    location: str = ''
    contract_type: str = Job.DEFAULT_CONTRACT_TYPE
    work_mode: str = Job.DEFAULT_WORK_MODE
    experience_level: str = Job.DEFAULT_EXPERIENCE_LEVEL
    benefits: list = field(default_factory=list)
    application_method: str = ''
    contact_info: str = ''
    has_external_application: bool = False

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            raise ExtractionParseError()

        def text(name):
            value = payload.get(name)
            return str(value).strip() if value else ''

        benefits = payload.get('benefits') or []
        if isinstance(benefits, str):
            benefits = benefits.split(',')

        job = cls(
            title=text('title'),
            company=text('company'),
            description=text('description'),
            requirements=text('requirements'),
            salary=text('salary') or Job.DEFAULT_SALARY,
            location=text('location') or settings.DEFAULT_CITY,
            contract_type=_pick(payload.get('contract_type'), Job.CONTRACT_CHOICES, Job.DEFAULT_CONTRACT_TYPE),
            work_mode=_pick(payload.get('work_mode'), Job.WORK_MODE_CHOICES, Job.DEFAULT_WORK_MODE),
            experience_level=_pick(payload.get('experience_level'), Job.EXPERIENCE_CHOICES, Job.DEFAULT_EXPERIENCE_LEVEL),
            benefits=normalize_benefits(benefits if isinstance(benefits, list) else []),
            application_method=_pick(payload.get('application_method'), Job.APPLICATION_METHOD_CHOICES, ''),
            contact_info=text('contact_info'),
            has_external_application=bool(payload.get('has_external_application')),
        )
        if job.has_external_application and not (job.application_method and job.contact_info):
            job.has_external_application = False
        return job

    def restrict_location(self):
        """Overwrite locations outside the supported cities with the default city."""
        lowered = self.location.lower()
        if not any(city.lower() in lowered for city in settings.SUPPORTED_CITIES):
            self.location = settings.DEFAULT_CITY
        return self

    def merge_into(self, current):
        """Merge into existing form values without clearing fields the extraction left empty."""
        merged = dict(current or {})
        for key, value in self.to_dict().items():
            if value or key not in merged:
                merged[key] = value
        return merged

    def to_dict(self):
        return asdict(self)


def get_genai_client():
    api_key = getattr(settings, 'GEMINI_API_KEY', None)
    if not api_key:
        logger.error("GEMINI_API_KEY is not configured in settings")
        raise ExternalServiceError(ASSISTANT_UNAVAILABLE)

    try:
        return genai.Client(api_key=api_key)
    except Exception as e:
        logger.error(f"Failed to initialize GenAI client: {str(e)}")
        raise ExternalServiceError(ASSISTANT_UNAVAILABLE) from e


def generate_content(contents, max_output_tokens=2048, json_response=True):
    """
    Single generate_content call. Any transport or API failure, and an empty
    candidate text, surfaces as ExternalServiceError. There is no retry.
    """
    client = get_genai_client()

    config = types.GenerateContentConfig(
        temperature=0.2,
        top_p=0.95,
        top_k=40,
        max_output_tokens=max_output_tokens,
        response_mime_type="application/json" if json_response else "text/plain",
    )

    try:
        response = client.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents=contents,
            config=config,
        )
    except Exception as e:
        logger.error(f"Gemini request failed: {str(e)}")
        raise ExternalServiceError(ASSISTANT_UNAVAILABLE) from e

    text = getattr(response, 'text', None)
    if not text or not text.strip():
        logger.error("Gemini returned an empty response")
        raise ExternalServiceError(ASSISTANT_UNAVAILABLE)
    return text


def parse_gemini_response(response_text):
    """Parse Gemini response and extract JSON"""
    cleaned_text = (response_text or '').strip()
    if '```json' in cleaned_text:
        cleaned_text = cleaned_text.split('```json')[1].split('```')[0].strip()
    elif '```' in cleaned_text:
        cleaned_text = cleaned_text.split('```')[1].split('```')[0].strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse Gemini response: {response_text}")
        raise ExtractionParseError() from e


def detect_external_contact(text):
    """
    Find a contact handed out after phrases like "enviar currículo para".
    Returns (application_method, contact_info) or None.
    """
    for match in CONTACT_PHRASES.finditer(text or ''):
        tail = text[match.end():match.end() + 120]
        email = EMAIL_PATTERN.search(tail)
        phone = PHONE_PATTERN.search(tail)
        if email and (not phone or email.start() < phone.start()):
            return Job.METHOD_EMAIL, email.group(0)
        if phone:
            method = Job.METHOD_WHATSAPP if WHATSAPP_PATTERN.search(text) else Job.METHOD_PHONE
            return method, phone.group(0).strip()
    return None


def extract_job_from_text(text):
    if not text or not text.strip():
        raise ValidationError('Cole o texto da vaga para extrair os dados.')

    prompt = f"""
Analise o texto desta vaga de emprego e extraia as seguintes informações em formato JSON:
{JOB_FIELDS_TEMPLATE}
Se o texto pedir para enviar currículo por WhatsApp, email ou telefone, preencha
"application_method", "contact_info" e marque "has_external_application" como true.
Se alguma informação não estiver disponível no texto, deixe o campo vazio.
Responda APENAS com o JSON, sem texto adicional.

TEXTO DA VAGA:
{text}
"""

    extracted = ExtractedJob.from_payload(parse_gemini_response(generate_content(prompt)))

    if not extracted.contact_info:
        contact = detect_external_contact(text)
        if contact:
            extracted.application_method, extracted.contact_info = contact
            extracted.has_external_application = True

    logger.info(f"Extracted job '{extracted.title}' from text")
    return extracted


def extract_job_from_image(data, mime_type):
    if not data:
        raise ValidationError('Envie uma imagem da vaga para extrair os dados.')

    prompt = f"""
Analise esta imagem de vaga de emprego e extraia as seguintes informações em formato JSON:
{JOB_FIELDS_TEMPLATE}
Se alguma informação não estiver disponível na imagem, deixe o campo vazio.
Extraia APENAS as informações visíveis na imagem.
Responda APENAS com o JSON, sem texto adicional.
"""

    contents = [types.Part.from_bytes(data=data, mime_type=mime_type), prompt]
    extracted = ExtractedJob.from_payload(parse_gemini_response(generate_content(contents)))
    extracted.restrict_location()

    logger.info(f"Extracted job '{extracted.title}' from image")
    return extracted


def generate_job_description(title, company, requirements):
    if not title or not title.strip():
        raise ValidationError('Informe o cargo para gerar a descrição.')

    prompt = f"""
Crie uma descrição de vaga atrativa e profissional para:

CARGO: {title}
EMPRESA: {company}
REQUISITOS BÁSICOS: {requirements}

A vaga é para Ponta Grossa ou Curitiba. Crie uma descrição que:
1. Seja atrativa para candidatos
2. Descreva as responsabilidades
3. Liste benefícios típicos da região
4. Use linguagem profissional mas acessível
5. Tenha entre 150-300 palavras

Foque no que torna esta oportunidade especial.
"""

    return generate_content(prompt, max_output_tokens=1024, json_response=False).strip()
