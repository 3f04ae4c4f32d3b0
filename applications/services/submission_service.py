import logging

from django.conf import settings
from django.core.files.storage import default_storage

from api.exceptions import ExternalServiceError, FileRejected, ValidationError
from applications.models import Application
from applications.utils import create_resume_filename, parse_experience_years, parse_skills

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    'name': 'Por favor, informe seu nome completo',
    'email': 'Por favor, informe seu email',
    'phone': 'Por favor, informe seu telefone',
}

OPTIONAL_TEXT_FIELDS = ['linkedin', 'current_position', 'education', 'cover_letter']


def validate_contact_fields(data):
    """Return the trimmed required fields as strings."""
    cleaned = {field: str(data.get(field) or '').strip() for field in REQUIRED_FIELDS}
    for field, message in REQUIRED_FIELDS.items():
        if not cleaned[field]:
            raise ValidationError({field: [message]})
    return cleaned


def validate_resume(resume):
    content_type = getattr(resume, 'content_type', None)
    if content_type not in settings.RESUME_ALLOWED_TYPES:
        raise FileRejected('Por favor, envie apenas arquivos PDF ou Word (.doc, .docx)')
    if resume.size > settings.RESUME_MAX_SIZE:
        raise FileRejected('O arquivo deve ter no máximo 10MB')


def upload_resume(resume):
    """Store the resume and return (storage path, public URL)."""
    path = create_resume_filename(resume.name, getattr(resume, 'content_type', None))
    try:
        stored_path = default_storage.save(path, resume)
        return stored_path, default_storage.url(stored_path)
    except Exception as e:
        logger.error(f"Resume upload failed for {resume.name}: {str(e)}")
        raise ExternalServiceError('Falha no upload do currículo') from e


def submit_application(job, data, resume=None):
    """
    Validate, upload the optional resume and insert the application.
    An insert failure after a successful upload removes the uploaded file.
    """
    contact = validate_contact_fields(data)
    if resume is not None:
        validate_resume(resume)

    if not job.is_active:
        raise ValidationError('Esta vaga não está recebendo candidaturas.')

    resume_path, resume_url = '', ''
    if resume is not None:
        resume_path, resume_url = upload_resume(resume)

    try:
        application = Application.objects.create(
            job=job,
            **contact,
            experience_years=parse_experience_years(data.get('experience_years')),
            skills=parse_skills(data.get('skills')),
            resume_url=resume_url,
            resume_path=resume_path,
            status=Application.STATUS_NEW,
            **{field: str(data.get(field) or '').strip() for field in OPTIONAL_TEXT_FIELDS},
        )
    except Exception:
        if resume_path:
            logger.warning(f"Removing orphaned resume {resume_path} after failed insert")
            default_storage.delete(resume_path)
        raise

    logger.info(f"Application {application.application_id} submitted for job {job.job_id}")
    return application
