import os
import re
import time
import random
import string
import mimetypes
from urllib.parse import quote

from django.conf import settings

from api.exceptions import ValidationError
from job.models import Job


def get_file_extension(filename, mimetype=None):
    """Get appropriate file extension"""
    if filename:
        _, ext = os.path.splitext(filename)
        if ext:
            return ext.lower()

    if mimetype:
        ext = mimetypes.guess_extension(mimetype)
        if ext:
            return ext.lower()

    return '.bin'


def create_resume_filename(original_name, content_type=None):
    """Storage name for an uploaded resume: <epoch-ms>-<random7>.<ext>"""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=7))
    extension = get_file_extension(original_name, content_type)
    return f"{settings.RESUME_UPLOAD_DIR}/{int(time.time() * 1000)}-{suffix}{extension}"


def parse_skills(value):
    """Split a comma-separated skill string into unique, trimmed entries."""
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = (value or '').split(',')

    skills = []
    for item in items:
        skill = str(item).strip()
        if skill and skill not in skills:
            skills.append(skill)
    return skills


def parse_experience_years(value):
    try:
        years = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return years if years >= 0 else None


def build_contact_message(job, candidate_name=''):
    greeting = f"Olá! Meu nome é {candidate_name.strip()}." if candidate_name and candidate_name.strip() else 'Olá!'
    return (
        f"{greeting} Tenho interesse na vaga de {job.title} na {job.company.name}. "
        f"{settings.PLATFORM_ATTRIBUTION}."
    )


def build_direct_contact(job, candidate_name=''):
    """
    Compose the hand-off link for jobs that take applications outside the site.
    Nothing is persisted.
    """
    if not job.has_external_application or not job.application_method or not job.contact_info:
        raise ValidationError('Esta vaga não aceita candidatura direta.')

    message = build_contact_message(job, candidate_name)
    method = job.application_method
    contact = job.contact_info.strip()

    if method == Job.METHOD_WHATSAPP:
        digits = re.sub(r'\D', '', contact)
        if len(digits) in (10, 11):
            digits = f"55{digits}"
        url = f"https://wa.me/{digits}?text={quote(message)}"
    elif method == Job.METHOD_EMAIL:
        subject = quote(f"Candidatura: {job.title}")
        url = f"mailto:{contact}?subject={subject}&body={quote(message)}"
    elif method == Job.METHOD_PHONE:
        dial = re.sub(r'[^\d+]', '', contact)
        url = f"tel:{dial}"
    elif method == Job.METHOD_SITE:
        url = contact
    else:
        raise ValidationError(f"Esta vaga não tem link de contato. Candidatura: {method} - {contact}")

    return {
        'method': method,
        'contact_info': contact,
        'url': url,
        'message': message,
    }
