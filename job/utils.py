import re

from django.utils import timezone

EMOJI_PATTERN = re.compile(
    '[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF'
    '\U0001F1E0-\U0001F1FF☀-⛿✀-➿]'
)
SMART_QUOTES_PATTERN = re.compile('[‘’“”´`]')


def add_benefit(benefits, value):
    """
    Append a trimmed benefit unless it is blank or already listed.
    Returns a new list; the original is left untouched.
    """
    benefit = (value or '').strip()
    if not benefit or benefit in benefits:
        return list(benefits)
    return [*benefits, benefit]


def normalize_benefits(values):
    benefits = []
    for value in values or []:
        benefits = add_benefit(benefits, str(value))
    return benefits


def validate_text_field(text):
    """Return the problems found in a free-text job field (emojis, typographic quotes)."""
    errors = []
    if not text:
        return errors
    if EMOJI_PATTERN.search(text):
        errors.append('Emojis podem causar problemas. Considere removê-los.')
    if SMART_QUOTES_PATTERN.search(text):
        errors.append("Aspas especiais podem causar problemas. Use aspas simples (') ou duplas (\") padrão.")
    return errors


def _plural(count, word):
    return f"{count} {word}{'s' if count != 1 else ''}"


def format_time_ago(value, now=None):
    now = now or timezone.now()
    minutes = int((now - value).total_seconds() // 60)
    if minutes < 60:
        return _plural(minutes, 'minuto')
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, 'hora')
    days = hours // 24
    if days < 30:
        return _plural(days, 'dia')
    return timezone.localtime(value).strftime('%d/%m/%Y') if timezone.is_aware(value) else value.strftime('%d/%m/%Y')
