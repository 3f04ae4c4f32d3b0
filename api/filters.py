import unicodedata

ANY = (None, '', 'all')

PUBLIC_JOB_SEARCH_FIELDS = ['title', 'company.name', 'description']
ADMIN_JOB_SEARCH_FIELDS = ['title', 'company.name']
COMPANY_SEARCH_FIELDS = ['name', 'email', 'cnpj', 'city']
APPLICATION_SEARCH_FIELDS = ['name', 'email', 'job.title', 'job.company.name']


def resolve(record, path):
    """Read a dotted attribute path, returning '' when a link is missing."""
    value = record
    for part in path.split('.'):
        if value is None:
            return ''
        value = value.get(part) if isinstance(value, dict) else getattr(value, part, None)
    return value if value is not None else ''


def matches_query(record, query, search_fields):
    needle = (query or '').strip().lower()
    if not needle:
        return True
    return any(needle in str(resolve(record, field)).lower() for field in search_fields)


def matches_selections(record, selections):
    for field, selected in selections.items():
        if selected in ANY:
            continue
        if resolve(record, field) != selected:
            return False
    return True


def filter_records(records, query='', search_fields=(), **selections):
    """
    Keep records whose search fields contain the query (case-insensitive) and whose
    fields equal every active selection. None, '' and 'all' select anything.
    Search fields are dotted paths (company.name). Selections arrive as keyword
    arguments, so they spell the same path with '__' (job__job_id).
    """
    selections = {key.replace('__', '.'): value for key, value in selections.items()}
    return [
        record for record in records
        if matches_query(record, query, search_fields) and matches_selections(record, selections)
    ]


def normalize_city(city):
    """'ponta-grossa', 'Ponta Grossa' and 'PONTA GROSSA' all become 'ponta grossa'."""
    if city in ANY:
        return None
    return ' '.join(str(city).replace('-', ' ').replace('_', ' ').lower().split())


def _fold(text):
    return ''.join(
        c for c in unicodedata.normalize('NFKD', str(text or '').lower()) if not unicodedata.combining(c)
    )


def matches_city(job, city):
    wanted = normalize_city(city)
    if wanted is None:
        return True
    wanted = _fold(wanted)
    return wanted in _fold(job.location) or wanted in _fold(resolve(job, 'company.city'))


def filter_jobs(jobs, query='', search_fields=PUBLIC_JOB_SEARCH_FIELDS, city=None, **selections):
    return [
        job for job in filter_records(jobs, query, search_fields, **selections)
        if matches_city(job, city)
    ]
