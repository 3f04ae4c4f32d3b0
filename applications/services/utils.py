import os
from pdfminer.high_level import extract_text as extract_pdf_text
from docx import Document
from django.core.files.storage import default_storage


def extract_text_from_file(file_path):
    """
    Extract text from a stored resume (PDF, DOCX or TXT).
    """
    if not default_storage.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    file_ext = os.path.splitext(file_path)[1].lower()

    if file_ext == '.pdf':
        return extract_pdf(file_path)
    elif file_ext == '.docx':
        return extract_docx_text(file_path)
    elif file_ext == '.txt':
        return extract_txt_text(file_path)
    else:
        raise ValueError(f"Unsupported file type: {file_ext}")


def extract_pdf(file_path):
    """Extract text from PDF files"""
    with default_storage.open(file_path, 'rb') as file:
        return extract_pdf_text(file)


def extract_docx_text(file_path):
    """Extract text from DOCX files"""
    with default_storage.open(file_path, 'rb') as file:
        doc = Document(file)
    return "\n".join([paragraph.text for paragraph in doc.paragraphs])


def extract_txt_text(file_path):
    with default_storage.open(file_path, 'rb') as file:
        content = file.read()
    try:
        return content.decode('utf-8')
    except UnicodeDecodeError:
        return content.decode('latin-1')
