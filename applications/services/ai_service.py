import logging
import zipfile

from docx.opc.exceptions import PackageNotFoundError
from pdfminer.pdfparser import PDFSyntaxError
from pdfminer.psparser import PSEOF

from api.exceptions import ValidationError
from job.services.ai_service import generate_content
from .utils import extract_text_from_file

logger = logging.getLogger(__name__)


def analyze_resume(resume_text):
    """
    Feedback on a resume in Brazilian Portuguese: strengths, gaps, suggestions and a 0-10 score.
    """
    if not resume_text or len(resume_text.strip()) < 10:
        raise ValidationError('Cole o texto do currículo para analisar.')

    prompt = f"""
Analise este currículo e forneça feedback detalhado em português brasileiro:

CURRÍCULO:
{resume_text}

Por favor, analise e forneça:
1. Pontos fortes do currículo
2. Áreas que precisam de melhoria
3. Sugestões específicas para melhorar
4. Nota geral (0-10)
5. Dicas para se destacar no mercado de trabalho de Ponta Grossa e Curitiba

Seja específico e construtivo no feedback.
"""

    return generate_content(prompt, json_response=False).strip()


def generate_interview_questions(job_title, experience):
    if not job_title or not job_title.strip():
        raise ValidationError('Informe o cargo para gerar as perguntas.')

    prompt = f"""
Gere 5 perguntas de entrevista relevantes para:

CARGO: {job_title}
NÍVEL DE EXPERIÊNCIA: {experience or 'Não informado'}

As perguntas devem:
1. Avaliar competências técnicas
2. Avaliar soft skills
3. Ser específicas para o cargo
4. Ser adequadas para o mercado de trabalho de Ponta Grossa/Curitiba
5. Incluir uma pergunta sobre adaptação ao trabalho local

Formate como uma lista numerada.
"""

    return generate_content(prompt, max_output_tokens=1024, json_response=False).strip()


def analyze_application_resume(application):
    """Analyze the resume attached to an application and keep the result on the record."""
    if not application.has_resume():
        raise ValidationError('Esta candidatura não possui currículo anexado.')

    try:
        resume_text = extract_text_from_file(application.resume_path)
    except (FileNotFoundError, ValueError, PDFSyntaxError, PSEOF, PackageNotFoundError,
            zipfile.BadZipFile) as e:
        logger.warning(f"Failed to extract text from {application.resume_path}: {str(e)}")
        raise ValidationError('Não foi possível ler o currículo desta candidatura.') from e

    analysis = analyze_resume(resume_text)
    application.resume_analysis = analysis
    application.save(update_fields=['resume_analysis', 'updated_at'])
    logger.info(f"Stored resume analysis for application {application.application_id}")
    return analysis
