import asyncio
import io
import logging
import os
from typing import Any, Dict, Optional

import pdfplumber
from docx import Document
from langchain_openai import ChatOpenAI

from resumerank.core.config import settings
from resumerank.core.errors import AnalysisError, is_temporary_error
from resumerank.services.resume_screening import resume_screening_graph
from resumerank.services.resume_screening.graph import State as ResumeScreeningState

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
INITIAL_DELAY_SECONDS = 2.0


class ResumeAnalyzer:
    """Scores resumes against job descriptions with the resume screening graph"""

    def __init__(self, max_attempts: int = MAX_ATTEMPTS, initial_delay: float = INITIAL_DELAY_SECONDS):
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay

    def extract_text(self, data: bytes, file_name: str) -> str:
        ext = os.path.splitext(file_name or "")[1].lower()
        try:
            if ext == ".pdf":
                with pdfplumber.open(io.BytesIO(data)) as pdf:
                    text = "\n".join(page.extract_text() or "" for page in pdf.pages)
            elif ext == ".docx":
                doc = Document(io.BytesIO(data))
                text = "\n".join(para.text for para in doc.paragraphs if para.text.strip())
            else:
                raise AnalysisError(f"Unsupported resume file type: {ext or 'unknown'}")
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Could not read resume: {e}")

        text = text.strip()
        if not text:
            raise AnalysisError("No text could be extracted from the resume")
        return text

    async def _run_graph(self, resume_text: str, job_description: str) -> Dict[str, Any]:
        state = ResumeScreeningState(job_description=job_description, resume=resume_text)
        result_state = await asyncio.to_thread(resume_screening_graph.invoke, state)
        if isinstance(result_state, dict):
            result_state = ResumeScreeningState(**result_state)
        if result_state.error or result_state.analysis is None:
            raise AnalysisError(result_state.error or "Analysis failed")
        return result_state.analysis.model_dump()

    async def analyze_text(self, resume_text: str, job_description: str) -> Dict[str, Any]:
        """Retries overload and throttling errors with exponential backoff."""
        for attempt in range(self.max_attempts):
            try:
                return await self._run_graph(resume_text, job_description)
            except AnalysisError as e:
                temporary = is_temporary_error(e.message)
                if not temporary or attempt == self.max_attempts - 1:
                    raise AnalysisError(e.message, is_temporary=temporary)
                delay = self.initial_delay * (2 ** attempt)
                logger.warning(f"Retry attempt {attempt + 1}/{self.max_attempts} after {delay}s: {e.message}")
                await asyncio.sleep(delay)
        raise AnalysisError("Analysis failed")

    async def analyze_file(self, data: bytes, file_name: str, job_description: str) -> Dict[str, Any]:
        resume_text = await asyncio.to_thread(self.extract_text, data, file_name)
        return await self.analyze_text(resume_text, job_description)

    async def test_connection(self) -> Dict[str, Any]:
        try:
            llm = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0)
            response = await llm.ainvoke("Reply with the single word: ok")
            return {"success": True, "model": settings.OPENAI_MODEL, "response": str(response.content).strip()}
        except Exception as e:
            logger.error(f"AI connection test failed: {e}")
            return {
                "success": False,
                "model": settings.OPENAI_MODEL,
                "error": str(e),
                "isTemporary": is_temporary_error(str(e)),
            }


_analyzer: Optional[ResumeAnalyzer] = None


def get_resume_analyzer() -> ResumeAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = ResumeAnalyzer()
    return _analyzer
