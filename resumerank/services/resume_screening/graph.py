"""
This graph scores a resume against a job description
"""
from dataclasses import dataclass
from typing import List, Literal, Optional

import openai
from langchain_openai import ChatOpenAI
from langgraph.graph import StateGraph, END, START
from pydantic import BaseModel, Field

from resumerank.core.config import settings


def get_llm():
    """Get LLM instance lazily to avoid initialization issues during import."""
    return ChatOpenAI(
        model=settings.OPENAI_MODEL,
        api_key=settings.OPENAI_API_KEY,
        temperature=0.1,
    )


class ResumeAnalysis(BaseModel):
    score: int = Field(
        ...,
        description="Overall match score from 0 to 100",
        ge=0,
        le=100
    )
    summary: str = Field(
        ...,
        description="Two or three sentence overview of the candidate's fit"
    )
    strengths: List[str] = Field(
        default_factory=list,
        description="Concrete strengths relevant to the job"
    )
    weaknesses: List[str] = Field(
        default_factory=list,
        description="Gaps or concerns relative to the job requirements"
    )
    recommendation: Literal["HIRE", "INTERVIEW", "REJECT"] = Field(
        ...,
        description="Hiring recommendation"
    )


RESUME_ANALYSIS_SYSTEM_PROMPT = """
You are an expert HR recruiter analyzing a resume for a job position.

Scoring guidelines:
- 90-100: Exceptional match, all key requirements met
- 70-89: Strong match, most requirements met
- 50-69: Moderate match, some requirements met
- 30-49: Weak match, few requirements met
- 0-29: Poor match, minimal requirements met

Be objective and specific. Focus on skills, experience, and qualifications.
"""


@dataclass
class State:
    """State for the resume analysis graph."""
    job_description: str = ""
    resume: str = ""
    analysis: Optional[ResumeAnalysis] = None
    error: Optional[str] = None


def analyze_resume(state: State) -> State:
    """Score the resume against the job description."""
    if not state.job_description or not state.resume:
        return State(
            job_description=state.job_description,
            resume=state.resume,
            error="Missing job description or resume data"
        )

    try:
        prompt = f"""
Analyze how well this candidate matches the job requirements.

Job Description:
{state.job_description}

Resume:
{state.resume}
"""
        extractor_llm = get_llm().with_structured_output(ResumeAnalysis)
        result = extractor_llm.invoke([
            {"role": "system", "content": RESUME_ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": prompt}
        ])

        if isinstance(result, dict):
            result = ResumeAnalysis(**result)

        return State(
            job_description=state.job_description,
            resume=state.resume,
            analysis=result
        )

    except (openai.RateLimitError, openai.APIConnectionError, openai.InternalServerError) as e:
        # Provider side and retryable
        return State(
            job_description=state.job_description,
            resume=state.resume,
            error=f"AI provider overloaded: {e}"
        )

    except Exception as e:
        return State(
            job_description=state.job_description,
            resume=state.resume,
            error=str(e)
        )


def create_resume_screening_graph():
    workflow = StateGraph(State)

    workflow.add_node("analyze_resume", analyze_resume)

    workflow.add_edge(START, "analyze_resume")
    workflow.add_edge("analyze_resume", END)

    return workflow.compile()


graph = create_resume_screening_graph()
