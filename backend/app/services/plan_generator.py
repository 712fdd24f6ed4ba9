# plan generator: langchain + gemini structured output
# one generation call per wizard cycle: the collected form is interpolated into a
# natural-language request and the llm is constrained to the GeneratedPlanContent schema

import logging
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, ValidationError

from app.config import settings
from app.models.generator import PlanForm
from app.models.plan import GeneratedPlanContent
from app.services.errors import GenerationFailed

logger = logging.getLogger(__name__)


def get_llm() -> ChatGoogleGenerativeAI:
    """create a gemini llm instance for plan generation"""
    return ChatGoogleGenerativeAI(
        model=settings.GEMINI_MODEL,
        google_api_key=settings.GEMINI_API_KEY,
        temperature=settings.GEMINI_TEMPERATURE,
        max_output_tokens=8192,
    )


GENERATION_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an assistant for certified recreational therapists on the Recreo platform.
You write individualized, evidence-based recreational therapy plans.

YOUR JOB:
- Tailor every activity to the patient's functional level, interests and limitations
- Write objectives with a concrete measurable outcome and a realistic timeframe
- Give each activity its duration, materials, adaptations and progress measures
- Build a week-by-week schedule that covers the whole program duration
- Recommend practical assessment methods the therapist can run in session

TONE:
- Clinical and concise, written for a licensed professional"""),
    ("human", "{request}"),
])


def build_prompt(form: PlanForm) -> str:
    """natural-language request interpolating every collected field"""
    return f"""Create a comprehensive recreational therapy plan for:

Patient Information:
- Name: {form.patient_name}
- Age: {form.age}
- Diagnosis: {form.diagnosis}
- Functional Level: {form.functional_level}

Goals:
- Primary Goal: {form.primary_goal}
- Secondary Goals: {form.secondary_goals}

Patient Profile:
- Interests: {form.interests}
- Limitations: {form.limitations}

Session Details:
- Duration: {form.session_duration} minutes
- Frequency: {form.frequency}
- Program Duration: {form.duration_weeks} weeks

Please provide a detailed therapy plan with specific activities, objectives, and progress measures."""


class PlanGenerator:
    """generation capability: prompt in, schema-conforming object out"""

    def __init__(self, llm: Optional[ChatGoogleGenerativeAI] = None):
        self._llm = llm

    @property
    def llm(self) -> ChatGoogleGenerativeAI:
        if self._llm is None:
            logger.info(f"Creating generation llm: {settings.GEMINI_MODEL}")
            self._llm = get_llm()
        return self._llm

    async def generate_structured(self, prompt: str, schema: type[BaseModel]) -> BaseModel:
        """single, non-streaming structured generation call"""
        chain = GENERATION_PROMPT | self.llm.with_structured_output(schema)
        result = await chain.ainvoke({"request": prompt})
        if result is None:
            raise GenerationFailed("Model returned no structured output")
        if isinstance(result, dict):
            result = schema.model_validate(result)
        return result

    async def generate_plan(self, form: PlanForm) -> GeneratedPlanContent:
        prompt = build_prompt(form)
        try:
            plan = await self.generate_structured(prompt, GeneratedPlanContent)
        except GenerationFailed:
            logger.error(f"Plan generation returned nothing for patient {form.patient_name}")
            raise
        except ValidationError as e:
            logger.error(f"Plan generation returned an invalid plan: {e.error_count()} error(s)")
            raise GenerationFailed("Model output did not match the plan schema") from e
        except Exception as e:
            logger.error(f"Plan generation failed: {e}")
            raise GenerationFailed(str(e)) from e

        logger.info(f"Generated plan '{plan.plan_title}' for patient {form.patient_name}")
        return plan


# singleton generator (llm created on first use)
_generator: Optional[PlanGenerator] = None


async def get_plan_generator() -> PlanGenerator:
    """dependency injection for the generation capability"""
    global _generator
    if _generator is None:
        _generator = PlanGenerator()
    return _generator
