"""AI fit analysis, resume tailoring and career-coach chat.

All reasoning is delegated to a hosted model behind an OpenAI-compatible
chat-completions endpoint (Gemini by default). Analysis and tailoring never
raise: failures come back as fixed fallback values so the pipeline can still
finish the job.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, AsyncIterator

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from scout.config import Settings
from scout.log import get_logger
from scout.models import AiAnalysis, Job, Recommendation

log = get_logger(__name__)

ANALYSIS_TEMPERATURE = 0.4
TAILOR_TEMPERATURE = 0.7

FALLBACK_POINT = "Error analyzing job data"
FALLBACK_VERDICT = "Unable to determine."
TAILOR_EMPTY = "Could not generate tailored resume."
TAILOR_ERROR = "Error generating tailored resume."
CHAT_GREETING = (
    "Hello! I'm your AI Career Scout. I have your resume loaded. "
    "How can I help you navigate your search today?"
)
CHAT_ERROR = "I'm having trouble connecting right now. Please try again."

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "fit_score": {
            "type": "integer",
            "description": "A score from 0 to 100 representing candidate fit.",
        },
        "recommendation": {
            "type": "string",
            "enum": [r.value for r in Recommendation],
            "description": "The final verdict on the application.",
        },
        "pros_cons": {
            "type": "array",
            "items": {"type": "string"},
            "description": "A list of bullet points detailing strengths and weaknesses.",
        },
        "growth_verdict": {
            "type": "string",
            "description": "Analysis of the company's financial outlook.",
        },
    },
    "required": ["fit_score", "recommendation", "pros_cons", "growth_verdict"],
}


class AnalysisPayload(BaseModel):
    """Shape the model must return; anything else is treated as a failed call."""

    model_config = ConfigDict(extra="ignore")

    fit_score: int = Field(ge=0, le=100)
    recommendation: Recommendation
    pros_cons: list[str]
    growth_verdict: str

    def to_analysis(self) -> AiAnalysis:
        return AiAnalysis(
            fit_score=self.fit_score,
            recommendation=self.recommendation,
            pros_cons=list(self.pros_cons),
            growth_verdict=self.growth_verdict,
        )


def fallback_analysis() -> AiAnalysis:
    """Zero-score Avoid verdict used whenever analysis fails; fresh list per call."""
    return AiAnalysis(
        fit_score=0,
        recommendation=Recommendation.AVOID,
        pros_cons=[FALLBACK_POINT],
        growth_verdict=FALLBACK_VERDICT,
    )


_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _strip_fences(text: str) -> str:
    m = _FENCE_RE.match(text.strip())
    return m.group(1) if m else text


def parse_analysis(text: str) -> AiAnalysis:
    """Validate a raw model reply. Raises ValueError on any mismatch."""
    if not text:
        raise ValueError("Empty response from model")
    try:
        return AnalysisPayload.model_validate_json(_strip_fences(text)).to_analysis()
    except ValidationError as exc:
        raise ValueError(f"Malformed analysis: {exc.error_count()} error(s)") from exc


def _analysis_prompt(job: Job, resume_text: str, prefix_chars: int) -> str:
    fin = job.financials
    kind = "Private" if fin and fin.is_private else "Public"
    market_cap = fin.market_cap if fin else "Unknown"
    growth = (fin.revenue_growth if fin else 0.0) * 100
    return f"""You are an AI analyst evaluating a job opportunity for a Tech + Sales hybrid candidate.

Candidate Resume Summary:
{resume_text[:prefix_chars]}... (truncated for context)

Job Details:
Title: {job.title}
Company: {job.company}
Description: {job.description}

Company Financials:
Type: {kind}
Market Cap: {market_cap}
Revenue Growth (YoY): {growth:.1f}%

Task:
Analyze the fit based on the job description, company financials, and candidate profile.
Emphasize hybrid commercial/technical competence and growth trajectory.
Filter out low-potential or misaligned roles.

Return a JSON object with fit_score (0-100), recommendation ("Apply", "Avoid" or
"Network First"), pros_cons (list of strings) and growth_verdict (string)."""


def _tailor_prompt(job: Job, resume_text: str) -> str:
    return f"""You are an expert career strategist.

JOB TARGET:
Title: {job.title}
Company: {job.company}
Description: {job.description}

CANDIDATE RESUME:
{resume_text}

TASK:
Rewrite the candidate's resume summary and key bullet points to align with this job description.
- Highlight the most relevant skills found in the job description that the candidate possesses.
- Adjust terminology to match the company's language.
- Focus on "Tech + Sales" hybrid strengths.
- Return Markdown, starting with a "Tailored Summary" section and then "Key Experience Highlights"."""


def _coach_instruction(resume_text: str) -> str:
    return f"""You are a helpful AI Career Coach for the following candidate.

CANDIDATE CONTEXT:
{resume_text}

Your goal is to help them navigate their job search, analyze opportunities, and provide strategic advice.
Be concise, professional, and encouraging."""


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    text: str


class ChatSession:
    """Multi-turn coach conversation with the resume as standing context."""

    def __init__(self, client: AsyncOpenAI, model: str, resume_text: str) -> None:
        self.client = client
        self.model = model
        self._messages: list[dict[str, str]] = [
            {"role": "system", "content": _coach_instruction(resume_text)},
        ]
        self.history: list[ChatMessage] = [ChatMessage("assistant", CHAT_GREETING)]

    async def stream(self, text: str) -> AsyncIterator[str]:
        """Yield reply chunks as they arrive.

        Closing the generator early keeps whatever was received as the reply.
        Connection errors end the stream with a single apology chunk.
        """
        self._messages.append({"role": "user", "content": text})
        self.history.append(ChatMessage("user", text))
        received: list[str] = []
        failed = False
        response = None
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=list(self._messages),
                stream=True,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    received.append(delta)
                    yield delta
        except Exception as exc:
            log.error("Chat error: %s", exc)
            failed = True
        finally:
            if response is not None:
                await response.close()
            reply = "".join(received)
            if reply:
                self._messages.append({"role": "assistant", "content": reply})
                self.history.append(ChatMessage("assistant", reply))
            elif failed:
                # The turn never reached the model's context
                self._messages.pop()

        if failed:
            self.history.append(ChatMessage("assistant", CHAT_ERROR))
            yield CHAT_ERROR

    async def send(self, text: str) -> str:
        parts = [chunk async for chunk in self.stream(text)]
        return "".join(parts)


class Analyst:
    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        base_url: str | None = None,
        resume_prefix_chars: int = 2000,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.resume_prefix_chars = resume_prefix_chars
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def _complete(self, prompt: str, temperature: float, **extra: Any) -> str:
        r = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            **extra,
        )
        if not r.choices:
            return ""
        return (r.choices[0].message.content or "").strip()

    async def analyze_job_match(self, job: Job, resume_text: str) -> AiAnalysis:
        prompt = _analysis_prompt(job, resume_text, self.resume_prefix_chars)
        try:
            text = await self._complete(
                prompt,
                ANALYSIS_TEMPERATURE,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "job_analysis", "schema": ANALYSIS_SCHEMA},
                },
            )
            analysis = parse_analysis(text)
        except Exception as exc:
            log.warning("Analysis failed for %s @ %s (%s), using fallback", job.title, job.company, exc)
            return fallback_analysis()
        log.info(
            "Analyzed %s @ %s → %d (%s)",
            job.title, job.company, analysis.fit_score, analysis.recommendation.value,
        )
        return analysis

    async def tailor_resume(self, job: Job, resume_text: str) -> str:
        try:
            text = await self._complete(_tailor_prompt(job, resume_text), TAILOR_TEMPERATURE)
        except Exception as exc:
            log.warning("Resume tailoring failed for %s @ %s: %s", job.title, job.company, exc)
            return TAILOR_ERROR
        if not text:
            return TAILOR_EMPTY
        log.info("Tailored resume for %s @ %s", job.title, job.company)
        return text

    def start_chat(self, resume_text: str) -> ChatSession:
        return ChatSession(self.client, self.model, resume_text)


def build_analyst(settings: Settings) -> Analyst | None:
    """Return an Analyst, or None when no API key is configured."""
    if not settings.ai_available:
        log.warning("No GEMINI_API_KEY found — AI analysis disabled")
        return None
    return Analyst(
        settings.api_key,
        model=settings.model,
        base_url=settings.base_url,
        resume_prefix_chars=settings.resume_prefix_chars,
    )

