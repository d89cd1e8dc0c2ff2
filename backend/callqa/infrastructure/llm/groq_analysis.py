"""
Groq Analysis Provider
Scores call transcripts with a Groq-hosted model in JSON mode.

Generation runs at low temperature. When the output fails schema
validation, one repair attempt is made with a strict-adherence
instruction at an even lower temperature; a second failure is final.
"""
import logging
import os
from typing import List, Optional

from groq import APIError, AsyncGroq

from callqa.domain.exceptions import AnalysisError, AnalysisSchemaError
from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.domain.models.analysis import Analysis, AnalysisRequest, ModelInfo
from callqa.domain.services.analysis_normalizer import parse_analysis
from callqa.domain.services.prompt_manager import PromptManager

logger = logging.getLogger(__name__)


class GroqAnalysisProvider(AnalysisProvider):
    """
    Groq analysis provider

    Recommended models:
    - llama-3.3-70b-versatile: best quality for long rubric prompts
    - llama-3.1-8b-instant: fast, weaker schema adherence
    """

    def __init__(self):
        self._client: Optional[AsyncGroq] = None
        self._prompts: Optional[PromptManager] = None
        self._model: str = "llama-3.3-70b-versatile"
        self._temperature: float = 0.2
        self._repair_temperature: float = 0.1
        self._max_tokens: int = 4096

    async def initialize(self, config: dict) -> None:
        """Initialize Groq client with configuration"""
        api_key = config.get("api_key") or os.getenv("GROQ_API_KEY")
        if not api_key:
            raise ValueError("Groq API key not found in config or environment")

        self._prompts = config.get("prompt_manager")
        if self._prompts is None:
            raise ValueError("GroqAnalysisProvider requires a prompt_manager")

        self._client = config.get("client") or AsyncGroq(api_key=api_key)
        self._model = config.get("model", self._model)
        self._temperature = config.get("temperature", self._temperature)
        self._repair_temperature = config.get("repair_temperature", self._repair_temperature)
        self._max_tokens = config.get("max_tokens", self._max_tokens)

    async def analyze(self, request: AnalysisRequest) -> Analysis:
        if not self._client or not self._prompts:
            raise AnalysisError("Groq client not initialized. Call initialize() first.")

        system_prompt = self._prompts.render_analysis_system_prompt()
        user_prompt = self._prompts.render_analysis_user_prompt(request.segments, request.metadata)

        try:
            return await self._attempt(system_prompt, user_prompt, self._temperature)
        except AnalysisSchemaError as first_error:
            logger.warning(f"Analysis output failed validation, retrying with repair prompt: {first_error.message}")
            repair_prompt = self._prompts.render_repair_prompt(user_prompt)
            try:
                return await self._attempt(system_prompt, repair_prompt, self._repair_temperature)
            except AnalysisSchemaError as repair_error:
                raise AnalysisSchemaError(
                    f"Analysis output failed validation after repair attempt: {repair_error.message}",
                    details={
                        "firstAttempt": first_error.details or first_error.message,
                        "repairAttempt": repair_error.details or repair_error.message,
                    },
                ) from repair_error

    async def _attempt(self, system_prompt: str, user_prompt: str, temperature: float) -> Analysis:
        content = await self._complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature,
        )
        return parse_analysis(content)

    async def _complete(self, messages: List[dict], temperature: float) -> Optional[str]:
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=self._max_tokens,
                response_format={"type": "json_object"},
            )
        except APIError as e:
            logger.error(f"Groq analysis request failed: {e}")
            raise AnalysisError(f"Groq analysis request failed: {str(e)}") from e

        if not completion.choices:
            return None
        return completion.choices[0].message.content

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(provider="groq", model=self._model, version=self._model)

    async def cleanup(self) -> None:
        """Release resources"""
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def name(self) -> str:
        return "groq"

    def __repr__(self) -> str:
        return f"GroqAnalysisProvider(model={self._model}, temperature={self._temperature})"
