"""
Groq Speaker Role Classifier
Asks a small, fast model which diarized speaker is the technician.
"""
import json
import logging
from typing import Dict, List, Optional

from groq import AsyncGroq

from callqa.domain.interfaces.speaker_role_classifier import SpeakerRoleClassifier
from callqa.domain.services.prompt_manager import PromptManager

logger = logging.getLogger(__name__)


class GroqSpeakerRoleClassifier(SpeakerRoleClassifier):
    """Content-based speaker role inference"""

    def __init__(
        self,
        client: AsyncGroq,
        prompts: PromptManager,
        model: str = "llama-3.1-8b-instant",
        timeout: float = 10.0
    ):
        self._client = client
        self._prompts = prompts
        self._model = model
        self._timeout = timeout

    async def classify(self, samples: Dict[str, List[str]]) -> str:
        system_prompt, user_prompt = self._prompts.render_speaker_role_prompts(samples)
        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0,
            max_tokens=20,
            response_format={"type": "json_object"},
            timeout=self._timeout,
        )
        content: Optional[str] = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ValueError("Empty speaker role response")

        tag = json.loads(content).get("technician")
        if not isinstance(tag, str) or tag not in samples:
            raise ValueError(f"Speaker role response named no known tag: {content}")
        return tag

    @property
    def name(self) -> str:
        return "groq"
