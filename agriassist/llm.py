# agriassist/llm.py
from __future__ import annotations

import json
import logging
from typing import Optional, Type, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from agriassist.config import settings
from agriassist.errors import ExternalServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class AdvisorLLM:
    """
    Chat-completions client that answers in JSON matching a pydantic model.

    The reply schema goes into the system message and the model is asked for a
    JSON object; the reply is validated with `output_model.model_validate_json`.
    """

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None,
                 temperature: Optional[float] = None):
        self._client = client
        self.model = model or settings.LLM_MODEL
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.LLM_TIMEOUT_SECONDS)
        return self._client

    @staticmethod
    def _system_message(output_model: Type[BaseModel]) -> str:
        schema = json.dumps(output_model.model_json_schema(by_alias=True))
        return (
            "You are part of AgriAssist, a farm-management assistant. "
            "Reply with a single JSON object that validates against this JSON schema:\n"
            f"{schema}"
        )

    def generate(self, prompt: str, output_model: Type[T], *, image_url: Optional[str] = None) -> T:
        user_content = prompt
        if image_url:
            user_content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": self._system_message(output_model)},
                    {"role": "user", "content": user_content},
                ],
            )
            raw = resp.choices[0].message.content or ""
            return output_model.model_validate_json(raw)
        except (OpenAIError, ValidationError, IndexError) as e:
            logger.exception("LLM call failed for %s", output_model.__name__)
            raise ExternalServiceError("The AI service could not produce an answer. Please try again.") from e
