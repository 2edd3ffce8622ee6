"""Generative language service behind the response gate."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from llm.base_client import BaseLLMClient, Message
from memory.models import UserProfile
from schemas.catalog import ManifestEntry

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """Everything the generative layer is given for one turn."""
    contract: str
    query: str
    user_profile: UserProfile = Field(default_factory=UserProfile)
    manifest: list[ManifestEntry] = Field(default_factory=list)
    history: str = ""


class GenerativeService(ABC):
    """Produces the raw reply text for a generation request."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> str:
        """
        Generate a reply.

        Returns:
            Raw text expected to hold ``{"items": [...], "message": "..."}``
        """
        pass


class LLMGenerativeService(GenerativeService):
    """Generative service backed by an LLM client."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        temperature: float = 0.4,
        max_tokens: int = 800
    ):
        """
        Initialize LLM generative service.

        Args:
            llm_client: LLM client (OpenAI or Anthropic)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the reply
        """
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate(self, request: GenerationRequest) -> str:
        messages = [
            Message(role="system", content=request.contract),
            Message(role="user", content=self._build_user_prompt(request)),
        ]

        response = self.llm_client.chat(
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            json_mode=True
        )

        if response.usage:
            logger.debug(f"Generation usage: {response.usage}")

        return response.content

    def _build_user_prompt(self, request: GenerationRequest) -> str:
        """Build the user prompt from the request."""
        parts = []

        if request.history:
            parts.append(request.history)

        parts.append(f"## Pergunta do cliente\n{request.query}")

        profile = request.user_profile
        profile_bits = []
        if profile.name:
            profile_bits.append(f"nome: {profile.name}")
        if profile.preferred_categories:
            profile_bits.append(f"categorias preferidas: {', '.join(profile.preferred_categories)}")
        if profile.interests:
            profile_bits.append(f"interesses: {', '.join(profile.interests)}")
        if profile.budget is not None:
            profile_bits.append(f"orçamento: USD {profile.budget:.0f}")
        if profile.city:
            profile_bits.append(f"cidade: {profile.city}")
        if profile_bits:
            parts.append("## Perfil do cliente\n" + "; ".join(profile_bits))

        manifest = [entry.model_dump(exclude_none=True) for entry in request.manifest]
        parts.append(
            "## PRODUTOS PERMITIDOS (manifesto)\n"
            + json.dumps(manifest, ensure_ascii=False)
        )

        return "\n\n".join(parts)


class StaticGenerativeService(GenerativeService):
    """Returns a fixed reply; used when no LLM is configured and in tests."""

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        self.requests: list[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.reply is not None:
            return self.reply

        # Cite the headline products in manifest order
        items = [
            {"id": entry.id, "reason": f"{entry.title} na {entry.store}"}
            for entry in request.manifest[:3]
        ]
        message = "Separei estas opções para você:" if items else ""
        return json.dumps({"items": items, "message": message}, ensure_ascii=False)
