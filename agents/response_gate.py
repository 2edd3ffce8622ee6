"""Anti-hallucination response gate between retrieval and generation."""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from memory.models import UserProfile
from schemas.catalog import GroundedManifest
from schemas.responses import GateResult, GenerationItem, GenerationOutput
from .generator import GenerationRequest, GenerativeService

logger = logging.getLogger(__name__)


class ResponseGate:
    """
    Restricts every generated reply to the turn's manifest.

    The generation contract asks the model to stay inside the manifest, but
    the guarantee comes from the post-generation filter: item ids outside
    the manifest are dropped whatever the model says, and a reply left with
    no valid items is replaced by the refine request.
    """

    MANIFEST_CAP = 8

    REFINE_MESSAGE = (
        "Não encontrei resultados para isso. Pode refinar informando "
        "categoria, cidade ou orçamento?"
    )

    CONTRACT = """Você é o vendedor consultivo de um marketplace de lojas do Paraguai
(Ciudad del Este, Salto del Guairá, Pedro Juan Caballero). Fale português brasileiro natural.

## Regras obrigatórias
1. Cite SOMENTE produtos da lista PRODUTOS PERMITIDOS (manifesto), usando o campo "id" exatamente como aparece.
2. Nunca invente produtos, preços, lojas ou ids. Se um dado não está no manifesto, não o mencione.
3. Se o manifesto estiver vazio, NÃO responda a pergunta: peça para o cliente refinar (categoria, cidade ou orçamento).
4. Máximo 4 linhas na mensagem. Compare as opções quando houver mais de uma.

## Formato da resposta
Responda APENAS com JSON válido:
{"items": [{"id": "<id do manifesto>", "reason": "<motivo curto>"}], "message": "<texto para o cliente>"}"""

    def __init__(self, generator: GenerativeService):
        """
        Initialize gate.

        Args:
            generator: Generative language service
        """
        self.generator = generator

    def respond(
        self,
        query: str,
        manifest: GroundedManifest,
        user_profile: Optional[UserProfile] = None,
        history: str = ""
    ) -> GateResult:
        """
        Generate a grounded reply for one turn.

        Args:
            query: User utterance
            manifest: Ranked manifest for this turn
            user_profile: Session user profile
            history: Recent conversation text for the prompt

        Returns:
            GateResult whose items all reference manifest ids
        """
        entries = manifest.entries(self.MANIFEST_CAP)
        if not entries:
            logger.info("Empty manifest, answering with refine request")
            return self.refine_result(generated=False)

        request = GenerationRequest(
            contract=self.CONTRACT,
            query=query,
            user_profile=user_profile or UserProfile(),
            manifest=entries,
            history=history,
        )

        try:
            raw = self.generator.generate(request)
        except Exception as e:
            # Timeouts, transport errors or a missing client: fail closed
            logger.error(f"Generation failed: {e}")
            return self.refine_result(generated=True, malformed=True)

        output = self.parse(raw)
        if output is None:
            return self.refine_result(generated=True, malformed=True)

        return self.validate(output, manifest)

    def parse(self, raw: Optional[str]) -> Optional[GenerationOutput]:
        """
        Parse the generator's reply into the required shape.

        Returns:
            GenerationOutput, or None when the reply is malformed
        """
        if not raw:
            logger.warning("Generator returned an empty reply")
            return None

        content = raw.strip()

        # Handle potential markdown code blocks
        if content.startswith("```"):
            content = content.split("```")[1]
            if content.startswith("json"):
                content = content[4:]
            content = content.strip()

        try:
            return GenerationOutput.model_validate(json.loads(content))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse generation output as JSON: {e}")
            return None
        except ValidationError as e:
            logger.warning(f"Generation output has the wrong shape: {e.error_count()} errors")
            return None

    def validate(self, output: GenerationOutput, manifest: GroundedManifest) -> GateResult:
        """
        Filter generated items against the manifest.

        Unknown and repeated ids are dropped silently; if nothing survives the
        refine request replaces the reply.
        """
        allowed = {entry.id: entry for entry in manifest.entries(self.MANIFEST_CAP)}
        kept: list[GenerationItem] = []
        dropped: list[str] = []
        seen = set()

        for item in output.items:
            if item.id in allowed and item.id not in seen:
                kept.append(item)
                seen.add(item.id)
            elif item.id not in allowed:
                dropped.append(item.id)

        if dropped:
            logger.warning(f"Dropped {len(dropped)} generated item ids outside the manifest")

        if not kept:
            return self.refine_result(generated=True, dropped_ids=dropped)

        message = output.message.strip() or "Separei estas opções para você:"
        return GateResult(
            items=kept,
            message=message,
            products=[allowed[item.id] for item in kept],
            refine=False,
            generated=True,
            dropped_ids=dropped,
        )

    def refine_result(
        self,
        generated: bool,
        malformed: bool = False,
        dropped_ids: Optional[list[str]] = None
    ) -> GateResult:
        """Canned refine request with no items."""
        return GateResult(
            items=[],
            message=self.REFINE_MESSAGE,
            products=[],
            refine=True,
            generated=generated,
            dropped_ids=dropped_ids or [],
            malformed=malformed,
        )
