"""Turn orchestrator for the grounded shopping assistant."""

import os
import re
import logging
import threading
from contextlib import contextmanager
from typing import Optional, List

from config.settings import Settings
from schemas.catalog import GroundedManifest
from schemas.context import Resolution, TurnRoute
from schemas.responses import GateResult, TurnResult, TurnState

# Memory components
from memory.store import SessionMemoryStore, InMemorySessionStore
from memory.sqlite_store import SQLiteSessionStore
from memory.context_manager import ConversationContextManager
from memory.models import ContextFrame

# Retrieval components
from retrieval.catalog_provider import CatalogProvider, SuggestionProvider, InMemoryCatalogProvider
from retrieval.catalog_api_provider import CatalogAPIProvider
from retrieval.grounding import CatalogGroundingRetriever
from retrieval.lexicon import CategoryLexicon, load_vocabulary, DATA_DIR
from retrieval.spelling import SpellingCorrector
from retrieval.text import normalize_text

# LLM components
from llm.factory import create_llm_client, LLMProvider

# Agents
from agents.focus_resolver import FocusResolver
from agents.ranker import DiversityRanker
from agents.generator import GenerativeService, LLMGenerativeService, StaticGenerativeService
from agents.response_gate import ResponseGate
from agents.small_talk import SmallTalkResponder

from observers import TurnObserver, TurnOutcome

logger = logging.getLogger(__name__)

_BUDGET_PATTERN = re.compile(r"\bate (?:us |usd |u |r )?(\d{2,6})\b")
_NAME_PATTERN = re.compile(r"\b(?:meu nome (?:é|e)|me chamo|pode me chamar de)\s+([^\W\d_]+)", re.IGNORECASE)
_CITY_PATTERN = re.compile(
    r"\b(?:moro em|sou de)\s+([^\W\d_]+(?:\s+(?:do|da|de|del|dos|das)\s+[^\W\d_]+)?)",
    re.IGNORECASE
)
_CITY_CONNECTORS = {"do", "da", "de", "del", "dos", "das"}


class ConversationOrchestrator:
    """
    Runs one conversational turn end-to-end.

    RECEIVE -> CLASSIFY -> {FOCUS_SHORTCUT | RETRIEVE} -> RANK ->
    BUILD_MANIFEST -> GENERATE -> VALIDATE -> RESPOND, with RESPOND_REFINE
    reachable from an empty manifest or an empty validated reply. Turns of
    one session are serialized; different sessions run independently.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SessionMemoryStore] = None,
        catalog: Optional[CatalogProvider] = None,
        suggestions: Optional[SuggestionProvider] = None,
        generator: Optional[GenerativeService] = None,
        lexicon: Optional[CategoryLexicon] = None,
        corrector: Optional[SpellingCorrector] = None,
        observers: Optional[List[TurnObserver]] = None,
        small_talk: Optional[SmallTalkResponder] = None
    ):
        """
        Initialize orchestrator.

        Collaborators not injected are built from settings.

        Args:
            settings: Application settings
            store: Session memory store
            catalog: Catalog search capability
            suggestions: Suggestion capability (defaults to the catalog when it suggests)
            generator: Generative language service
            lexicon: Category lexicon
            corrector: Spelling corrector
            observers: Turn observers
            small_talk: Small-talk responder
        """
        self.settings = settings or Settings()

        self.store = store or self._init_store()
        self.context_manager = ConversationContextManager(self.store)

        self.catalog = catalog or self._init_catalog()
        if suggestions is None and isinstance(self.catalog, SuggestionProvider):
            suggestions = self.catalog
        self.lexicon = lexicon or CategoryLexicon(path=self.settings.categories_path)
        self.corrector = corrector or SpellingCorrector(
            load_vocabulary(self.settings.vocabulary_path),
            threshold=self.settings.correction_threshold
        )
        self.retriever = CatalogGroundingRetriever(
            catalog=self.catalog,
            suggestions=suggestions,
            corrector=self.corrector,
            timeout_s=self.settings.external_timeout_s,
            suggestion_terms=self.settings.suggestion_terms
        )

        self.resolver = FocusResolver(self.lexicon)
        self.ranker = DiversityRanker()
        self.gate = ResponseGate(generator or self._init_generator())
        self.small_talk = small_talk or SmallTalkResponder(self.resolver.patterns)
        self.observers = list(observers or [])

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _init_store(self) -> SessionMemoryStore:
        """Initialize memory store based on settings."""
        if self.settings.memory_backend == "sqlite":
            logger.info(f"Using SQLite session store: {self.settings.db_path}")
            return SQLiteSessionStore(
                db_path=self.settings.db_path,
                context_stack_size=self.settings.context_stack_size
            )
        if self.settings.memory_backend != "memory":
            raise ValueError(f"Unsupported memory backend: {self.settings.memory_backend}")
        return InMemorySessionStore(context_stack_size=self.settings.context_stack_size)

    def _init_catalog(self) -> CatalogProvider:
        """Initialize catalog provider (API when configured, local JSON otherwise)."""
        if self.settings.catalog_api_url:
            logger.info(f"Using catalog API: {self.settings.catalog_api_url}")
            return CatalogAPIProvider(
                base_url=self.settings.catalog_api_url,
                timeout=self.settings.external_timeout_s,
                auth_token=self.settings.catalog_api_token
            )

        path = self.settings.catalog_json_path or str(DATA_DIR / "sample_catalog.json")
        if os.path.exists(path):
            logger.info(f"Using local catalog: {path}")
            return InMemoryCatalogProvider(json_path=path)

        logger.warning(f"No catalog API configured and {path} not found; catalog is empty")
        return InMemoryCatalogProvider(products=[])

    def _init_generator(self) -> GenerativeService:
        """Initialize generative service (LLM or static fallback)."""
        api_key = self.settings.get_llm_api_key()

        if not api_key:
            logger.warning(
                f"No API key for {self.settings.llm_provider}. "
                "Using static generation fallback."
            )
            return StaticGenerativeService()

        llm_client = create_llm_client(
            provider=LLMProvider(self.settings.llm_provider),
            api_key=api_key,
            model=self.settings.llm_model,
            timeout=self.settings.external_timeout_s
        )
        logger.info(
            f"LLM client initialized: {self.settings.llm_provider} "
            f"({llm_client.get_model_name()})"
        )
        return LLMGenerativeService(
            llm_client,
            temperature=self.settings.generation_temperature,
            max_tokens=self.settings.generation_max_tokens
        )

    @contextmanager
    def _session_lock(self, session_id: str):
        with self._locks_guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        with lock:
            yield

    def process_turn(self, session_id: str, utterance: str) -> TurnResult:
        """
        Process one user utterance.

        Args:
            session_id: Session ID (unknown ids start a new session)
            utterance: Free-text user message

        Returns:
            TurnResult ending in RESPOND or RESPOND_REFINE
        """
        with self._session_lock(session_id):
            return self._process_turn(session_id, utterance)

    def _process_turn(self, session_id: str, utterance: str) -> TurnResult:
        states = [TurnState.RECEIVE]
        memory = self.store.get_or_create(session_id)
        history = self.context_manager.get_conversation_context_string(session_id)

        # CLASSIFY
        states.append(TurnState.CLASSIFY)
        resolution = self.resolver.resolve(memory, utterance)
        self.store.append_message(
            session_id, "user", utterance, meta={"intent": resolution.route.value}
        )
        self._update_profile(session_id, utterance, resolution)

        if self.settings.verbose:
            print(f"\n{'='*60}")
            print(f"SESSION {session_id}: {utterance}")
            print(f"ROUTE: {resolution.route.value} {[m.value for m in resolution.matched]}")

        if resolution.route == TurnRoute.SMALL_TALK:
            profile = self.store.snapshot(session_id).user_profile
            message = self.small_talk.reply(utterance, profile.name)
            states.append(TurnState.RESPOND)
            self.store.append_message(
                session_id, "assistant", message, meta={"intent": resolution.route.value}
            )
            result = TurnResult(
                session_id=session_id,
                route=resolution.route,
                message=message,
                focus_id=memory.current_focus_id,
                states=states,
            )
            self._notify(result, utterance, GroundedManifest(), None)
            return result

        tier = None
        if resolution.route == TurnRoute.FOCUS_SHORTCUT:
            states.append(TurnState.FOCUS_SHORTCUT)
            states.append(TurnState.RANK)
            manifest = self.ranker.rank(resolution.seed)
        else:
            if resolution.invalidate_focus:
                self.store.set_focus(session_id, None)
            states.append(TurnState.RETRIEVE)
            outcome = self.retriever.retrieve(utterance)
            tier = outcome.tier
            states.append(TurnState.RANK)
            manifest = self.ranker.rank(outcome.candidates, resolution.carried_seed)

        states.append(TurnState.BUILD_MANIFEST)
        if manifest.is_empty():
            gate_result = self.gate.refine_result(generated=False)
        else:
            states.append(TurnState.GENERATE)
            gate_result = self.gate.respond(
                utterance,
                manifest,
                user_profile=self.store.snapshot(session_id).user_profile,
                history=history
            )
            states.append(TurnState.VALIDATE)
        states.append(TurnState.RESPOND_REFINE if gate_result.refine else TurnState.RESPOND)

        focus_id = self._update_memory(session_id, utterance, resolution, manifest, gate_result)

        if self.settings.verbose:
            print(f"TIER: {tier}  MANIFEST: {len(manifest.top8)}  ITEMS: {[i.id for i in gate_result.items]}")
            print(f"STATES: {' -> '.join(s.value for s in states)}")

        result = TurnResult(
            session_id=session_id,
            route=resolution.route,
            message=gate_result.message,
            items=gate_result.items,
            products=gate_result.products,
            refine=gate_result.refine,
            focus_id=focus_id,
            tier=tier,
            states=states,
        )
        self._notify(result, utterance, manifest, gate_result)
        return result

    def _update_memory(
        self,
        session_id: str,
        utterance: str,
        resolution: Resolution,
        manifest: GroundedManifest,
        gate_result: GateResult
    ) -> Optional[str]:
        """Record the turn in memory and return the focus id after the turn."""
        memory = self.store.get_or_create(session_id)
        self.store.append_message(
            session_id, "assistant", gate_result.message, meta={"intent": resolution.route.value}
        )

        # A refine reply presents nothing, so it shows no candidates and keeps the focus
        presented = not manifest.is_empty() and not gate_result.refine
        shown = manifest.top8 if presented else []

        if resolution.route == TurnRoute.FOCUS_SHORTCUT:
            if presented:
                self.store.set_shown(session_id, shown, category=memory.last_category)
            self.store.push_context(session_id, ContextFrame(
                type="product",
                payload={"id": resolution.focus.id, "title": resolution.focus.title},
                relevance=0.9,
            ))
            return memory.current_focus_id

        category = resolution.inferred_category
        if category is None and resolution.carried_seed:
            category = memory.last_category
        self.store.set_shown(session_id, shown, query=utterance, category=category)
        self.store.push_context(session_id, ContextFrame(
            type="query",
            payload={"query": utterance, "category": category, "results": len(shown)},
            relevance=1.0 if presented else 0.5,
        ))

        focus_id = memory.current_focus_id
        if presented and (resolution.explicit_mention or focus_id is None):
            new_focus = gate_result.items[0].id if gate_result.items else manifest.top3[0].id
            if new_focus != focus_id:
                focus_id = new_focus
                self.store.set_focus(session_id, focus_id)
                focused = manifest.get(focus_id)
                self.store.push_context(session_id, ContextFrame(
                    type="product",
                    payload={"id": focus_id, "title": focused.title if focused else ""},
                    relevance=1.0,
                ))
        return focus_id

    def _update_profile(self, session_id: str, utterance: str, resolution: Resolution) -> None:
        partial = {}
        if resolution.inferred_category:
            partial["preferred_categories"] = [resolution.inferred_category]
        budget = _BUDGET_PATTERN.search(normalize_text(utterance))
        if budget:
            partial["budget"] = float(budget.group(1))
        name = _NAME_PATTERN.search(utterance)
        if name:
            partial["name"] = name.group(1).capitalize()
        city = _CITY_PATTERN.search(utterance)
        if city:
            partial["city"] = " ".join(
                w.lower() if w.lower() in _CITY_CONNECTORS else w.capitalize()
                for w in city.group(1).split()
            )
        if partial:
            self.store.merge_profile(session_id, partial)

    def _notify(
        self,
        result: TurnResult,
        utterance: str,
        manifest: GroundedManifest,
        gate_result: Optional[GateResult]
    ) -> None:
        outcome = TurnOutcome(
            session_id=result.session_id,
            utterance=utterance,
            route=result.route,
            tier=result.tier,
            manifest_size=len(manifest.top8),
            item_ids=tuple(item.id for item in result.items),
            dropped_ids=tuple(gate_result.dropped_ids) if gate_result else (),
            refine=result.refine,
            malformed=gate_result.malformed if gate_result else False,
            states=tuple(result.states),
        )
        for observer in self.observers:
            try:
                observer.on_turn(outcome)
            except Exception as e:
                logger.error(f"Turn observer {observer.__class__.__name__} failed: {e}")

    def get_conversation_history(self, session_id: str) -> list:
        """Get conversation history for display."""
        memory = self.store.snapshot(session_id)
        return [
            {"role": m.role, "content": m.content, "timestamp": m.timestamp}
            for m in memory.messages
        ]


# Alias for backward compatibility
Orchestrator = ConversationOrchestrator
