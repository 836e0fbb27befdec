"""
PartsOrchestrator - sequences one chat turn through the parts lookup core.

Key guarantees:
- Ambiguous or empty results never raise; they come back as a ChatResult intent
- A clarification answer that is still ambiguous re-enters clarification
- Catalog and conversation store errors propagate unchanged
"""

import uuid
from typing import Any

from clarification.manager import ClarificationCheck, ClarificationManager
from clarification.store import ClarificationStore, PendingClarification
from clarification.sweeper import ClarificationSweeper
from config.config import Config
from context.context_tracker import ContextTracker
from db.contracts import CatalogStore, ConversationStore
from models.chat_result import ChatResult, ClarificationQuestion, Intent
from models.part import ScoredPart, filter_available
from orchestrator.confidence import EXACT_MATCH_SCORE, analyze_query_clarity, calculate_confidence
from orchestrator.intent import IntentDetector
from search.dialect import DialectDictionary, load_dialect
from search.engine import SearchEngine
from search.lexicon import Lexicon, load_lexicon
from search.normalizer import normalize_text
from search.query_normalizer import (
    DialectQueryNormalizer,
    FallbackQueryNormalizer,
    QueryNormalizer,
    create_query_normalizer,
)
from search.vehicle import find_model, names_other_model
from utils.logger import get_logger, session_scope

logger = get_logger(__name__)

_NO_SEARCH_INTENTS = (Intent.GREETING, Intent.THANKS, Intent.COMPLAINT, Intent.SERVICE_QUESTION)
_LABELLED_SEARCH_INTENTS = (Intent.PRICE_INQUIRY, Intent.STOCK_CHECK)


class PartsOrchestrator:
    def __init__(
        self,
        engine: SearchEngine,
        conversations: ConversationStore,
        clarifications: ClarificationManager,
        context_tracker: ContextTracker,
        normalizer: QueryNormalizer | None = None,
        intent_detector: IntentDetector | None = None,
        sweep_interval_seconds: float = 300,
    ):
        self.engine = engine
        self.lexicon: Lexicon = engine.lexicon
        self.conversations = conversations
        self.clarifications = clarifications
        self.context_tracker = context_tracker
        self.normalizer = normalizer or FallbackQueryNormalizer(DialectQueryNormalizer(load_dialect()))
        self.intent_detector = intent_detector or IntentDetector()
        self.sweeper = ClarificationSweeper(
            clarifications.store, sweep_interval_seconds, also_sweep=(context_tracker,)
        )

    @classmethod
    def build(
        cls,
        catalog: CatalogStore,
        conversations: ConversationStore,
        config: Config | None = None,
        lexicon: Lexicon | None = None,
        dialect: DialectDictionary | None = None,
        normalizer: QueryNormalizer | None = None,
    ) -> "PartsOrchestrator":
        """
        Wire the core from configuration.

        Args:
            catalog: Catalog store collaborator
            conversations: Conversation store collaborator
            config: Settings; read from the environment when omitted
            lexicon: Lexicon override, otherwise loaded from LEXICON_PATH
            dialect: Dialect dictionary override, otherwise loaded from DIALECT_PATH
            normalizer: Normalizer override, otherwise chosen from QUERY_NORMALIZER_PROVIDER

        Returns:
            A ready orchestrator; call start() inside a running loop to sweep expired clarifications
        """
        config = config or Config()
        lexicon = lexicon or load_lexicon(str(config.LEXICON_PATH))
        dialect = dialect or load_dialect(str(config.DIALECT_PATH))
        normalizer = normalizer or create_query_normalizer(config, dialect)

        engine = SearchEngine(
            catalog,
            lexicon,
            candidate_limit=config.CANDIDATE_LIMIT,
            max_terms=config.PREDICATE_MAX_TERMS,
            reference_exact_limit=config.REFERENCE_EXACT_LIMIT,
            reference_partial_limit=config.REFERENCE_PARTIAL_LIMIT,
        )
        clarifications = ClarificationManager(
            lexicon, ClarificationStore(ttl_seconds=config.CLARIFICATION_TTL_SECONDS)
        )
        tracker = ContextTracker(
            conversations,
            lexicon,
            dialect,
            ttl_seconds=config.CONTEXT_CACHE_TTL_SECONDS,
            default_vehicle_model=config.DEFAULT_VEHICLE_MODEL,
        )
        return cls(
            engine=engine,
            conversations=conversations,
            clarifications=clarifications,
            context_tracker=tracker,
            normalizer=normalizer,
            sweep_interval_seconds=config.CLARIFICATION_SWEEP_INTERVAL_SECONDS,
        )

    # ---------- lifecycle ----------

    def start(self) -> None:
        self.sweeper.start()

    async def close(self) -> None:
        await self.sweeper.stop()

    # ---------- turn handling ----------

    async def process_message(
        self,
        message: str,
        session_id: str | None = None,
        vehicle_model: str | None = None,
    ) -> ChatResult:
        """
        Handle one user message.

        Args:
            message: Raw user message
            session_id: Conversation id; a new one is generated when omitted
            vehicle_model: Session vehicle, e.g. "CELERIO"

        Returns:
            ChatResult with the turn's intent, products and optional clarification question
        """
        session_id = session_id or str(uuid.uuid4())
        with session_scope(session_id):
            return await self._handle_turn(session_id, (message or "").strip(), vehicle_model)

    async def _handle_turn(self, session_id: str, text: str, vehicle_model: str | None) -> ChatResult:
        await self.conversations.append_message(session_id, "user", text)
        context = await self.context_tracker.get(session_id)

        pending = self.clarifications.get_pending(session_id)
        if pending is not None and self.clarifications.is_answer(text, pending):
            return await self._answer_clarification(session_id, text, pending, vehicle_model, context.message_count)

        normalization = await self.normalizer.normalize(text)
        decision = self.intent_detector.detect(
            text,
            normalized=normalization.normalized,
            flagged_greeting=normalization.is_greeting,
            flagged_thanks=normalization.is_thanks,
        )
        logger.info(
            "Message classified",
            extra={
                "extra_fields": {
                    "session_id": session_id,
                    "intent": decision.intent.value,
                    "reasons": decision.reasons,
                    "normalizer": normalization.source,
                    "dialect": normalization.dialect_detected,
                }
            },
        )

        if decision.intent in _NO_SEARCH_INTENTS:
            return await self._finish(session_id, text, decision.intent, [], "", context.message_count)

        search_query = self.context_tracker.build_search_query(normalization.normalized, context, vehicle_model)
        outcome = await self.engine.search(
            search_query,
            dialect_detected=normalization.dialect_detected,
            raw_query=text,
            requested_model=vehicle_model,
        )

        if outcome.reference_attempted:
            intent = Intent.PARTS_SEARCH if outcome.results else Intent.NO_RESULTS
            return await self._finish(
                session_id,
                text,
                intent,
                outcome.results,
                outcome.reference,
                context.message_count,
                extra={"reference": outcome.reference},
            )

        requested_model = vehicle_model or (outcome.context.requested_model if outcome.context else None)
        products, mismatch = self._apply_vehicle_model(outcome.results, requested_model)
        if mismatch:
            return await self._finish(
                session_id,
                text,
                Intent.MODEL_MISMATCH,
                products,
                search_query,
                context.message_count,
                extra={"requested_model": requested_model},
            )

        check = self.clarifications.check_needed(products, search_query)
        if check.needed:
            part_name = self._pending_part_name(search_query)
            return await self._ask(session_id, text, search_query, check, products, part_name, context.message_count)

        # a fresh unambiguous search supersedes any unanswered question
        self.clarifications.clear_pending(session_id)

        if not products:
            return await self._finish(session_id, text, Intent.NO_RESULTS, [], search_query, context.message_count)

        part_name = self.lexicon.extract_part_name(normalize_text(search_query))
        if part_name:
            self.context_tracker.set_last_part(session_id, part_name)

        intent = decision.intent if decision.intent in _LABELLED_SEARCH_INTENTS else Intent.PARTS_SEARCH
        return await self._finish(session_id, text, intent, products, search_query, context.message_count)

    async def _answer_clarification(
        self,
        session_id: str,
        text: str,
        pending: PendingClarification,
        vehicle_model: str | None,
        conversation_length: int,
    ) -> ChatResult:
        answer = self.clarifications.resolve(pending, text)
        self.clarifications.clear_pending(session_id)

        products: list[ScoredPart] = []
        if pending.part_name:
            products = self.clarifications.refilter(
                list(pending.candidates), answer.part_name, answer.requirements, answer.type_label
            )
        if not products:
            outcome = await self.engine.search(answer.combined_query, requested_model=vehicle_model)
            products = outcome.results

        requested_model = vehicle_model or find_model(answer.combined_query, self.lexicon.vehicle_models)
        products, mismatch = self._apply_vehicle_model(products, requested_model)
        if mismatch:
            return await self._finish(
                session_id,
                text,
                Intent.MODEL_MISMATCH,
                products,
                answer.combined_query,
                conversation_length,
                extra={"requested_model": requested_model},
            )

        check = self.clarifications.check_needed(products, answer.combined_query)
        if check.needed:
            logger.info(
                "Clarification answer still ambiguous, asking next dimension",
                extra={
                    "extra_fields": {
                        "session_id": session_id,
                        "previous_dimension": pending.dimension.value,
                        "next_dimension": check.dimension.value,
                    }
                },
            )
            return await self._ask(
                session_id, text, answer.combined_query, check, products, answer.part_name, conversation_length
            )

        if answer.part_name:
            self.context_tracker.set_last_part(session_id, answer.part_name)

        intent = Intent.PARTS_SEARCH if products else Intent.NO_RESULTS
        return await self._finish(
            session_id,
            text,
            intent,
            products,
            answer.combined_query,
            conversation_length,
            extra={"clarified_dimension": pending.dimension.value},
        )

    async def _ask(
        self,
        session_id: str,
        text: str,
        query: str,
        check: ClarificationCheck,
        products: list[ScoredPart],
        part_name: str,
        conversation_length: int,
    ) -> ChatResult:
        self.clarifications.set_pending(session_id, query, check, products, part_name)
        question = self.clarifications.build_question(part_name, check)
        return await self._finish(
            session_id,
            text,
            Intent.CLARIFICATION_NEEDED,
            products,
            query,
            conversation_length,
            clarification=question,
        )

    async def _finish(
        self,
        session_id: str,
        text: str,
        intent: Intent,
        products: list[ScoredPart],
        search_query: str,
        conversation_length: int,
        clarification: ClarificationQuestion | None = None,
        extra: dict[str, Any] | None = None,
    ) -> ChatResult:
        clarity = analyze_query_clarity(text)
        confidence = calculate_confidence(
            products_found=len(products),
            exact_match=any(p.score > EXACT_MATCH_SCORE for p in products),
            conversation_length=conversation_length,
            query_clarity=clarity,
        )
        metadata: dict[str, Any] = {
            "products_found": len(products),
            "available_count": len(filter_available(products)),
            "conversation_length": conversation_length,
            "query_clarity": clarity,
            "confidence": confidence.level.value,
            "confidence_score": confidence.score,
        }
        if extra:
            metadata.update(extra)

        summary = clarification.text if clarification else f"[{intent.value}] {len(products)} produit(s)"
        await self.conversations.append_message(session_id, "bot", summary)

        logger.info(
            "Turn completed",
            extra={
                "extra_fields": {
                    "session_id": session_id,
                    "intent": intent.value,
                    "products": len(products),
                    "search_query": search_query,
                    "confidence": confidence.level.value,
                }
            },
        )
        return ChatResult(
            intent=intent,
            session_id=session_id,
            products=list(products),
            clarification=clarification,
            search_query=search_query,
            metadata=metadata,
        )

    # ---------- helpers ----------

    def _apply_vehicle_model(
        self, products: list[ScoredPart], requested_model: str | None
    ) -> tuple[list[ScoredPart], bool]:
        """
        Drop products naming another model.

        Returns:
            (products, mismatch); mismatch is True when every product names a
            different model, in which case the products are returned untouched
        """
        if not requested_model or not products:
            return products, False
        models = self.lexicon.vehicle_models
        compatible = [p for p in products if not names_other_model(p.designation, requested_model, models)]
        if compatible:
            return compatible, False
        logger.info(
            "Vehicle model mismatch",
            extra={"extra_fields": {"requested_model": requested_model, "products": len(products)}},
        )
        return products, True

    def _pending_part_name(self, query: str) -> str:
        # the generic menu asks "which part?", so there is no part yet
        if self.clarifications.is_generic_query(normalize_text(query)):
            return ""
        return self.clarifications.extract_part_name(query)
