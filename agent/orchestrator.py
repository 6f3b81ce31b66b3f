"""
agent/orchestrator.py — Turn Orchestrator

The heart of Plugbot. For each inbound message the orchestrator:
    1. Serialises the turn on the conversation's lock
    2. Sends a typing indicator
    3. Returns "" for empty text, without planning
    4. Lets the CommandInterceptor short-circuit translate / show-languages
    5. Builds the per-turn skill registry from the configured services
    6. Asks the planner for a Plan over the bounded conversation history
    7. Runs the plan with the PlanExecutor
    8. Records the reply in history and sends it

Every failure other than cancellation ends the turn with a user-visible
error message; cancellation propagates to the transport.

Usage:
    orc = Orchestrator.from_settings(settings)
    await orc.on_members_added(channel)
    reply = await orc.run_turn("conv-1", "user-1", "Generate 2 images of a cat", channel)
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from agent.commands import CommandInterceptor
from agent.conversation import ConversationStore
from agent.executor import PlanExecutor
from agent.planner import BasePlanner, create_planner
from agent.response_synthesizer import ResponseAssembler
from agent.translation import LanguageTable, TranslationResolver
from brain.llm_client import LLMError
from brain.types import LLMConfig
from exceptions import PlugbotError
from observability.logger import conversation_context, get_logger
from skills.registry import ServiceHandles, build_registry
from skills.types import SkillContext

log = get_logger(__name__)

ERROR_REPLY = "Sorry, something went wrong while handling your message. Please try again."


class Orchestrator:
    """
    Coordinates one turn at a time per conversation.

    Inject all dependencies via constructor; use from_settings() for
    convenience when wiring up the application.
    """

    def __init__(
        self,
        services: ServiceHandles,
        planner: BasePlanner,
        interceptor: CommandInterceptor,
        assembler: ResponseAssembler,
        store: Optional[ConversationStore] = None,
        system_message: str = "",
        use_stepwise: bool = False,
    ) -> None:
        self._services = services
        self._planner = planner
        self._interceptor = interceptor
        self._assembler = assembler
        self._store = store or ConversationStore()
        self._system_message = system_message
        self._use_stepwise = use_stepwise

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def assembler(self) -> ResponseAssembler:
        return self._assembler

    # ─────────────────────────────────────────────────────────────────────────
    # Public: conversation start
    # ─────────────────────────────────────────────────────────────────────────

    async def on_members_added(self, channel) -> None:
        """Send the welcome message with one suggested action per configured question."""
        await channel.send_message(self._assembler.welcome())

    # ─────────────────────────────────────────────────────────────────────────
    # Public: one turn
    # ─────────────────────────────────────────────────────────────────────────

    async def run_turn(
        self,
        conversation_id: str,
        user_id: str,
        text: Optional[str],
        channel,
    ) -> str:
        """
        Process one user message and return the reply text.

        The reply has already been delivered through `channel` when this
        returns; the return value is for callers that log or test.
        """
        async with self._store.lock(conversation_id):
            with conversation_context(conversation_id, user_id):
                return await self._run_locked(conversation_id, text, channel)

    async def _run_locked(self, conversation_id: str, text: Optional[str], channel) -> str:
        await channel.send_typing()

        data = self._store.get(conversation_id)
        data.reset_scratch()

        if not text or not text.strip():
            return ""
        text = text.strip()

        log.info("orchestrator.turn_start", text=text[:120], turns=len(data))
        t0 = time.monotonic()

        try:
            intercepted = await self._interceptor.intercept(text, channel)
            if intercepted.handled:
                data.add_user(text)
                data.add_assistant(intercepted.reply)
                log.info("orchestrator.turn_intercepted", ms=_elapsed(t0))
                return intercepted.reply

            data.add_user(text)
            context = SkillContext(channel=channel, assembler=self._assembler, conversation_id=conversation_id)
            registry = build_registry(self._services, context, self._use_stepwise)

            history = data.history_prompt(self._system_message, max_tokens=self._planner.max_tokens)
            plan = await self._planner.run(history, registry, channel=channel)

            executor = PlanExecutor(channel)
            reply = await executor.execute(plan, registry)

            data.add_assistant(reply)
            if reply:
                await channel.send_message(self._assembler.assemble(reply))

            log.info(
                "orchestrator.turn_done",
                ms=_elapsed(t0),
                plan=repr(plan),
                failed_steps=len(executor.failed),
            )
            return reply

        except asyncio.CancelledError:
            log.info("orchestrator.turn_cancelled", ms=_elapsed(t0))
            raise
        except (PlugbotError, LLMError) as e:
            log.error("orchestrator.turn_error", error=str(e), error_type=type(e).__name__)
            return await self._fail(channel, data, e)
        except Exception as e:
            log.error("orchestrator.turn_error", error=str(e), error_type=type(e).__name__, exc_info=True)
            return await self._fail(channel, data, e)

    async def _fail(self, channel, data, error: Exception) -> str:
        reply = f"{ERROR_REPLY} ({type(error).__name__}: {error})"
        data.add_assistant(reply)
        await channel.send_message(reply)
        return reply

    # ─────────────────────────────────────────────────────────────────────────
    # Wiring
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_settings(
        cls,
        settings,
        llm_client=None,
        services: Optional[ServiceHandles] = None,
        translator=None,
    ) -> "Orchestrator":
        """
        Build an orchestrator from Settings.

        Backends are created from the configured secrets unless passed in;
        an unconfigured backend stays None and its skill is left out.
        """
        from brain import LLMClientFactory

        if llm_client is None:
            llm_client = LLMClientFactory.from_settings(settings)
        if services is None:
            services = build_services(settings, llm_client)
        if translator is None and settings.translator_configured:
            from services.translator import TranslatorClient
            translator = TranslatorClient(
                api_key=settings.translator_api_key,
                endpoint=settings.translator_api_endpoint,
                region=settings.translator.region,
                timeout=settings.translator.timeout_seconds,
            )

        table = LanguageTable(dict(settings.supported_languages))
        interceptor = CommandInterceptor(table, TranslationResolver(table, translator))

        return cls(
            services=services,
            planner=create_planner(settings, llm_client),
            interceptor=interceptor,
            assembler=ResponseAssembler.from_settings(settings),
            system_message=settings.bot.system_message,
            use_stepwise=settings.use_stepwise_planner,
        )


def build_services(settings, llm_client) -> ServiceHandles:
    """Create the backend clients that the current settings configure."""
    from brain.openai_client import OpenAIEmbeddingClient, OpenAIImageClient, build_sdk_client
    from brain.types import Provider

    sdk = build_sdk_client(
        Provider(settings.llm.provider),
        settings.aoai_api_key,
        settings.aoai_api_endpoint,
        api_version=settings.llm.api_version,
    )

    sql_factory = None
    if settings.sql_connection_string:
        from services.sql import SqlConnectionFactory
        sql_factory = SqlConnectionFactory(settings.sql_connection_string)

    search_client = embedding_client = None
    if settings.search_configured:
        from services.search import DocumentSearchClient
        search_client = DocumentSearchClient(
            api_key=settings.search_api_key,
            endpoint=settings.search_api_endpoint,
            index=settings.search.index,
            semantic_config=settings.search.semantic_config,
            api_version=settings.search.api_version,
        )
        embedding_client = OpenAIEmbeddingClient(sdk, settings.llm.embeddings_model)

    web_search_client = None
    if settings.bing_api_key:
        from services.bing import BingWebSearchClient
        web_search_client = BingWebSearchClient(api_key=settings.bing_api_key)

    return ServiceHandles(
        image_client=OpenAIImageClient(sdk, settings.llm.image_model),
        llm_client=llm_client,
        llm_config=LLMConfig(
            model=settings.llm.chat_model,
            temperature=settings.llm.temperature,
            max_tokens=settings.llm.max_tokens,
        ),
        sql_factory=sql_factory,
        search_client=search_client,
        embedding_client=embedding_client,
        web_search_client=web_search_client,
        search_top=settings.search.top,
    )


def _elapsed(t0: float) -> int:
    return round((time.monotonic() - t0) * 1000)
