"""
tests/unit/test_skills.py — Skill Layer Unit Tests

Covers:
  - bind_arguments: unknown / missing / defaulted / coerced arguments
  - SkillRegistry: duplicates, lookups, manifest validation
  - build_registry: capability gating by configured services and planner
  - SkillBus: every failure path becomes a SkillResult; cancellation propagates
  - Built-in skills: image generation, SQL, document search, web search, answer_directly

Run with:
    pytest tests/unit/test_skills.py -v
"""

from __future__ import annotations

import asyncio
import sqlite3
import sys
from pathlib import Path
from typing import ClassVar
from unittest.mock import AsyncMock, MagicMock

import pytest

_ROOT = Path(__file__).parent.parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from agent.response_synthesizer import OutgoingMessage, ResponseAssembler
from exceptions import SearchServiceError, SkillValidationError, SqlQueryError
from skills.base import SkillBase
from skills.builtin.document_search import DocumentSearchSkill
from skills.builtin.human_interface import AnswerDirectlySkill
from skills.builtin.image_generation import ImageGenerationSkill
from skills.builtin.sql_query import SqlQuerySkill
from skills.builtin.web_search import WebSearchSkill
from services.sql import SqlConnectionFactory
from skills.bus import MAX_RESULT_CHARS, SkillBus, bind_arguments
from skills.registry import ServiceHandles, SkillRegistry, build_registry
from skills.types import ParamSpec, SkillCall, SkillContext, SkillManifest, SkillNotFoundError, SkillResult


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


class FakeChannel:
    def __init__(self):
        self.sent = []
        self.typing = 0

    async def send_message(self, message):
        self.sent.append(message)

    async def send_typing(self):
        self.typing += 1


def make_context(channel=None) -> SkillContext:
    return SkillContext(channel=channel or FakeChannel(), assembler=ResponseAssembler())


class EchoSkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="echo",
        description="Echo the text back.",
        parameters=(
            ParamSpec("text", "string", "What to echo"),
            ParamSpec("times", "integer", "Repeat count", required=False, default=1),
        ),
    )

    async def execute(self, text: str, times: int = 1, **kwargs) -> SkillResult:
        return SkillResult.ok(
            skill_name=self.manifest.name,
            skill_call_id=kwargs.get("_skill_call_id", ""),
            output=text * times,
        )


def make_skill(name: str, behaviour, timeout_seconds=60) -> SkillBase:
    """Build a one-off skill whose execute() delegates to `behaviour`."""
    manifest = SkillManifest(name=name, description="test skill", timeout_seconds=timeout_seconds)

    class _Skill(SkillBase):
        async def execute(self, **kwargs):
            return await behaviour(**kwargs)

    _Skill.manifest = manifest
    return _Skill()


def registry_with(*skills) -> SkillRegistry:
    registry = SkillRegistry()
    for skill in skills:
        registry.register(skill)
    return registry


# ─────────────────────────────────────────────────────────────────────────────
# bind_arguments
# ─────────────────────────────────────────────────────────────────────────────


class TestBindArguments:

    def test_defaults_fill_missing_optional(self):
        bound = bind_arguments(EchoSkill.manifest, {"text": "hi"})
        assert bound == {"text": "hi", "times": 1}

    def test_missing_required_raises(self):
        with pytest.raises(SkillValidationError, match="missing required argument 'text'"):
            bind_arguments(EchoSkill.manifest, {"times": 2})

    def test_unknown_argument_raises(self):
        with pytest.raises(SkillValidationError, match="unexpected argument"):
            bind_arguments(EchoSkill.manifest, {"text": "hi", "colour": "red"})

    def test_numeric_string_coerced_to_integer(self):
        assert bind_arguments(EchoSkill.manifest, {"text": "hi", "times": "3"})["times"] == 3

    def test_integral_float_coerced_to_integer(self):
        assert bind_arguments(EchoSkill.manifest, {"text": "hi", "times": 2.0})["times"] == 2

    def test_bool_rejected_for_integer(self):
        with pytest.raises(SkillValidationError, match="expected integer"):
            bind_arguments(EchoSkill.manifest, {"text": "hi", "times": True})

    def test_non_numeric_string_rejected_for_integer(self):
        with pytest.raises(SkillValidationError):
            bind_arguments(EchoSkill.manifest, {"text": "hi", "times": "lots"})

    def test_number_coerced_to_string(self):
        assert bind_arguments(EchoSkill.manifest, {"text": 42})["text"] == "42"

    def test_none_treated_as_missing(self):
        assert bind_arguments(EchoSkill.manifest, {"text": "hi", "times": None})["times"] == 1

    def test_boolean_strings(self):
        manifest = SkillManifest(
            name="flag", description="", parameters=(ParamSpec("on", "boolean"),),
        )
        assert bind_arguments(manifest, {"on": "yes"}) == {"on": True}
        assert bind_arguments(manifest, {"on": "off"}) == {"on": False}
        with pytest.raises(SkillValidationError):
            bind_arguments(manifest, {"on": "maybe"})


# ─────────────────────────────────────────────────────────────────────────────
# SkillRegistry
# ─────────────────────────────────────────────────────────────────────────────


class TestSkillRegistry:

    def test_register_and_get(self):
        registry = registry_with(EchoSkill())
        assert "echo" in registry
        assert len(registry) == 1
        assert registry.get_manifest("echo") is EchoSkill.manifest

    def test_duplicate_name_raises(self):
        registry = registry_with(EchoSkill())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(EchoSkill())

    def test_get_unknown_raises(self):
        with pytest.raises(SkillNotFoundError):
            SkillRegistry().get("missing")

    def test_get_or_none(self):
        assert SkillRegistry().get_or_none("missing") is None

    def test_malformed_manifest_rejected(self):
        class BadName(SkillBase):
            manifest = SkillManifest(name="Bad Name", description="")

            async def execute(self, **kwargs):
                return "x"

        with pytest.raises(SkillValidationError, match="snake_case"):
            SkillRegistry().register(BadName())

    def test_unsupported_param_type_rejected(self):
        class BadParam(SkillBase):
            manifest = SkillManifest(
                name="bad_param", description="", parameters=(ParamSpec("x", "object"),),
            )

            async def execute(self, **kwargs):
                return "x"

        with pytest.raises(SkillValidationError, match="unsupported type"):
            SkillRegistry().register(BadParam())

    def test_llm_schema_lists_required(self):
        schema = EchoSkill.manifest.to_llm_schema()
        assert schema["name"] == "echo"
        assert schema["parameters"]["required"] == ["text"]
        assert schema["parameters"]["properties"]["times"]["default"] == 1


class TestBuildRegistry:

    def test_only_image_generation_when_nothing_configured(self):
        registry = build_registry(ServiceHandles(image_client=MagicMock()), make_context(), use_stepwise=True)
        assert registry.list_names() == ["generate_images"]

    def test_answer_directly_only_for_direct_planner(self):
        services = ServiceHandles(image_client=MagicMock(), llm_client=MagicMock())
        direct = build_registry(services, make_context(), use_stepwise=False)
        stepwise = build_registry(services, make_context(), use_stepwise=True)
        assert "answer_directly" in direct
        assert "answer_directly" not in stepwise

    def test_all_capabilities_when_configured(self):
        services = ServiceHandles(
            image_client=MagicMock(),
            llm_client=MagicMock(),
            sql_factory=MagicMock(),
            search_client=MagicMock(),
            embedding_client=MagicMock(),
            web_search_client=MagicMock(),
        )
        registry = build_registry(services, make_context(), use_stepwise=False)
        assert sorted(registry.list_names()) == [
            "answer_directly", "generate_images", "search_documents", "sql_query", "web_search",
        ]

    def test_document_search_needs_embeddings_too(self):
        services = ServiceHandles(image_client=MagicMock(), search_client=MagicMock())
        registry = build_registry(services, make_context(), use_stepwise=True)
        assert "search_documents" not in registry


# ─────────────────────────────────────────────────────────────────────────────
# SkillBus
# ─────────────────────────────────────────────────────────────────────────────


class TestSkillBus:

    @pytest.mark.asyncio
    async def test_success(self):
        bus = SkillBus(registry_with(EchoSkill()))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="echo", arguments={"text": "ab", "times": "2"}))
        assert result.success
        assert result.output == "abab"
        assert result.skill_call_id == "c1"

    @pytest.mark.asyncio
    async def test_unregistered_skill(self):
        result = await SkillBus(SkillRegistry()).dispatch(SkillCall(id="c1", skill_name="nope"))
        assert not result.success
        assert result.error_type == "SkillNotFoundError"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        bus = SkillBus(registry_with(EchoSkill()))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="echo", arguments={}))
        assert not result.success
        assert result.error_type == "SkillValidationError"
        assert result.error.startswith("Invalid arguments:")

    @pytest.mark.asyncio
    async def test_raw_return_value_is_wrapped(self):
        async def behaviour(**kwargs):
            return {"rows": 2}

        bus = SkillBus(registry_with(make_skill("raw", behaviour)))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="raw"))
        assert result.success
        assert result.output == {"rows": 2}
        assert result.summary == '{"rows": 2}'

    @pytest.mark.asyncio
    async def test_long_output_truncated(self):
        async def behaviour(**kwargs):
            return "x" * (MAX_RESULT_CHARS + 100)

        bus = SkillBus(registry_with(make_skill("long", behaviour)))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="long"))
        assert result.output.startswith("x" * MAX_RESULT_CHARS)
        assert "100 chars omitted" in result.output

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def behaviour(**kwargs):
            await asyncio.sleep(5)

        bus = SkillBus(registry_with(make_skill("slow", behaviour, timeout_seconds=0.05)))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="slow"))
        assert not result.success
        assert result.error_type == "SkillTimeoutError"

    @pytest.mark.asyncio
    async def test_backend_error_keeps_message(self):
        async def behaviour(**kwargs):
            raise SearchServiceError("Web search failed. Status code: 503", service="bing", status_code=503)

        bus = SkillBus(registry_with(make_skill("web", behaviour)))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="web"))
        assert not result.success
        assert result.error == "Web search failed. Status code: 503"
        assert result.error_type == "SearchServiceError"
        assert result.summary == "[web failed: Web search failed. Status code: 503]"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(self):
        async def behaviour(**kwargs):
            raise RuntimeError("boom")

        bus = SkillBus(registry_with(make_skill("broken", behaviour)))
        result = await bus.dispatch(SkillCall(id="c1", skill_name="broken"))
        assert not result.success
        assert result.error == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        async def behaviour(**kwargs):
            raise asyncio.CancelledError()

        bus = SkillBus(registry_with(make_skill("cancelled", behaviour)))
        with pytest.raises(asyncio.CancelledError):
            await bus.dispatch(SkillCall(id="c1", skill_name="cancelled"))

    @pytest.mark.asyncio
    async def test_validate_failure_skips_execute(self):
        sql = MagicMock()
        sql.query = AsyncMock()
        bus = SkillBus(registry_with(SqlQuerySkill(make_context(), sql_factory=sql)))
        result = await bus.dispatch(
            SkillCall(id="c1", skill_name="sql_query", arguments={"query": "DELETE FROM users"})
        )
        assert not result.success
        assert result.error_type == "SkillValidationError"
        sql.query.assert_not_called()


# ─────────────────────────────────────────────────────────────────────────────
# Built-in skills
# ─────────────────────────────────────────────────────────────────────────────


class TestImageGenerationSkill:

    def _skill(self, channel, urls):
        client = MagicMock()
        client.generate_image = AsyncMock(side_effect=urls)
        return ImageGenerationSkill(make_context(channel), image_client=client), client

    @pytest.mark.asyncio
    async def test_zero_count_generates_one(self):
        channel = FakeChannel()
        skill, client = self._skill(channel, ["https://img/1.png"])
        bus = SkillBus(registry_with(skill))

        result = await bus.dispatch(
            SkillCall(id="c1", skill_name="generate_images", arguments={"prompt": "a cat", "n": 0})
        )

        assert result.success
        assert client.generate_image.await_count == 1
        assert result.output == "1 images were generated successfully and already sent to user."

    @pytest.mark.asyncio
    async def test_three_images_one_card(self):
        channel = FakeChannel()
        urls = ["https://img/1.png", "https://img/2.png", "https://img/3.png"]
        skill, client = self._skill(channel, urls)

        result = await skill.execute(prompt="a lighthouse", n=3, _skill_call_id="c1")

        assert client.generate_image.await_count == 3
        assert result.attachments == tuple(urls)
        assert channel.sent[0] == 'Generating 3 images with the description "a lighthouse"...'

        card_message = channel.sent[1]
        assert isinstance(card_message, OutgoingMessage)
        assert len(card_message.attachments) == 1
        body = card_message.attachments[0].content["body"]
        assert len(body) == 4
        assert body[0]["type"] == "TextBlock"
        assert [el["url"] for el in body[1:]] == urls

    @pytest.mark.asyncio
    async def test_default_count_is_one(self):
        skill, client = self._skill(FakeChannel(), ["https://img/1.png"])
        bus = SkillBus(registry_with(skill))
        await bus.dispatch(SkillCall(id="c1", skill_name="generate_images", arguments={"prompt": "x"}))
        assert client.generate_image.await_count == 1


class TestSqlQuerySkill:

    @pytest.mark.asyncio
    async def test_formats_rows(self):
        sql = MagicMock()
        sql.query = AsyncMock(return_value=[{"name": "Ada", "age": 36}, {"name": "Alan", "age": 41}])
        skill = SqlQuerySkill(make_context(), sql_factory=sql)

        result = await skill.execute(query="SELECT name, age FROM people;", _skill_call_id="c1")

        sql.query.assert_awaited_once_with("SELECT name, age FROM people")
        assert result.output.splitlines() == ["2 row(s):", "name | age", "Ada | 36", "Alan | 41"]

    @pytest.mark.asyncio
    async def test_no_rows(self):
        sql = MagicMock()
        sql.query = AsyncMock(return_value=[])
        result = await SqlQuerySkill(make_context(), sql_factory=sql).execute(query="SELECT 1")
        assert result.output == "The query returned no rows."

    @pytest.mark.asyncio
    async def test_multiple_statements_rejected(self):
        skill = SqlQuerySkill(make_context(), sql_factory=MagicMock())
        with pytest.raises(SkillValidationError, match="single SQL statement"):
            await skill.validate(query="SELECT 1; SELECT 2")

    @pytest.mark.asyncio
    async def test_write_statement_rejected(self):
        skill = SqlQuerySkill(make_context(), sql_factory=MagicMock())
        with pytest.raises(SkillValidationError, match="read-only"):
            await skill.validate(query="  update people set age = 0")

    @pytest.mark.asyncio
    async def test_reads_mentioning_write_keywords_run(self, tmp_path):
        db = tmp_path / "tickets.db"
        conn = sqlite3.connect(db)
        conn.execute("CREATE TABLE tickets (name TEXT, status TEXT)")
        conn.executemany("INSERT INTO tickets VALUES (?, ?)", [("bad-a", "DELETE"), ("ok-b", "OPEN")])
        conn.commit()
        conn.close()
        bus = SkillBus(registry_with(SqlQuerySkill(make_context(), sql_factory=SqlConnectionFactory(str(db)))))

        result = await bus.dispatch(SkillCall(id="c1", skill_name="sql_query", arguments={
            "query": "SELECT REPLACE(name, '-', '_') AS n FROM tickets WHERE status = 'DELETE'",
        }))

        assert result.success, result.error
        assert result.output.splitlines() == ["1 row(s):", "n", "bad_a"]

    @pytest.mark.asyncio
    async def test_backend_error_becomes_failure(self):
        sql = MagicMock()
        sql.query = AsyncMock(side_effect=SqlQueryError("OperationalError: no such table: x", service="sql"))
        bus = SkillBus(registry_with(SqlQuerySkill(make_context(), sql_factory=sql)))
        result = await bus.dispatch(
            SkillCall(id="c1", skill_name="sql_query", arguments={"query": "SELECT * FROM x"})
        )
        assert not result.success
        assert "no such table" in result.error


class TestDocumentSearchSkill:

    @pytest.mark.asyncio
    async def test_embeds_then_searches(self):
        embeddings = MagicMock()
        embeddings.embed = AsyncMock(return_value=[0.1, 0.2])
        search = MagicMock()
        search.search = AsyncMock(return_value=[{"title": "Policy", "content": "Remote work is allowed."}])
        skill = DocumentSearchSkill(make_context(), search_client=search, embedding_client=embeddings)

        result = await skill.execute(query="remote work", top=50)

        embeddings.embed.assert_awaited_once_with("remote work")
        search.search.assert_awaited_once_with("remote work", [0.1, 0.2], top=10)
        assert result.output == "[1] Policy\nRemote work is allowed."

    @pytest.mark.asyncio
    async def test_no_matches(self):
        embeddings = MagicMock()
        embeddings.embed = AsyncMock(return_value=[0.0])
        search = MagicMock()
        search.search = AsyncMock(return_value=[])
        skill = DocumentSearchSkill(make_context(), search_client=search, embedding_client=embeddings)
        result = await skill.execute(query="unicorns")
        assert result.output == "No documents matched 'unicorns'."

    @pytest.mark.asyncio
    async def test_configured_top_used_when_omitted(self):
        embeddings = MagicMock()
        embeddings.embed = AsyncMock(return_value=[0.0])
        search = MagicMock()
        search.search = AsyncMock(return_value=[])
        services = ServiceHandles(
            image_client=MagicMock(), search_client=search, embedding_client=embeddings, search_top=7,
        )
        bus = SkillBus(build_registry(services, make_context(), use_stepwise=True))

        result = await bus.dispatch(SkillCall(id="s1", skill_name="search_documents", arguments={"query": "leave"}))

        assert result.success
        assert search.search.call_args.kwargs["top"] == 7


class TestWebSearchSkill:

    @pytest.mark.asyncio
    async def test_formats_results(self):
        client = MagicMock()
        client.search = AsyncMock(return_value=[
            {"title": "Python", "url": "https://python.org", "snippet": "The language"},
        ])
        result = await WebSearchSkill(make_context(), web_search_client=client).execute(query="python", max_results=0)
        client.search.assert_awaited_once_with("python", count=5)
        assert result.output == "1. Python (https://python.org)\n   The language"


class TestAnswerDirectlySkill:

    @pytest.mark.asyncio
    async def test_delegates_to_llm(self):
        llm = MagicMock()
        llm.complete = AsyncMock(return_value="Paris.")
        config = MagicMock()
        skill = AnswerDirectlySkill(make_context(), llm_client=llm, llm_config=config)
        result = await skill.execute(question="Capital of France?")
        llm.complete.assert_awaited_once_with("Capital of France?", config)
        assert result.output == "Paris."
