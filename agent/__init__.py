"""
agent/ — Plugbot Agent Core

Public API:
    from agent import Orchestrator, ResponseAssembler, OutgoingMessage

Component overview:
    CommandInterceptor   Handles "Translate ... to ..." and "Show languages" before planning
    TranslationResolver  Language name/code resolution and batch translation
    DirectPlanner        Single-shot JSON step plan
    StepwisePlanner      Iterative function-calling loop with a token budget
    PlanExecutor         Runs step plans, threading results between steps
    ResponseAssembler    Welcome message, image cards, final replies
    Orchestrator         One turn: typing → intercept → plan → execute → reply
"""

from agent.commands import CommandInterceptor, InterceptResult
from agent.conversation import ConversationData, ConversationStore, ConversationTurn
from agent.executor import PlanExecutor
from agent.orchestrator import Orchestrator
from agent.plan import Plan, PlanStep
from agent.planner import BasePlanner, DirectPlanner, StepwisePlanner, create_planner
from agent.response_synthesizer import Attachment, CardAction, OutgoingMessage, ResponseAssembler
from agent.translation import LanguageTable, TranslationResolver

__all__ = [
    "Orchestrator",
    "CommandInterceptor",
    "InterceptResult",
    "ConversationData",
    "ConversationStore",
    "ConversationTurn",
    "PlanExecutor",
    "Plan",
    "PlanStep",
    "BasePlanner",
    "DirectPlanner",
    "StepwisePlanner",
    "create_planner",
    "Attachment",
    "CardAction",
    "OutgoingMessage",
    "ResponseAssembler",
    "LanguageTable",
    "TranslationResolver",
]
