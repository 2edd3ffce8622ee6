"""Agents for the Grounded Shopping Assistant."""

from .patterns import PatternTable, PatternRule
from .focus_resolver import FocusResolver
from .ranker import DiversityRanker
from .generator import GenerativeService, LLMGenerativeService, StaticGenerativeService
from .response_gate import ResponseGate
from .small_talk import SmallTalkResponder

__all__ = [
    "PatternTable",
    "PatternRule",
    "FocusResolver",
    "DiversityRanker",
    "GenerativeService",
    "LLMGenerativeService",
    "StaticGenerativeService",
    "ResponseGate",
    "SmallTalkResponder",
]
