"""Downstream consumer: relay batches to the completion engine."""

from threadrelay.agent.engine import EngineSettings, RepublicEngine
from threadrelay.agent.prompt import render_preamble
from threadrelay.agent.responder import CompletionEngine, ThreadResponder, render_batch

__all__ = [
    "CompletionEngine",
    "EngineSettings",
    "RepublicEngine",
    "ThreadResponder",
    "render_batch",
    "render_preamble",
]
