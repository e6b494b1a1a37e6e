"""Agent package exports."""

from .base import Agent
from .builtin import DeveloperAgent, DocumentAgent, MultiModalAgent, SearchAgent
from .registry import AgentRegistry

__all__ = [
    "Agent",
    "AgentRegistry",
    "DeveloperAgent",
    "SearchAgent",
    "DocumentAgent",
    "MultiModalAgent",
]
