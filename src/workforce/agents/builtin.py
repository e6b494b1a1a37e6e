"""The four built-in agents."""

from __future__ import annotations

import datetime as _dt
import json
import re
import textwrap
from typing import List, Optional, Sequence

from ..cancellation import CancelToken
from ..tasks.base import AgentKind, AgentResult, Artifact, Task
from .base import Agent


def _previous_results(task: Task) -> List[dict]:
    results = task.context.get("previous_results") or []
    return [item.to_dict() if hasattr(item, "to_dict") else item for item in results]


class DeveloperAgent(Agent):
    """Writes code for the request and explains it."""

    kind = AgentKind.CODE
    name = "Developer Agent"
    description = "Writes and executes code, runs terminal commands"

    async def perform(self, task: Task, token: Optional[CancelToken]) -> AgentResult:
        response = await self.ask(self.build_prompt(task.content), token)
        return AgentResult.complete(
            output=response.text,
            summary="Developer agent completed code execution",
            artifacts=[
                Artifact(
                    type="code",
                    fields={"content": response.text, "language": self.detect_language(task.content)},
                )
            ],
        )

    def build_prompt(self, content: str) -> str:
        return textwrap.dedent(
            """
            You are a Developer Agent. Write and execute code for the following request:

            {content}

            Provide:
            1. The code solution
            2. Explanation of what it does
            3. Any dependencies or setup required
            """
        ).strip().format(content=content)

    @staticmethod
    def detect_language(content: str) -> str:
        if re.search(r"javascript|\bjs\b|node", content, re.IGNORECASE):
            return "javascript"
        if re.search(r"python|\bpy\b", content, re.IGNORECASE):
            return "python"
        if re.search(r"html|css", content, re.IGNORECASE):
            return "html"
        return "text"


class SearchAgent(Agent):
    """Breaks the request into queries and summarizes findings."""

    kind = AgentKind.RESEARCH
    name = "Search Agent"
    description = "Searches the web and extracts content"
    max_tokens = 2048
    max_queries = 3

    async def perform(self, task: Task, token: Optional[CancelToken]) -> AgentResult:
        queries = self.extract_queries(task.content)
        prompt = (
            f'Research the following request and summarize the findings: "{task.content}"\n\n'
            "Queries:\n" + "\n".join(f"- {query}" for query in queries)
        )
        response = await self.ask(prompt, token)
        return AgentResult.complete(
            output=response.text,
            summary=f"Researched {len(queries)} queries",
            artifacts=[
                Artifact(
                    type="search_results",
                    fields={"queries": queries, "count": len(queries), "findings": response.text},
                )
            ],
        )

    def extract_queries(self, content: str) -> List[str]:
        queries = [part.strip() for part in re.split(r"[.!?]", content)]
        queries = [query for query in queries if len(query) > 3][: self.max_queries]
        return queries or [content]


class DocumentAgent(Agent):
    """Produces a document, building on earlier agents' results when present."""

    kind = AgentKind.DOCUMENT
    name = "Document Agent"
    description = "Creates and manages documents and files"

    async def perform(self, task: Task, token: Optional[CancelToken]) -> AgentResult:
        previous = _previous_results(task)
        prompt = (
            f"Create a professional document based on this request:\n\n{task.content}\n\n"
            f"Previous results: {json.dumps(previous, default=str)}"
        )
        response = await self.ask(prompt, token)
        fmt = self.detect_format(task.content)
        filename = self.filename(fmt)
        return AgentResult.complete(
            output=response.text,
            summary=f"Document created: {filename}",
            artifacts=[
                Artifact(
                    type="document",
                    fields={"format": fmt, "content": response.text, "filename": filename},
                )
            ],
        )

    @staticmethod
    def detect_format(content: str) -> str:
        if re.search(r"html", content, re.IGNORECASE):
            return "html"
        if re.search(r"markdown|\bmd\b", content, re.IGNORECASE):
            return "md"
        if re.search(r"report", content, re.IGNORECASE):
            return "html"
        return "txt"

    @staticmethod
    def filename(fmt: str, today: Optional[_dt.date] = None) -> str:
        stamp = (today or _dt.date.today()).isoformat()
        return f"workforce_document_{stamp}.{fmt}"


class MultiModalAgent(Agent):
    """General analysis and summarization; the default when nothing else fits."""

    kind = AgentKind.ANALYSIS
    name = "Multi-Modal Agent"
    description = "Processes images, audio, and performs complex analysis"
    max_tokens = 4096

    async def perform(self, task: Task, token: Optional[CancelToken]) -> AgentResult:
        prompt = f"Analyze this content and provide a comprehensive summary:\n\n{task.content}"
        response = await self.ask(prompt, token)
        return AgentResult.complete(
            output=response.text,
            summary="Content analyzed successfully",
        )


BUILTIN_AGENTS: Sequence[type[Agent]] = (DeveloperAgent, SearchAgent, DocumentAgent, MultiModalAgent)


def builtin_agent_path(kind: AgentKind) -> str:
    for cls in BUILTIN_AGENTS:
        if cls.kind is kind:
            return f"{cls.__module__}:{cls.__qualname__}"
    raise KeyError(kind)  # pragma: no cover - every kind has a builtin


__all__ = [
    "DeveloperAgent",
    "SearchAgent",
    "DocumentAgent",
    "MultiModalAgent",
    "BUILTIN_AGENTS",
    "builtin_agent_path",
]
