"""Drafts answers to tender questions, grounded in the organization's corpus.

Retrieves the most relevant reference chunks for the question (scoped to the
project's linked corpora, or the whole organization), splices them into the
prompt as ``[Source: name]`` blocks, asks the LLM for an HTML answer and
normalises plain-text replies into simple HTML.  When the question is a
project brick, the answer and its sources are saved on the brick, which moves
it to ``writing``.
"""

from __future__ import annotations

import html
import re

import structlog

from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.models.project import Brick
from tenderdraft.models.rag import CorpusScope, DraftAnswer, RetrievedChunk
from tenderdraft.services.project_service import ProjectService
from tenderdraft.services.retrieval_service import RetrievalService, unique_sources
from tenderdraft.utils.errors import ConfigurationError, NotFoundError, TenderDraftError

logger = structlog.get_logger(logger_name=__name__)

_CONTEXT_LIMIT = 5
_BULLET_PREFIX = re.compile(r"^[-•]\s*")

_SYSTEM_PROMPT = """\
You are an expert bid writer drafting answers to calls for tender on behalf \
of a technology company.

Guidelines:
- Write a professional, structured and convincing answer
- When reference material is supplied, use it to make the answer specific \
to the company
- Be precise and concrete, with examples where relevant
- Prefer short paragraphs and bullet lists where appropriate
- Format: simple HTML (<p>, <ul><li>, <strong>), no inline styles
- Aim for 200 to 400 words

Reply with the HTML of the answer only, without any preamble."""


def format_context(chunks: list[RetrievedChunk]) -> str:
    """Render chunks as ``[Source: name]`` blocks separated by ``---`` lines."""
    return "\n\n---\n\n".join(f"[Source: {c.document_name}]\n{c.content}" for c in chunks)


def to_html(text: str) -> str:
    """Convert a plain-text reply into ``<p>`` / ``<ul><li>`` HTML.

    Replies that already contain ``<p>`` or ``<ul>`` are returned unchanged.
    Paragraphs are separated by blank lines; a paragraph starting with
    ``- `` or ``• `` becomes a bullet list, one item per line.
    """
    if "<p>" in text or "<ul>" in text:
        return text

    parts: list[str] = []
    for paragraph in text.split("\n\n"):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if paragraph.startswith(("- ", "• ")):
            items = "".join(
                f"<li>{html.escape(_BULLET_PREFIX.sub('', line.strip()))}</li>"
                for line in paragraph.split("\n")
                if line.strip()
            )
            parts.append(f"<ul>{items}</ul>")
        else:
            parts.append(f"<p>{html.escape(paragraph)}</p>")
    return "".join(parts)


class AnswerDrafter:
    """Generates :class:`DraftAnswer` objects for tender questions.

    Parameters
    ----------
    retrieval:
        Supplies reference chunks; failures degrade to an answer without
        corpus context.
    llm:
        Text-generation backend.  ``None`` when no provider is configured,
        in which case :meth:`draft` raises :class:`ConfigurationError`.
    projects:
        Brick storage.  Required only when drafting for a ``brick_id``.
    temperature, max_tokens:
        Sampling parameters passed to the LLM.
    """

    def __init__(
        self,
        retrieval: RetrievalService,
        llm: ILLMProvider | None,
        projects: ProjectService | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> None:
        self._retrieval = retrieval
        self._llm = llm
        self._projects = projects
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def draft(
        self,
        question: str,
        project_id: str | None = None,
        org_id: str | None = None,
        project_name: str | None = None,
        project_description: str | None = None,
        brick_id: str | None = None,
    ) -> DraftAnswer:
        if self._llm is None:
            raise ConfigurationError(message="No LLM provider configured")

        brick: Brick | None = None
        if brick_id is not None:
            brick = await self._resolve_brick(brick_id, project_id, org_id)
            if project_name is None:
                project = await self._projects.require_project(brick.project_id, org_id)
                project_name = project_name or project.name
                project_description = project_description or project.description
            project_id = brick.project_id

        chunks = await self._retrieve(question, project_id, org_id)
        sources = unique_sources(chunks)

        user_prompt = self._build_prompt(question, chunks, project_name, project_description)
        reply = await self._llm.complete(
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        logger.info(
            "answer_drafted",
            project_id=project_id,
            provider=self._llm.get_provider_name(),
            context_chunks=len(chunks),
            sources=len(sources),
        )
        answer_html = to_html(reply)
        if brick is not None:
            await self._projects.save_answer(brick.id, answer_html, sources)
        return DraftAnswer(
            html=answer_html,
            sources=sources,
            used_rag=bool(chunks),
            brick_id=brick.id if brick else None,
        )

    async def _resolve_brick(self, brick_id: str, project_id: str | None, org_id: str | None) -> Brick:
        if self._projects is None:
            raise ConfigurationError(message="No project storage configured for brick answers")
        brick = await self._projects.require_brick(brick_id, org_id)
        if project_id is not None and brick.project_id != project_id:
            raise NotFoundError(message=f"Brick {brick_id} not found in project {project_id}")
        return brick

    async def _retrieve(
        self,
        question: str,
        project_id: str | None,
        org_id: str | None,
    ) -> list[RetrievedChunk]:
        try:
            result = await self._retrieval.search(
                question,
                CorpusScope(project_id=project_id, org_id=org_id),
                limit=_CONTEXT_LIMIT,
            )
        except TenderDraftError as exc:
            logger.warning("draft_retrieval_failed", project_id=project_id, error=str(exc))
            return []
        return result.chunks

    @staticmethod
    def _build_prompt(
        question: str,
        chunks: list[RetrievedChunk],
        project_name: str | None,
        project_description: str | None,
    ) -> str:
        sections = [f"Project: {project_name or 'Call for tender'}"]
        if project_description:
            sections.append(project_description)
        if chunks:
            sections.append(
                "REFERENCE MATERIAL (extracted from your documents):\n" + format_context(chunks)
            )
        sections.append(f'Question to answer:\n"{question}"')
        return "\n\n".join(sections)
