"""Tender projects and their question bricks.

Projects belong to an organization; a brick is reachable only through the
organization that owns its project, so another organization's records look
exactly like missing ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.models.project import Brick, BrickStatus, Project
from tenderdraft.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class ProjectWithBricks:
    project: Project
    bricks: list[Brick] = field(default_factory=list)


class ProjectService:
    """Creates projects and bricks and moves bricks through the workflow."""

    def __init__(self, store: ICorpusStore) -> None:
        self._store = store

    async def create_project(self, name: str, org_id: str, description: str | None = None) -> Project:
        return await self._store.create_project(name=name, org_id=org_id, description=description)

    async def get_project(self, project_id: str, org_id: str | None = None) -> ProjectWithBricks:
        project = await self.require_project(project_id, org_id)
        return ProjectWithBricks(project=project, bricks=await self._store.list_bricks(project.id))

    async def add_brick(self, project_id: str, question: str, org_id: str | None = None) -> Brick:
        await self.require_project(project_id, org_id)
        brick = await self._store.create_brick(project_id, question)
        logger.info("brick_created", project_id=project_id, brick_id=brick.id)
        return brick

    async def set_brick_status(
        self,
        brick_id: str,
        status: BrickStatus,
        org_id: str | None = None,
    ) -> Brick:
        brick = await self.require_brick(brick_id, org_id)
        updated = await self._store.update_brick_status(brick.id, status)
        if updated is None:
            raise NotFoundError(message=f"Brick {brick_id} not found")
        logger.info("brick_status_changed", brick_id=brick_id, old=brick.status.value, new=status.value)
        return updated

    async def save_answer(self, brick_id: str, response_html: str, sources: list[str]) -> Brick:
        """Store a drafted answer on the brick, which moves it to ``writing``."""
        saved = await self._store.save_brick_answer(brick_id, response_html, sources)
        if saved is None:
            raise NotFoundError(message=f"Brick {brick_id} not found")
        return saved

    async def require_project(self, project_id: str, org_id: str | None) -> Project:
        project = await self._store.get_project(project_id)
        if project is None or (org_id is not None and project.org_id != org_id):
            raise NotFoundError(message=f"Project {project_id} not found")
        return project

    async def require_brick(self, brick_id: str, org_id: str | None) -> Brick:
        """Return the brick, treating a brick of another organization as missing."""
        brick = await self._store.get_brick(brick_id)
        if brick is None:
            raise NotFoundError(message=f"Brick {brick_id} not found")
        if org_id is not None:
            project = await self._store.get_project(brick.project_id)
            if project is None or project.org_id != org_id:
                raise NotFoundError(message=f"Brick {brick_id} not found")
        return brick
