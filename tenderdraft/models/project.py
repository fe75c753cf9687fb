"""Tender projects and the questions ("bricks") extracted from them.

A project is one call for tender being answered; each brick is one question
or requirement from it, carried through the writing workflow:

    draft -> writing -> review -> validated

Drafting an answer stores it on the brick and moves the brick to
``writing``; the later steps are set by the people reviewing the answer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BrickStatus(str, Enum):
    """Workflow position of one tender question."""

    DRAFT = "draft"
    WRITING = "writing"
    REVIEW = "review"
    VALIDATED = "validated"


class Project(BaseModel):
    """A call for tender owned by an organization."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the project.")
    org_id: str = Field(description="Identifier of the owning organization.")
    name: str = Field(min_length=1)
    description: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class Brick(BaseModel):
    """One question of a project, with its drafted answer once there is one."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the brick.")
    project_id: str
    question: str = Field(min_length=1)
    status: BrickStatus = BrickStatus.DRAFT
    ai_response_text: str | None = Field(default=None, description="Last drafted answer, as HTML.")
    ai_sources: list[str] | None = Field(
        default=None,
        description="Reference documents behind the drafted answer; None when none were used.",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
