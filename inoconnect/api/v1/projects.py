"""
API endpoints for projects, team membership and milestones.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.db.models.enums import ProjectStatus
from inoconnect.realtime.streams import project_to_dict
from inoconnect.schemas.notification import NotificationRead
from inoconnect.schemas.project import (
    InviteCreate, MembershipEventResolve, MembershipResult, MilestoneCreate, MilestoneRead,
    ProjectCreate, ProjectRead,
)
from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["projects"],
)


async def _read(container: ServiceContainer, db: AsyncSession, project_id: str) -> ProjectRead:
    record = await container.projects.get_project_record(db, project_id)
    return ProjectRead(**project_to_dict(record))


async def _result(container: ServiceContainer, db: AsyncSession, project_id: str, changed: bool) -> MembershipResult:
    return MembershipResult(changed=changed, project=await _read(container, db, project_id))


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    project = await container.projects.create_project(db, user_id, **project_in.model_dump())
    return await _read(container, db, project.id)


@router.get("", response_model=List[ProjectRead])
async def list_projects(
    project_status: Optional[ProjectStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    projects = await container.projects.list_projects(db, status=project_status)
    return [await _read(container, db, p.id) for p in projects]


@router.get("/mine", response_model=List[ProjectRead])
async def list_my_projects(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Projects the current user is a member of."""
    projects = await container.projects.list_user_projects(db, user_id)
    return [await _read(container, db, p.id) for p in projects]


@router.get("/{project_id}", response_model=ProjectRead)
async def read_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await _read(container, db, project_id)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.projects.delete_project(db, project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Membership ---

@router.post("/{project_id}/join", response_model=ProjectRead, status_code=status.HTTP_202_ACCEPTED)
async def request_to_join(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.projects.request_to_join(db, project_id, user_id)
    return await _read(container, db, project_id)


@router.post("/{project_id}/invite", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
async def invite_user(
    project_id: str,
    invite_in: InviteCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Invite a user; the invitation is the ``PROJECT_INVITE`` notification returned."""
    return await container.projects.invite(db, project_id, user_id, invite_in.user_id)


@router.post("/{project_id}/applicants/{applicant_id}/accept", response_model=MembershipResult)
async def accept_applicant(
    project_id: str,
    applicant_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    changed = await container.projects.accept_applicant(db, project_id, applicant_id, user_id)
    return await _result(container, db, project_id, changed)


@router.post("/{project_id}/applicants/{applicant_id}/reject", response_model=MembershipResult)
async def reject_applicant(
    project_id: str,
    applicant_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    changed = await container.projects.reject_applicant(db, project_id, applicant_id, user_id)
    return await _result(container, db, project_id, changed)


@router.post("/{project_id}/membership-events", response_model=MembershipResult)
async def resolve_membership_event(
    project_id: str,
    event_in: MembershipEventResolve,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """
    Accept or decline a join request (as creator) or an invitation (as invitee).
    """
    changed = await container.projects.resolve_membership_event(
        db, event_in.kind, project_id, event_in.subject_id, user_id, event_in.accept
    )
    return await _result(container, db, project_id, changed)


@router.delete("/{project_id}/members/{member_id}", response_model=MembershipResult)
async def remove_member(
    project_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    changed = await container.projects.remove_member(db, project_id, member_id, user_id)
    return await _result(container, db, project_id, changed)


@router.post("/{project_id}/toggle-status", response_model=ProjectRead)
async def toggle_status(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.projects.toggle_status(db, project_id, user_id)
    return await _read(container, db, project_id)


# --- Milestones ---

@router.post("/{project_id}/milestones", response_model=MilestoneRead, status_code=status.HTTP_201_CREATED)
async def add_milestone(
    project_id: str,
    milestone_in: MilestoneCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.projects.add_milestone(db, project_id, user_id, milestone_in.title)


@router.post("/{project_id}/milestones/{milestone_id}/toggle", response_model=MilestoneRead)
async def toggle_milestone(
    project_id: str,
    milestone_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.projects.toggle_milestone(db, project_id, milestone_id, user_id)


@router.delete("/{project_id}/milestones/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(
    project_id: str,
    milestone_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.projects.delete_milestone(db, project_id, milestone_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
