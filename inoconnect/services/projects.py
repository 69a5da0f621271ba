"""
Project membership workflow.

Applicants and members are rows in the ``project_applicants`` and
``project_members`` set tables. Every change is an insert-or-ignore or a
delete keyed by (project, user), so a double tap on accept converges on the
same end state instead of appending the applicant twice. Notifications are
emitted only when the set row actually changed.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.config import Settings
from inoconnect.core.errors import (
    AlreadyMember, AlreadyPending, CapacityExceeded, Forbidden, InvalidTarget, NotFound,
)
from inoconnect.db.models import (
    Milestone, NotificationType, Project, ProjectStatus, project_applicants, project_members,
)
from inoconnect.db.models.notification import AppNotification
from inoconnect.db.store import add_to_set, count_members, is_member, remove_from_set, set_members
from inoconnect.realtime.hub import RealtimeHub, Topic, topic
from inoconnect.services.assets import AssetStore
from inoconnect.services.channel_identity import group_channel_id
from inoconnect.services.directory import Directory
from inoconnect.services.messaging import MessagingChannelManager
from inoconnect.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


def milestone_progress(milestones: List[Milestone]) -> float:
    """Completed share of milestones, 0.0 when there are none."""
    if not milestones:
        return 0.0
    return sum(1 for m in milestones if m.is_completed) / len(milestones)


@dataclass
class ProjectRecord:
    """A project with its resolved member, applicant and milestone lists."""
    project: Project
    member_ids: List[str] = field(default_factory=list)
    pending_applicant_ids: List[str] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)

    @property
    def progress(self) -> float:
        return milestone_progress(self.milestones)


class ProjectMembershipManager:
    def __init__(
        self,
        hub: RealtimeHub,
        directory: Directory,
        notifications: NotificationDispatcher,
        messaging: MessagingChannelManager,
        assets: AssetStore,
        settings: Settings,
    ):
        self._hub = hub
        self._directory = directory
        self._notifications = notifications
        self._messaging = messaging
        self._assets = assets
        self._settings = settings

    async def _touch(self, db: AsyncSession, project_id: str, *extra_user_ids: str) -> None:
        member_ids = await self.member_ids(db, project_id)
        self._hub.mark_changed(
            db, *(topic(Topic.PROJECTS, user_id) for user_id in {*member_ids, *extra_user_ids})
        )

    @staticmethod
    def _require_creator(project: Project, caller_id: str) -> None:
        if project.creator_id != caller_id:
            raise Forbidden("Only the project creator can do this")

    async def _require_member(self, db: AsyncSession, project: Project, user_id: str) -> None:
        if not await self.is_member(db, project.id, user_id):
            raise Forbidden("Only project members can do this")

    async def _check_capacity(self, db: AsyncSession, project: Project) -> None:
        if not self._settings.ENFORCE_TEAM_CAPACITY:
            return
        members = await count_members(db, project_members, project_id=project.id)
        if members >= project.target_team_size:
            raise CapacityExceeded(
                f"Project {project.id} is full ({members}/{project.target_team_size} members)"
            )

    # --- Reads ---

    async def member_ids(self, db: AsyncSession, project_id: str) -> List[str]:
        """Members in join order; the creator comes first."""
        return await set_members(
            db, project_members, "user_id", order_by=project_members.c.id, project_id=project_id,
        )

    async def pending_applicant_ids(self, db: AsyncSession, project_id: str) -> List[str]:
        return await set_members(
            db, project_applicants, "user_id",
            order_by=project_applicants.c.requested_at, project_id=project_id,
        )

    async def is_member(self, db: AsyncSession, project_id: str, user_id: str) -> bool:
        return await is_member(db, project_members, project_id=project_id, user_id=user_id)

    async def is_pending(self, db: AsyncSession, project_id: str, user_id: str) -> bool:
        return await is_member(db, project_applicants, project_id=project_id, user_id=user_id)

    async def list_milestones(self, db: AsyncSession, project_id: str) -> List[Milestone]:
        result = await db.execute(
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.position, Milestone.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_project_record(self, db: AsyncSession, project_id: str) -> ProjectRecord:
        project = await self._directory.require_project(db, project_id)
        return ProjectRecord(
            project=project,
            member_ids=await self.member_ids(db, project_id),
            pending_applicant_ids=await self.pending_applicant_ids(db, project_id),
            milestones=await self.list_milestones(db, project_id),
        )

    async def list_user_projects(self, db: AsyncSession, user_id: str) -> List[Project]:
        """Projects the user is a member of, newest first."""
        result = await db.execute(
            select(Project)
            .join(project_members, project_members.c.project_id == Project.id)
            .where(project_members.c.user_id == user_id)
            .order_by(Project.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_projects(self, db: AsyncSession, status: Optional[ProjectStatus] = None) -> List[Project]:
        stmt = select(Project).order_by(Project.created_at.desc())
        if status is not None:
            stmt = stmt.where(Project.status == ProjectStatus(status).value)
        result = await db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    # --- Lifecycle ---

    async def create_project(
        self,
        db: AsyncSession,
        creator_id: str,
        title: str,
        description: str = "",
        image_url: str = "",
        tags: Optional[List[str]] = None,
        recruitment_deadline: str = "",
        target_team_size: int = 1,
    ) -> Project:
        """Create a project with its creator as the first member."""
        await self._directory.require_user(db, creator_id)
        if target_team_size < 1:
            raise InvalidTarget("A project needs a team size of at least 1")
        project = Project(
            creator_id=creator_id,
            title=title,
            description=description,
            image_url=image_url,
            tags=list(tags or []),
            recruitment_deadline=recruitment_deadline,
            target_team_size=target_team_size,
            status=ProjectStatus.ACTIVE.value,
        )
        db.add(project)
        await db.flush()
        await add_to_set(db, project_members, project_id=project.id, user_id=creator_id)
        await self._touch(db, project.id)
        logger.info(f"[PROJECTS] {creator_id} created project {project.id} ({title!r})")
        return project

    async def request_to_join(self, db: AsyncSession, project_id: str, applicant_id: str) -> None:
        """
        Apply to a project.

        Raises:
            AlreadyMember: If the applicant is already on the team
            AlreadyPending: If the applicant already has a pending application
            CapacityExceeded: If the team is full and capacity is enforced
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        applicant = await self._directory.require_user(db, applicant_id)
        if await self.is_member(db, project_id, applicant_id):
            raise AlreadyMember(f"{applicant_id} is already a member of {project_id}")
        if await self.is_pending(db, project_id, applicant_id):
            raise AlreadyPending(f"{applicant_id} already applied to {project_id}")
        await self._check_capacity(db, project)

        if not await add_to_set(db, project_applicants, project_id=project_id, user_id=applicant_id):
            raise AlreadyPending(f"{applicant_id} already applied to {project_id}")

        await self._notifications.emit(
            db,
            project.creator_id,
            NotificationType.PROJECT_JOIN_REQUEST,
            title="Join Request",
            message=f"{applicant.username or 'A user'} wants to join '{project.title}'",
            related_id=project_id,
            sender_id=applicant_id,
        )
        await self._touch(db, project_id, applicant_id)
        logger.info(f"[PROJECTS] {applicant_id} applied to {project_id}")

    async def invite(self, db: AsyncSession, project_id: str, inviter_id: str, target_id: str) -> AppNotification:
        """
        Invite a user to the project. The applicant list is left untouched
        until the invitee answers.

        Returns:
            AppNotification: The invite in the target's inbox (the existing one on retry)
        """
        project = await self._directory.require_project(db, project_id)
        self._require_creator(project, inviter_id)
        if target_id == inviter_id:
            raise InvalidTarget("Cannot invite yourself")
        await self._directory.require_user(db, target_id)
        if await self.is_member(db, project_id, target_id):
            raise AlreadyMember(f"{target_id} is already a member of {project_id}")

        existing = await self._notifications.find(
            db, target_id, NotificationType.PROJECT_INVITE, project_id, sender_id=inviter_id
        )
        if existing is not None:
            logger.info(f"[PROJECTS] {target_id} already invited to {project_id}")
            return existing

        inviter_name = await self._directory.display_name(db, inviter_id)
        invite = await self._notifications.emit(
            db,
            target_id,
            NotificationType.PROJECT_INVITE,
            title="Project Invitation",
            message=f"{inviter_name} invited you to join '{project.title}'",
            related_id=project_id,
            sender_id=inviter_id,
        )
        logger.info(f"[PROJECTS] {inviter_id} invited {target_id} to {project_id}")
        return invite

    async def _clear_membership_items(self, db: AsyncSession, project: Project, user_id: str) -> None:
        """Drop the creator's join request and the user's invite once the user is in."""
        await self._notifications.delete_related(
            db, project.creator_id, project.id, [NotificationType.PROJECT_JOIN_REQUEST], sender_id=user_id
        )
        await self._notifications.delete_related(db, user_id, project.id, [NotificationType.PROJECT_INVITE])

    async def _admit(self, db: AsyncSession, project: Project, user_id: str) -> bool:
        """Move a user into the member set and the project's group channel."""
        await remove_from_set(db, project_applicants, project_id=project.id, user_id=user_id)
        await self._clear_membership_items(db, project, user_id)
        added = await add_to_set(db, project_members, project_id=project.id, user_id=user_id)
        channel = await self._messaging.get_or_create_group_channel(db, project.id)
        await self._messaging.add_participant(db, channel.id, user_id)
        await self._touch(db, project.id, user_id)
        return added

    async def accept_applicant(self, db: AsyncSession, project_id: str, applicant_id: str, caller_id: str) -> bool:
        """
        Admit a pending applicant.

        Returns:
            bool: False if the applicant was already a member (repeated accept)

        Raises:
            Forbidden: If the caller is not the creator
            NotFound: If the user has no pending application
            CapacityExceeded: If the team is full and capacity is enforced
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        self._require_creator(project, caller_id)
        if await self.is_member(db, project_id, applicant_id):
            await remove_from_set(db, project_applicants, project_id=project_id, user_id=applicant_id)
            await self._clear_membership_items(db, project, applicant_id)
            logger.info(f"[PROJECTS] {applicant_id} already a member of {project_id}, nothing to accept")
            return False
        if not await self.is_pending(db, project_id, applicant_id):
            raise NotFound(f"No pending application from {applicant_id} to {project_id}")
        await self._check_capacity(db, project)

        await self._admit(db, project, applicant_id)
        await self._notifications.emit(
            db,
            applicant_id,
            NotificationType.PROJECT_ACCEPTED,
            title="Request Accepted",
            message=f"You have been accepted into '{project.title}'",
            related_id=project_id,
            sender_id=caller_id,
        )
        logger.info(f"[PROJECTS] {applicant_id} accepted into {project_id}")
        return True

    async def reject_applicant(self, db: AsyncSession, project_id: str, applicant_id: str, caller_id: str) -> bool:
        """
        Decline a pending applicant.

        Returns:
            bool: True if the applicant was pending (and was notified)
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        self._require_creator(project, caller_id)
        removed = await remove_from_set(db, project_applicants, project_id=project_id, user_id=applicant_id)
        if removed:
            await self._notifications.emit(
                db,
                applicant_id,
                NotificationType.PROJECT_DECLINE,
                title="Application Declined",
                message=f"Your request to join '{project.title}' was declined.",
                related_id=project_id,
                sender_id=caller_id,
            )
            await self._touch(db, project_id, applicant_id)
            logger.info(f"[PROJECTS] {applicant_id} declined for {project_id}")
        else:
            logger.info(f"[PROJECTS] {applicant_id} has no pending application to {project_id}, nothing to reject")
        await self._notifications.delete_related(
            db, project.creator_id, project_id, [NotificationType.PROJECT_JOIN_REQUEST], sender_id=applicant_id
        )
        return removed

    async def accept_invite(self, db: AsyncSession, project_id: str, user_id: str) -> bool:
        """
        Join a project through an invite in the user's inbox.

        The same capacity policy and admission path as ``accept_applicant`` apply.

        Returns:
            bool: False if the user was already a member
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        if await self.is_member(db, project_id, user_id):
            await self._clear_membership_items(db, project, user_id)
            logger.info(f"[PROJECTS] {user_id} already a member of {project_id}, invite is moot")
            return False
        invite = await self._notifications.find(db, user_id, NotificationType.PROJECT_INVITE, project_id)
        if invite is None:
            raise NotFound(f"No invitation to {project_id} for {user_id}")
        await self._check_capacity(db, project)

        await self._admit(db, project, user_id)
        name = await self._directory.display_name(db, user_id)
        await self._notifications.emit(
            db,
            project.creator_id,
            NotificationType.PROJECT_ACCEPTED,
            title="Invitation Accepted",
            message=f"{name} joined '{project.title}'",
            related_id=project_id,
            sender_id=user_id,
        )
        logger.info(f"[PROJECTS] {user_id} joined {project_id} by invitation")
        return True

    async def decline_invite(self, db: AsyncSession, project_id: str, user_id: str) -> bool:
        project = await self._directory.require_project(db, project_id)
        invite = await self._notifications.find(db, user_id, NotificationType.PROJECT_INVITE, project_id)
        if invite is None:
            raise NotFound(f"No invitation to {project_id} for {user_id}")
        name = await self._directory.display_name(db, user_id)
        await self._notifications.emit(
            db,
            project.creator_id,
            NotificationType.PROJECT_DECLINE,
            title="Invitation Declined",
            message=f"{name} declined the invitation to '{project.title}'",
            related_id=project_id,
            sender_id=user_id,
        )
        await self._notifications.delete_related(db, user_id, project_id, [NotificationType.PROJECT_INVITE])
        logger.info(f"[PROJECTS] {user_id} declined the invitation to {project_id}")
        return True

    async def resolve_membership_event(
        self,
        db: AsyncSession,
        kind: NotificationType,
        project_id: str,
        subject_id: str,
        caller_id: str,
        accept: bool,
    ) -> bool:
        """
        Single entry point for answering an actionable membership notification.

        For ``PROJECT_JOIN_REQUEST`` the caller is the creator and ``subject_id``
        the applicant. For ``PROJECT_INVITE`` the caller answers for themselves,
        so ``subject_id`` must equal ``caller_id``. Both acceptance paths share
        the same capacity check and admission steps.
        """
        kind = NotificationType(kind)
        if kind == NotificationType.PROJECT_JOIN_REQUEST:
            if accept:
                return await self.accept_applicant(db, project_id, subject_id, caller_id)
            return await self.reject_applicant(db, project_id, subject_id, caller_id)
        if kind == NotificationType.PROJECT_INVITE:
            if subject_id != caller_id:
                raise Forbidden("Only the invited user can answer an invitation")
            if accept:
                return await self.accept_invite(db, project_id, caller_id)
            return await self.decline_invite(db, project_id, caller_id)
        raise InvalidTarget(f"{kind.value} is not an actionable membership event")

    async def remove_member(self, db: AsyncSession, project_id: str, member_id: str, caller_id: str) -> bool:
        """
        Remove a member from the team and the group channel.

        Returns:
            bool: True if the user was a member
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        self._require_creator(project, caller_id)
        if member_id == project.creator_id:
            raise InvalidTarget("The creator cannot be removed from their own project")
        removed = await remove_from_set(db, project_members, project_id=project_id, user_id=member_id)
        if not removed:
            logger.info(f"[PROJECTS] {member_id} is not a member of {project_id}, nothing to remove")
            return False
        await self._messaging.remove_participant(db, group_channel_id(project_id), member_id)
        await self._notifications.emit(
            db,
            member_id,
            NotificationType.PROJECT_REMOVAL,
            title="Removed from Project",
            message=f"You have been removed from '{project.title}'",
            related_id=project_id,
            sender_id=caller_id,
        )
        await self._touch(db, project_id, member_id)
        logger.info(f"[PROJECTS] {member_id} removed from {project_id}")
        return True

    async def toggle_status(self, db: AsyncSession, project_id: str, caller_id: str) -> Project:
        """Flip Active and Completed. Nothing else changes."""
        project = await self._directory.require_project(db, project_id, for_update=True)
        self._require_creator(project, caller_id)
        if project.status == ProjectStatus.ACTIVE.value:
            project.status = ProjectStatus.COMPLETED.value
        else:
            project.status = ProjectStatus.ACTIVE.value
        await db.flush()
        await self._touch(db, project_id)
        logger.info(f"[PROJECTS] {project_id} is now {project.status}")
        return project

    async def delete_project(self, db: AsyncSession, project_id: str, caller_id: str) -> None:
        """
        Delete a project with its milestones and membership rows.

        The group channel goes too when DELETE_GROUP_CHANNEL_WITH_PROJECT is set.
        Open invites and join requests for the project leave every inbox.
        The cover image is handed to the asset store after the rows are gone.
        """
        project = await self._directory.require_project(db, project_id, for_update=True)
        self._require_creator(project, caller_id)
        member_ids = await self.member_ids(db, project_id)
        image_url = project.image_url

        await db.execute(
            delete(Milestone).where(Milestone.project_id == project_id).execution_options(synchronize_session=False)
        )
        await db.execute(delete(project_members).where(project_members.c.project_id == project_id))
        await db.execute(delete(project_applicants).where(project_applicants.c.project_id == project_id))
        if self._settings.DELETE_GROUP_CHANNEL_WITH_PROJECT:
            await self._messaging.delete_channel(db, group_channel_id(project_id))
        await self._notifications.delete_about(
            db, project_id, [NotificationType.PROJECT_INVITE, NotificationType.PROJECT_JOIN_REQUEST]
        )
        await db.delete(project)
        await db.flush()

        self._hub.mark_changed(db, *(topic(Topic.PROJECTS, user_id) for user_id in member_ids))
        logger.info(f"[PROJECTS] {caller_id} deleted project {project_id}")
        if image_url:
            await self._assets.delete(image_url)

    # --- Milestones ---

    async def add_milestone(self, db: AsyncSession, project_id: str, caller_id: str, title: str) -> Milestone:
        project = await self._directory.require_project(db, project_id)
        await self._require_member(db, project, caller_id)
        title = (title or "").strip()
        if not title:
            raise InvalidTarget("Milestone title must not be empty")
        result = await db.execute(
            select(func.coalesce(func.max(Milestone.position), -1)).where(Milestone.project_id == project_id)
        )
        milestone = Milestone(project_id=project_id, title=title, is_completed=False, position=result.scalar_one() + 1)
        db.add(milestone)
        await db.flush()
        await self._touch(db, project_id)
        return milestone

    async def _require_milestone(self, db: AsyncSession, project_id: str, milestone_id: str) -> Milestone:
        result = await db.execute(
            select(Milestone)
            .where(Milestone.id == milestone_id, Milestone.project_id == project_id)
            .execution_options(populate_existing=True)
        )
        milestone = result.scalar_one_or_none()
        if milestone is None:
            raise NotFound(f"Milestone {milestone_id} not found in project {project_id}")
        return milestone

    async def toggle_milestone(self, db: AsyncSession, project_id: str, milestone_id: str, caller_id: str) -> Milestone:
        project = await self._directory.require_project(db, project_id)
        await self._require_member(db, project, caller_id)
        milestone = await self._require_milestone(db, project_id, milestone_id)
        milestone.is_completed = not milestone.is_completed
        await db.flush()
        await self._touch(db, project_id)
        return milestone

    async def delete_milestone(self, db: AsyncSession, project_id: str, milestone_id: str, caller_id: str) -> None:
        project = await self._directory.require_project(db, project_id)
        await self._require_member(db, project, caller_id)
        milestone = await self._require_milestone(db, project_id, milestone_id)
        await db.delete(milestone)
        await db.flush()
        await self._touch(db, project_id)
