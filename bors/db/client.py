"""
Database access for the bot.

`DbClient` is the only place that reads or writes pull request, build and
workflow rows. Every method opens its own session; operations that touch more
than one row run inside a single transaction.
"""

from typing import List, Optional

from sqlalchemy import desc, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from bors.core.logging import get_logger
from bors.github.models import GithubRepoName
from bors.models import (
    Build,
    BuildStatus,
    MergeableState,
    PullRequest,
    Workflow,
    WorkflowStatus,
    WorkflowType,
    run_id_to_db,
)

logger = get_logger(__name__)


def _insert(session: AsyncSession, model):
    """Return the dialect-specific INSERT construct (both support ON CONFLICT)."""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)


class DbClient:
    """Provides access to the database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # -------------------------------------------------------------------------
    # Pull requests
    # -------------------------------------------------------------------------
    async def get_or_create_pull_request(
        self,
        repo: GithubRepoName,
        pr_number: int,
        base_branch: Optional[str] = None,
        mergeable_state: Optional[MergeableState] = None,
    ) -> PullRequest:
        """
        Find the pull request row for the given repository and PR number,
        creating it if it doesn't exist.

        Uses ON CONFLICT DO NOTHING so concurrent first-touch never creates a
        duplicate. When `base_branch` or `mergeable_state` are given, the
        stored values are refreshed to them.

        Args:
            repo: Repository the PR belongs to.
            pr_number: GitHub PR number.
            base_branch: Latest known base branch name, if any.
            mergeable_state: Latest known mergeable state, if any.

        Returns:
            The pull request row, with its try build loaded.
        """
        values = {}
        if base_branch is not None:
            values["base_branch"] = base_branch
        if mergeable_state is not None:
            values["mergeable_state"] = MergeableState(mergeable_state).value

        async with self.session_factory() as session:
            async with session.begin():
                stmt = (
                    _insert(session, PullRequest)
                    .values(repository=str(repo), number=pr_number, **values)
                    .on_conflict_do_nothing(index_elements=["repository", "number"])
                )
                result = await session.exec(stmt)
                if result.rowcount:
                    logger.info("Created pull request %s#%d", repo, pr_number)
                elif values:
                    await session.exec(
                        update(PullRequest)
                        .where(PullRequest.repository == str(repo))
                        .where(PullRequest.number == pr_number)
                        .values(**values)
                    )
                pr = await self._get_pull_request(session, repo, pr_number)
        return pr

    async def get_pull_request(
        self, repo: GithubRepoName, pr_number: int
    ) -> Optional[PullRequest]:
        async with self.session_factory() as session:
            return await self._get_pull_request(session, repo, pr_number)

    async def _get_pull_request(
        self, session: AsyncSession, repo: GithubRepoName, pr_number: int
    ) -> Optional[PullRequest]:
        statement = (
            select(PullRequest)
            .options(selectinload(PullRequest.try_build))
            .where(PullRequest.repository == str(repo))
            .where(PullRequest.number == pr_number)
        )
        result = await session.exec(statement)
        return result.first()

    async def create_pull_request(
        self, repo: GithubRepoName, pr_number: int, base_branch: str
    ) -> None:
        """Insert a pull request row; a no-op if the row already exists."""
        async with self.session_factory() as session:
            async with session.begin():
                stmt = (
                    _insert(session, PullRequest)
                    .values(
                        repository=str(repo),
                        number=pr_number,
                        base_branch=base_branch,
                        mergeable_state=MergeableState.UNKNOWN.value,
                    )
                    .on_conflict_do_nothing(index_elements=["repository", "number"])
                )
                await session.exec(stmt)

    async def find_pr_by_build(self, build: Build) -> Optional[PullRequest]:
        """Find the pull request a build is attached to."""
        async with self.session_factory() as session:
            statement = (
                select(PullRequest)
                .options(selectinload(PullRequest.try_build))
                .where(PullRequest.try_build_id == build.id)
            )
            result = await session.exec(statement)
            return result.first()

    async def approve(self, pr: PullRequest, approver: str) -> None:
        await self._update_pull_request(pr, approved_by=approver)
        pr.approved_by = approver

    async def unapprove(self, pr: PullRequest) -> None:
        await self._update_pull_request(pr, approved_by=None)
        pr.approved_by = None

    async def _update_pull_request(self, pr: PullRequest, **values) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.exec(
                    update(PullRequest)
                    .where(PullRequest.id == pr.id)
                    .values(**values)
                )

    async def update_mergeable_states_by_base_branch(
        self, repo: GithubRepoName, base_branch: str, mergeable_state: MergeableState
    ) -> int:
        """
        Set the mergeable state of every PR targeting `base_branch` in `repo`.

        Returns:
            Number of updated rows.
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.exec(
                    update(PullRequest)
                    .where(PullRequest.repository == str(repo))
                    .where(PullRequest.base_branch == base_branch)
                    .values(mergeable_state=MergeableState(mergeable_state).value)
                )
                return result.rowcount

    # -------------------------------------------------------------------------
    # Builds
    # -------------------------------------------------------------------------
    async def attach_try_build(
        self, pr: PullRequest, branch: str, commit_sha: str, parent: str
    ) -> Build:
        """
        Create a pending build and attach it to `pr` as its try build.

        Both writes happen in one transaction, so a reader never sees a PR
        pointing at a missing build or a build that is only half attached.
        """
        async with self.session_factory() as session:
            async with session.begin():
                build = Build(
                    repository=pr.repository,
                    branch=branch,
                    commit_sha=commit_sha,
                    parent=parent,
                    status=BuildStatus.PENDING.value,
                )
                session.add(build)
                await session.flush()
                await session.exec(
                    update(PullRequest)
                    .where(PullRequest.id == pr.id)
                    .values(try_build_id=build.id)
                )
        pr.try_build_id = build.id
        logger.info(
            "Attached try build %s (%s) to %s#%d",
            build.id,
            commit_sha,
            pr.repository,
            pr.number,
        )
        return build

    async def find_build(
        self, repo: GithubRepoName, branch: str, commit_sha: str
    ) -> Optional[Build]:
        """Find the latest build of `commit_sha` on `branch`."""
        async with self.session_factory() as session:
            statement = (
                select(Build)
                .where(Build.repository == str(repo))
                .where(Build.branch == branch)
                .where(Build.commit_sha == commit_sha)
                .order_by(desc(Build.id))
            )
            result = await session.exec(statement)
            return result.first()

    async def get_running_builds(self, repo: GithubRepoName) -> List[Build]:
        """Return all builds of `repo` that have not reached a terminal status."""
        async with self.session_factory() as session:
            statement = (
                select(Build)
                .where(Build.repository == str(repo))
                .where(Build.status == BuildStatus.PENDING.value)
                .order_by(Build.id)
            )
            result = await session.exec(statement)
            return list(result.all())

    async def get_repositories_with_running_builds(self) -> List[GithubRepoName]:
        async with self.session_factory() as session:
            statement = (
                select(Build.repository)
                .where(Build.status == BuildStatus.PENDING.value)
                .distinct()
            )
            result = await session.exec(statement)
            return [GithubRepoName.parse(name) for name in result.all()]

    async def update_build_status(self, build: Build, status: BuildStatus) -> bool:
        """
        Move a pending build into a terminal status.

        The update only matches rows that are still pending, so a terminal
        status can never be overwritten, even by duplicated deliveries.

        Returns:
            True if the row changed, False if the build was already terminal.

        Raises:
            ValueError: If `status` is not a terminal status.
        """
        status = BuildStatus(status)
        if not BuildStatus.PENDING.can_transition_to(status):
            raise ValueError(f"Invalid build status transition to {status.value}")

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.exec(
                    update(Build)
                    .where(Build.id == build.id)
                    .where(Build.status == BuildStatus.PENDING.value)
                    .values(status=status.value)
                )
        if result.rowcount == 0:
            logger.warning(
                "Build %s is no longer pending, not moving it to %s",
                build.id,
                status.value,
            )
            return False
        build.status = status.value
        return True

    # -------------------------------------------------------------------------
    # Workflows
    # -------------------------------------------------------------------------
    async def create_workflow(
        self,
        build: Build,
        name: str,
        url: str,
        run_id: int,
        workflow_type: WorkflowType,
        status: WorkflowStatus,
    ) -> None:
        """Record a workflow run of `build`; a no-op if the run is already known."""
        async with self.session_factory() as session:
            async with session.begin():
                stmt = (
                    _insert(session, Workflow)
                    .values(
                        build_id=build.id,
                        name=name,
                        url=url,
                        run_id=run_id_to_db(run_id),
                        workflow_type=WorkflowType(workflow_type).value,
                        status=WorkflowStatus(status).value,
                    )
                    .on_conflict_do_nothing(index_elements=["workflow_type", "run_id"])
                )
                await session.exec(stmt)

    async def update_workflow_status(
        self,
        run_id: int,
        status: WorkflowStatus,
        workflow_type: WorkflowType = WorkflowType.GITHUB,
    ) -> int:
        """
        Update the status of the workflow with the given run id.

        Unknown run ids are not an error: nothing is updated and no row is
        created. Workflows that already finished keep their status.

        Returns:
            Number of updated rows (0 or 1).

        Raises:
            ValueError: If `status` is not a terminal status.
        """
        status = WorkflowStatus(status)
        if not WorkflowStatus.PENDING.can_transition_to(status):
            raise ValueError(f"Invalid workflow status transition to {status.value}")
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.exec(
                    update(Workflow)
                    .where(Workflow.run_id == run_id_to_db(run_id))
                    .where(Workflow.workflow_type == WorkflowType(workflow_type).value)
                    .where(Workflow.status == WorkflowStatus.PENDING.value)
                    .values(status=status.value)
                )
        if result.rowcount == 0:
            logger.debug("No pending workflow with run id %d", run_id)
        return result.rowcount

    async def get_workflows_for_build(self, build: Build) -> List[Workflow]:
        async with self.session_factory() as session:
            statement = (
                select(Workflow)
                .options(selectinload(Workflow.build))
                .where(Workflow.build_id == build.id)
                .order_by(Workflow.id)
            )
            result = await session.exec(statement)
            return list(result.all())
