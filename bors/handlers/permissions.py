from bors.core.logging import get_logger
from bors.github.models import GithubUser
from bors.state import RepositoryState

logger = get_logger(__name__)


async def check_write_permission(
    repo: RepositoryState, pr_number: int, author: GithubUser, action: str
) -> bool:
    """
    Check that `author` may run a privileged command, commenting on the PR if not.

    Args:
        action: Human readable name of the permission, e.g. "review" or "try".
    """
    if await repo.client.has_write_permission(author.login):
        return True

    logger.info(
        "%s lacks %s permission on %s", author.login, action, repo.repository
    )
    await repo.client.post_comment(
        pr_number,
        f"@{author.login}: :key: Insufficient privileges: not in {action} users",
    )
    return False
