from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.github.client import GitHubAPIError
from bors.state import RepositoryState

logger = get_logger(__name__)


async def handle_label_trigger(
    repo: RepositoryState, pr_number: int, trigger: LabelTrigger
) -> bool:
    """
    Apply the label additions/removals configured for `trigger`.

    Label failures are reported in the log but never abort the calling
    handler: the state change that fired the trigger is already committed.

    Returns:
        False if the label API call failed, True otherwise.
    """
    modifications = repo.config.labels.get(trigger) or []
    if not modifications:
        return True

    to_add = [m.label for m in modifications if m.add]
    to_remove = [m.label for m in modifications if not m.add]
    logger.info(
        "Label trigger %s on %s#%d: add %s, remove %s",
        trigger.value,
        repo.repository,
        pr_number,
        to_add,
        to_remove,
    )
    try:
        for label in to_remove:
            await repo.client.remove_label(pr_number, label)
        if to_add:
            await repo.client.add_labels(pr_number, to_add)
    except GitHubAPIError as e:
        logger.error(
            "Cannot apply label trigger %s on %s#%d: %s",
            trigger.value,
            repo.repository,
            pr_number,
            e,
        )
        return False
    return True
