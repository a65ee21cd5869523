from bors.state import RepositoryState


async def command_ping(repo: RepositoryState, pr_number: int) -> None:
    await repo.client.post_comment(pr_number, "Pong 🏓!")


async def command_help(repo: RepositoryState, pr_number: int, prefix: str) -> None:
    await repo.client.post_comment(
        pr_number,
        "\n".join(
            [
                "You can use the following commands:",
                "",
                f"- `{prefix} r+`: Approve this PR",
                f"- `{prefix} r=<user>`: Approve this PR on behalf of `<user>`",
                f"- `{prefix} r-`: Unapprove this PR",
                f"- `{prefix} try`: Start a try build",
                f"- `{prefix} try parent=<sha>`: Start a try build on top of `<sha>`",
                f"- `{prefix} try cancel`: Cancel a running try build",
                f"- `{prefix} ping`: Check if the bot is alive",
                f"- `{prefix} help`: Print this help message",
            ]
        ),
    )
