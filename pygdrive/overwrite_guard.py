"""Confirmation before pushing over existing remote entries."""

import logging
from typing import Callable, Iterable

import click

from .api import DriveClient
from .output import OutputFormatter
from .utils import OVERWRITE_CHECK_LIMIT

logger = logging.getLogger(__name__)

CONFIRM_ANSWERS = ("y", "yes")


def console_confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal.

    Only "y" or "yes" (any case) confirm. An empty answer, any other text
    and end of input all decline.
    """
    try:
        answer = click.prompt(prompt, default="", show_default=False, err=True)
    except click.Abort:
        return False
    return answer.strip().lower() in CONFIRM_ANSWERS


class OverwriteGuard:
    """Warns about top-level name collisions and asks whether to continue.

    Only the direct children of the destination are compared with the
    top-level local names. Collisions deeper in the tree are not detected.
    """

    def __init__(
        self,
        client: DriveClient,
        out: OutputFormatter,
        confirm: Callable[[str], bool] = console_confirm,
        overwrite: bool = False,
    ):
        """Initialize the guard.

        Args:
            client: Drive API client
            out: Output formatter
            confirm: Callable asked once when collisions exist
            overwrite: Skip the check entirely and always proceed
        """
        self.client = client
        self.out = out
        self.confirm = confirm
        self.overwrite = overwrite

    def check_and_confirm(self, parent_id: str, local_names: Iterable[str]) -> bool:
        """Check the destination for collisions.

        Args:
            parent_id: Destination folder id
            local_names: Names that will be created directly in the folder

        Returns:
            True to proceed with the push, False to abort
        """
        if self.overwrite:
            return True

        names = set(local_names)
        existing = self.client.find(
            parent_id, trashed=False, limit=OVERWRITE_CHECK_LIMIT
        )
        collisions = [entry for entry in existing if entry.name in names]
        if not collisions:
            logger.debug("No name collisions in %s", parent_id)
            return True

        self.out.prompt_warning(
            "The following entries already exist in the destination:"
        )
        for entry in sorted(collisions, key=lambda e: e.name):
            label = "directory" if entry.is_folder else "file"
            self.out.prompt_warning(f"  {entry.name} ({label})")
        self.out.prompt_warning(
            "Only top-level names are checked; nested entries may also exist."
        )
        return self.confirm("Upload anyway, creating duplicates? [y/N]")
