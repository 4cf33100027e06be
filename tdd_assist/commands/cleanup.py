"""Cleanup command: prunes generated artifacts from the artifact directory."""

import asyncio
import logging
import os
import shutil
import time
from typing import List

from ..collaborators import Collaborators
from ..session_context import SessionContext
from .base import ChatCommand

logger = logging.getLogger(__name__)

CLEANUP_TRIGGERS = (
    "/cleanup",
    "cleanup",
    "clean up",
    "clean repository",
    "clean artifacts",
    "remove generated files",
    "cleanup backups",
)
BACKUP_SUFFIXES = (".bak", ".orig", "~")

# Generated files kept per directory by a standard cleanup
KEEP_PER_DIRECTORY = 5


def can_handle(text: str) -> bool:
    lowered = text.lower().strip()
    return any(trigger in lowered for trigger in CLEANUP_TRIGGERS)


def remove_backups(root: str) -> List[str]:
    removed = []
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            if filename.endswith(BACKUP_SUFFIXES):
                path = os.path.join(dirpath, filename)
                os.remove(path)
                removed.append(path)
    return removed


def prune_old_files(root: str, keep: int = KEEP_PER_DIRECTORY) -> List[str]:
    """Delete all but the ``keep`` newest files in each directory under ``root``."""
    removed = []
    for dirpath, _, filenames in os.walk(root):
        paths = sorted(
            (os.path.join(dirpath, name) for name in filenames),
            key=os.path.getmtime,
            reverse=True,
        )
        for path in paths[keep:]:
            os.remove(path)
            removed.append(path)
    return removed


def remove_all(root: str) -> List[str]:
    removed = [os.path.join(dirpath, name) for dirpath, _, names in os.walk(root) for name in names]
    shutil.rmtree(root)
    return removed


async def execute(text: str, context: SessionContext, collaborators: Collaborators) -> str:
    try:
        started = time.monotonic()
        root = context.get_artifact_root()
        if not os.path.isdir(root):
            return f"🧹 **Nothing to clean**: `{root}` does not exist yet."

        lowered = text.lower()
        if "backup" in lowered:
            action, label = remove_backups, "Backup files cleaned"
        elif "deep" in lowered or "all" in lowered.split():
            action, label = remove_all, "All generated artifacts removed"
        else:
            action, label = prune_old_files, f"Old artifacts cleaned (kept last {KEEP_PER_DIRECTORY} per directory)"

        loop = asyncio.get_running_loop()
        removed = await loop.run_in_executor(None, action, root)
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("Cleanup removed %d files from %s", len(removed), root)
        return (
            f"🧹 **Cleanup Complete** ({duration_ms}ms)\n\n"
            f"✅ {label}: {len(removed)} file(s)\n\n"
            f"📁 **Artifact directory:** `{root}`"
        )
    except Exception as e:
        logger.error("Cleanup command failed: %s", e, exc_info=True)
        return (
            f"❌ **Cleanup Failed:** {e}\n\n"
            "💡 Try `/cleanup backup` for backup-only cleanup or `/cleanup deep` for a full cleanup."
        )


COMMAND = ChatCommand(
    command="/cleanup",
    can_handle=can_handle,
    execute=execute,
    description="Remove old generated artifacts (`/cleanup [backup|deep]`)",
)
