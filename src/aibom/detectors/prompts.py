"""Prompt-template unit.

Prompts are inputs, not components, so they never become BOM entries.
The unit reports prompt directories and files with prompt indicators as
signals and in the log.
"""

from __future__ import annotations

import logging
import re

from aibom.context.base import RepoFile
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete
from aibom.detectors.catalogs import PROMPT_FILE_EXTENSIONS, PROMPT_INDICATORS, PROMPT_PATH_PATTERN

logger = logging.getLogger(__name__)

PROMPT_FILE_LIMIT = 20

_PROMPT_DIR = re.compile(r"^(.*?(?:^|/)(?:prompts|templates|llm|ai)[^/]*)/", re.I)


def prompt_candidates(files: list[RepoFile]) -> list[RepoFile]:
    return [
        f for f in files
        if PROMPT_PATH_PATTERN.search(f.path) and f.extension in PROMPT_FILE_EXTENSIONS
    ]


def prompt_directories(files: list[RepoFile]) -> list[str]:
    """Directories whose name starts with a prompt-related word."""
    dirs: dict[str, None] = {}
    for f in files:
        match = _PROMPT_DIR.match(f.path)
        if match:
            dirs[match.group(1)] = None
    return list(dirs)


class PromptUnit(DetectionUnit):
    name = "Prompts"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        prompt_files: list[str] = []
        for repo_file in prompt_candidates(context.files)[:PROMPT_FILE_LIMIT]:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            lower = content.lower()
            indicators = [ind for ind in PROMPT_INDICATORS if ind.lower() in lower]
            if indicators:
                logger.debug("Prompt indicators in %s: %s", repo_file.path, ", ".join(indicators))
                prompt_files.append(repo_file.path)

        directories = prompt_directories(context.files)
        if directories:
            logger.info("Prompt/AI directories: %s", ", ".join(directories))
        if prompt_files:
            logger.info("%d files with prompt indicators", len(prompt_files))
        return complete(signals={"prompt_directories": directories, "prompt_files": prompt_files})
