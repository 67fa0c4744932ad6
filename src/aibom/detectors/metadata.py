"""Repository metadata unit.

Description and topics are matched against AI keywords for the log only.
Repository metadata already lands in every BOM's metadata block, and a
keyword is not a component, so this unit never produces Findings.
"""

from __future__ import annotations

import logging

from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete
from aibom.detectors.catalogs import METADATA_KEYWORDS

logger = logging.getLogger(__name__)


def metadata_keywords(description: str, topics: tuple[str, ...] | list[str]) -> list[str]:
    """AI keywords present in the description or any topic, in catalog order."""
    haystacks = [description.lower()] + [t.lower() for t in topics]
    return [kw for kw in METADATA_KEYWORDS if any(kw in text for text in haystacks)]


class MetadataUnit(DetectionUnit):
    name = "Metadata"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        info = unit_input.context.info
        found = metadata_keywords(info.description or "", info.topics)
        if found:
            logger.info("AI keywords in repository metadata: %s", ", ".join(found))
        else:
            logger.debug("No AI keywords in repository metadata")
        return complete(signals={"metadata_keywords": found})
