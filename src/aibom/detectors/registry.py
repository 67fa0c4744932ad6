"""Ordered registry of detection units.

``DetectorRegistry`` keeps units in registration order, which is also
execution order: producers of shared state must be registered before the
units that declare they consume it. ``default_pipeline()`` registers the
twelve built-in units in that order.

Pipeline Order
--------------
1. Dependencies        -- exposes ``sbom_available`` and the dependency list
2. Code                -- consumes dependencies; exposes AI-confirmed files
3. Metadata
4. AI Models           -- consumes AI files and accumulated Findings
5. Configuration
6. CI/CD
7. Model Files
8. Prompts
9. Hardware            -- consumes dependency Findings
10. Infrastructure     -- consumes dependency Findings
11. Documentation      -- exposes parsed documentation
12. Risk Assessment    -- consumes parsed documentation
"""

from __future__ import annotations

from collections.abc import Iterator

from aibom.detectors.base import DetectionUnit
from aibom.detectors.ci import CIUnit
from aibom.detectors.code_usage import CodeUsageUnit
from aibom.detectors.configuration import ConfigurationUnit
from aibom.detectors.dependencies import DependencyUnit
from aibom.detectors.documentation import DocumentationParser
from aibom.detectors.hardware import HardwareUnit
from aibom.detectors.infrastructure import InfrastructureUnit
from aibom.detectors.metadata import MetadataUnit
from aibom.detectors.model_files import ModelFileUnit
from aibom.detectors.models import ModelIdentificationUnit
from aibom.detectors.prompts import PromptUnit
from aibom.detectors.risk import RiskUnit


class DetectorRegistry:
    """Registry of detection units in execution order.

    Attributes:
        units: Registered unit instances.
    """

    def __init__(self) -> None:
        self.units: list[DetectionUnit] = []

    def register(self, unit: DetectionUnit) -> None:
        """Append *unit*; names must be unique.

        Raises:
            ValueError: If a unit with the same name is already registered.
        """
        if unit.name in self.names():
            raise ValueError(f"Detection unit already registered: {unit.name}")
        self.units.append(unit)

    def names(self) -> list[str]:
        return [unit.name for unit in self.units]

    def get(self, name: str) -> DetectionUnit | None:
        return next((unit for unit in self.units if unit.name == name), None)

    def without(self, *names: str) -> DetectorRegistry:
        """Copy of this registry minus the named units."""
        registry = DetectorRegistry()
        for unit in self.units:
            if unit.name not in names:
                registry.register(unit)
        return registry

    def __iter__(self) -> Iterator[DetectionUnit]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)


def default_pipeline() -> DetectorRegistry:
    """Create a DetectorRegistry with all twelve built-in units in pipeline order."""
    registry = DetectorRegistry()
    registry.register(DependencyUnit())
    registry.register(CodeUsageUnit())
    registry.register(MetadataUnit())
    registry.register(ModelIdentificationUnit())
    registry.register(ConfigurationUnit())
    registry.register(CIUnit())
    registry.register(ModelFileUnit())
    registry.register(PromptUnit())
    registry.register(HardwareUnit())
    registry.register(InfrastructureUnit())
    registry.register(DocumentationParser())
    registry.register(RiskUnit())
    return registry
