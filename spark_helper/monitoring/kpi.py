from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Union


class ThresholdType(str, Enum):
    EQUAL_TO = "equal to"
    SUPERIOR_THAN = "superior than"
    INFERIOR_THAN = "inferior than"

    @classmethod
    def coerce(cls, value: Union["ThresholdType", str]) -> "ThresholdType":
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key.upper() == member.name or key.lower() == member.value:
                return member
        raise ValueError(f"Unknown threshold type: {value!r}")

    def check(self, value: float, threshold: float) -> bool:
        if self is ThresholdType.EQUAL_TO:
            return value == threshold
        if self is ThresholdType.SUPERIOR_THAN:
            return value >= threshold
        return value <= threshold


class KpiType(str, Enum):
    NBR = ""
    PCT = "%"

    @classmethod
    def coerce(cls, value: Union["KpiType", str]) -> "KpiType":
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key.upper() == member.name or key == member.value:
                return member
        raise ValueError(f"Unknown KPI type: {value!r}")

    @property
    def suffix(self) -> str:
        return self.value


@dataclass
class KpiTest:
    """A named KPI compared against a threshold; failing tests fail the job."""

    description: str
    kpi_value: float
    threshold_type: ThresholdType
    applied_threshold: float
    kpi_type: KpiType = KpiType.NBR

    def __post_init__(self) -> None:
        self.threshold_type = ThresholdType.coerce(self.threshold_type)
        self.kpi_type = KpiType.coerce(self.kpi_type)
        self.kpi_value = float(self.kpi_value)
        self.applied_threshold = float(self.applied_threshold)

    @property
    def is_success(self) -> bool:
        return self.threshold_type.check(self.kpi_value, self.applied_threshold)

    def render(self) -> List[str]:
        suffix = self.kpi_type.suffix
        return [
            f"  KPI: {self.description}",
            f"    Value: {self.kpi_value}{suffix}",
            f"    Must be {self.threshold_type.value} {self.applied_threshold}{suffix}",
            f"    Validated: {str(self.is_success).lower()}",
        ]

    def __str__(self) -> str:
        return "\n".join(self.render())
