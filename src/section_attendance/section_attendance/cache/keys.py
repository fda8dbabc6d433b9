from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Union
from urllib.parse import urlencode

KEY_PREFIX = "attendance"


@dataclass(frozen=True)
class SectionDay:
    """Data for one grade section on one day."""

    grade_section_id: str
    attendance_date: date

    def token(self) -> str:
        return f"section-day:{self.grade_section_id}:{self.attendance_date.isoformat()}"


@dataclass(frozen=True)
class SchoolDay:
    """Data aggregated across sections for one day."""

    attendance_date: date

    def token(self) -> str:
        return f"school-day:{self.attendance_date.isoformat()}"


CacheScope = Union[SectionDay, SchoolDay]


@dataclass(frozen=True)
class CacheKey:
    """Route + normalized query + caller: the same URL can differ per caller."""

    route: str
    params: tuple[tuple[str, str], ...]
    role: str
    actor_id: str

    @classmethod
    def build(cls, route: str, params: Mapping[str, object], *, role: str, actor_id: str) -> "CacheKey":
        normalized = tuple(
            sorted((str(k), v.isoformat() if isinstance(v, date) else str(v)) for k, v in params.items() if v is not None)
        )
        return cls(route=route, params=normalized, role=str(role), actor_id=str(actor_id))

    def render(self) -> str:
        return f"{KEY_PREFIX}:{self.route}?{urlencode(self.params)}#{self.role}:{self.actor_id}"
