from typing import Iterable, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Query

from edutrack_backend.model.enrollment import Enrollment


def average(values: Iterable[float]) -> float:
    """Arithmetic mean; an empty collection averages to 0."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def normalize_average(value: Optional[float]) -> float:
    return float(value) if value is not None else 0.0


def progress_summary(query: Query) -> Tuple[int, float]:
    """Count and average progress of an already filtered enrollment query."""
    count, avg = query.with_entities(func.count(Enrollment.id), func.avg(Enrollment.progress)).one()
    return int(count or 0), normalize_average(avg)
