"""
Catch statistics: pure aggregations over lists of record dicts.

Sizes and weights only count when they are finite and > 0. A size of 0 passes
validation but is treated as "not measured" here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from core.timeutil import isoformat, parse_datetime
from core.validators import is_finite_number

PERCENTILES = (25, 50, 75, 90, 95)
SIZE_BUCKETS = 10
UNKNOWN_WEATHER = "unknown"

_SECONDS_PER_DAY = 86400


def _round1(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return math.copysign(math.floor(abs(value) * 10 + 0.5) / 10, value)


def _average(values: Sequence[float]) -> float:
    return _round1(sum(values) / len(values)) if values else 0.0


def _total(values: Iterable[float]) -> float:
    return _round1(sum(values))


def _percentage(part: int, whole: int) -> float:
    return _round1(part / whole * 100) if whole else 0.0


def _positive(records: Iterable[dict], key: str) -> list[float]:
    values = []
    for record in records:
        value = record.get(key)
        if is_finite_number(value) and value > 0:
            values.append(value)
    return values


def _label(record: dict, key: str) -> str:
    value = record.get(key)
    return value.strip() if isinstance(value, str) else ""


def _distinct_labels(records: Iterable[dict], key: str) -> list[str]:
    seen: dict[str, None] = {}
    for record in records:
        label = _label(record, key)
        if label:
            seen.setdefault(label, None)
    return list(seen)


def _record_date(record: dict) -> Optional[datetime]:
    # keeps the record's own offset so months and seasons follow its local calendar
    return parse_datetime(record.get("date"))


def _group_by(records: Iterable[dict], key_fn: Callable[[dict], Optional[str]]) -> dict[str, list[dict]]:
    # dicts keep first-seen order, which the stable sort below preserves for ties
    groups: dict[str, list[dict]] = {}
    for record in records:
        key = key_fn(record)
        if key:
            groups.setdefault(key, []).append(record)
    return groups


def _by_count_desc(items: list) -> list:
    return sorted(items, key=lambda item: item.count, reverse=True)


# =============================================================================
# Result types
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    earliest: Optional[datetime]
    latest: Optional[datetime]
    days_covered: int

    def to_dict(self) -> dict:
        return {
            "earliest": isoformat(self.earliest),
            "latest": isoformat(self.latest),
            "days_covered": self.days_covered,
        }


@dataclass(frozen=True)
class OverallStats:
    total_records: int
    total_catches: int
    average_size: float
    total_weight: float
    unique_locations: int
    unique_species: int
    date_range: DateRange
    records_with_photo: int
    records_with_gps: int

    def to_dict(self) -> dict:
        return {
            "total_records": self.total_records,
            "total_catches": self.total_catches,
            "average_size": self.average_size,
            "total_weight": self.total_weight,
            "unique_locations": self.unique_locations,
            "unique_species": self.unique_species,
            "date_range": self.date_range.to_dict(),
            "records_with_photo": self.records_with_photo,
            "records_with_gps": self.records_with_gps,
        }


@dataclass(frozen=True)
class GroupStats:
    count: int
    average_size: float
    max_size: float
    min_size: float
    total_weight: float
    percentage: float

    def _base_dict(self) -> dict:
        return {
            "count": self.count,
            "average_size": self.average_size,
            "max_size": self.max_size,
            "min_size": self.min_size,
            "total_weight": self.total_weight,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class SpeciesStats(GroupStats):
    species: str = ""
    locations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"species": self.species, **self._base_dict(), "locations": list(self.locations)}


@dataclass(frozen=True)
class LocationStats(GroupStats):
    location: str = ""
    species: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"location": self.location, **self._base_dict(), "species": list(self.species)}


@dataclass(frozen=True)
class WeatherStats(GroupStats):
    weather: str = ""
    average_temperature: float = 0.0
    species: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "weather": self.weather,
            **self._base_dict(),
            "average_temperature": self.average_temperature,
            "species": list(self.species),
        }


@dataclass(frozen=True)
class MonthlyStats:
    year: int
    month: int
    count: int
    average_size: float
    total_weight: float
    species: frozenset = field(default_factory=frozenset)
    locations: frozenset = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "count": self.count,
            "average_size": self.average_size,
            "total_weight": self.total_weight,
            "species": sorted(self.species),
            "locations": sorted(self.locations),
        }


@dataclass(frozen=True)
class YearlyTrend:
    year: int
    count: int
    average_size: float

    def to_dict(self) -> dict:
        return {"year": self.year, "count": self.count, "average_size": self.average_size}


@dataclass(frozen=True)
class SeasonalCounts:
    spring: int = 0
    summer: int = 0
    autumn: int = 0
    winter: int = 0

    def to_dict(self) -> dict:
        return {"spring": self.spring, "summer": self.summer, "autumn": self.autumn, "winter": self.winter}


@dataclass(frozen=True)
class TimeAnalysis:
    monthly: tuple[MonthlyStats, ...]
    seasonal: SeasonalCounts
    yearly_trends: tuple[YearlyTrend, ...]

    def to_dict(self) -> dict:
        return {
            "monthly": [item.to_dict() for item in self.monthly],
            "seasonal": self.seasonal.to_dict(),
            "yearly_trends": [item.to_dict() for item in self.yearly_trends],
        }


@dataclass(frozen=True)
class SizeRange:
    range: str
    min: int
    max: int
    count: int
    percentage: float

    def to_dict(self) -> dict:
        return {"range": self.range, "min": self.min, "max": self.max, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class SizeDistribution:
    ranges: tuple[SizeRange, ...]
    percentiles: dict[str, float]

    def to_dict(self) -> dict:
        return {
            "ranges": [item.to_dict() for item in self.ranges],
            "percentiles": dict(self.percentiles),
        }


# =============================================================================
# Aggregations
# =============================================================================

def calculate_overall_stats(records: Sequence[dict]) -> OverallStats:
    dates = sorted(d for d in (_record_date(record) for record in records) if d is not None)
    if dates:
        earliest, latest = dates[0], dates[-1]
        span = (latest - earliest).total_seconds()
        date_range = DateRange(earliest, latest, int(span // _SECONDS_PER_DAY) + 1)
    else:
        date_range = DateRange(None, None, 0)

    return OverallStats(
        total_records=len(records),
        total_catches=len(records),
        average_size=_average(_positive(records, "size")),
        total_weight=_total(_positive(records, "weight")),
        unique_locations=len(_distinct_labels(records, "location")),
        unique_species=len(_distinct_labels(records, "fish_species")),
        date_range=date_range,
        records_with_photo=sum(1 for record in records if record.get("photo_id")),
        records_with_gps=sum(1 for record in records if record.get("coordinates")),
    )


def _group_values(group: list[dict], total_records: int) -> dict[str, Any]:
    sizes = _positive(group, "size")
    return {
        "count": len(group),
        "average_size": _average(sizes),
        "max_size": max(sizes) if sizes else 0,
        "min_size": min(sizes) if sizes else 0,
        "total_weight": _total(_positive(group, "weight")),
        "percentage": _percentage(len(group), total_records),
    }


def calculate_species_stats(records: Sequence[dict]) -> list[SpeciesStats]:
    groups = _group_by(records, lambda record: _label(record, "fish_species"))
    stats = [
        SpeciesStats(
            species=species,
            locations=tuple(_distinct_labels(group, "location")),
            **_group_values(group, len(records)),
        )
        for species, group in groups.items()
    ]
    return _by_count_desc(stats)


def calculate_location_stats(records: Sequence[dict]) -> list[LocationStats]:
    groups = _group_by(records, lambda record: _label(record, "location"))
    stats = [
        LocationStats(
            location=location,
            species=tuple(_distinct_labels(group, "fish_species")),
            **_group_values(group, len(records)),
        )
        for location, group in groups.items()
    ]
    return _by_count_desc(stats)


def calculate_weather_stats(records: Sequence[dict]) -> list[WeatherStats]:
    groups = _group_by(records, lambda record: _label(record, "weather") or UNKNOWN_WEATHER)
    stats = []
    for weather, group in groups.items():
        temperatures = [
            record["temperature"]
            for record in group
            if is_finite_number(record.get("temperature")) and record["temperature"] > -50
        ]
        stats.append(WeatherStats(
            weather=weather,
            average_temperature=_average(temperatures),
            species=tuple(_distinct_labels(group, "fish_species")),
            **_group_values(group, len(records)),
        ))
    return _by_count_desc(stats)


def _season(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


def calculate_time_analysis(records: Sequence[dict]) -> TimeAnalysis:
    monthly_groups: dict[tuple[int, int], list[dict]] = {}
    yearly_groups: dict[int, list[dict]] = {}
    for record in records:
        when = _record_date(record)
        if when is None:
            continue
        monthly_groups.setdefault((when.year, when.month), []).append(record)
        yearly_groups.setdefault(when.year, []).append(record)

    monthly = tuple(
        MonthlyStats(
            year=year,
            month=month,
            count=len(group),
            average_size=_average(_positive(group, "size")),
            total_weight=_total(_positive(group, "weight")),
            species=frozenset(_distinct_labels(group, "fish_species")),
            locations=frozenset(_distinct_labels(group, "location")),
        )
        for (year, month), group in sorted(monthly_groups.items())
    )

    seasons = {"spring": 0, "summer": 0, "autumn": 0, "winter": 0}
    for stat in monthly:
        seasons[_season(stat.month)] += stat.count

    yearly = tuple(
        YearlyTrend(year=year, count=len(group), average_size=_average(_positive(group, "size")))
        for year, group in sorted(yearly_groups.items())
    )

    return TimeAnalysis(monthly=monthly, seasonal=SeasonalCounts(**seasons), yearly_trends=yearly)


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear interpolation at rank ``(p / 100) * (n - 1)``."""
    rank = (p / 100) * (len(sorted_values) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return _round1(sorted_values[lower])
    weight = rank - lower
    return _round1(sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight)


def calculate_size_distribution(records: Sequence[dict]) -> SizeDistribution:
    sizes = sorted(_positive(records, "size"))
    if not sizes:
        return SizeDistribution(ranges=(), percentiles={f"p{p}": 0 for p in PERCENTILES})

    step = math.ceil(sizes[-1] / SIZE_BUCKETS)
    ranges = []
    for index in range(SIZE_BUCKETS):
        low, high = index * step, (index + 1) * step
        if index == SIZE_BUCKETS - 1:
            count = sum(1 for size in sizes if low <= size <= high)
        else:
            count = sum(1 for size in sizes if low <= size < high)
        ranges.append(SizeRange(
            range=f"{low}-{high}cm",
            min=low,
            max=high,
            count=count,
            percentage=_percentage(count, len(sizes)),
        ))

    return SizeDistribution(
        ranges=tuple(ranges),
        percentiles={f"p{p}": percentile(sizes, p) for p in PERCENTILES},
    )


def build_statistics_report(records: Sequence[dict]) -> dict:
    """Every view in one serializable payload."""
    return {
        "overall": calculate_overall_stats(records).to_dict(),
        "species": [item.to_dict() for item in calculate_species_stats(records)],
        "locations": [item.to_dict() for item in calculate_location_stats(records)],
        "time": calculate_time_analysis(records).to_dict(),
        "sizes": calculate_size_distribution(records).to_dict(),
        "weather": [item.to_dict() for item in calculate_weather_stats(records)],
    }


__all__ = [
    "OverallStats",
    "SpeciesStats",
    "LocationStats",
    "WeatherStats",
    "MonthlyStats",
    "TimeAnalysis",
    "SizeDistribution",
    "calculate_overall_stats",
    "calculate_species_stats",
    "calculate_location_stats",
    "calculate_weather_stats",
    "calculate_time_analysis",
    "calculate_size_distribution",
    "percentile",
    "build_statistics_report",
]
