"""
Range buckets for the numeric filter dimensions.

Every bucket is half-open, ``min <= value < max``. A bucket can be selected by
its numeric id (as stored in older query strings), by the string form of
that id, or by its key in either canonical or lower case (``'<1MB'`` or
``'<1mb'``).
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

INF = math.inf


@dataclass(frozen=True)
class RangeConfig:
    id: int
    key: str
    label: str
    min: float
    max: float
    sort_index: int

    def contains(self, value: float) -> bool:
        return self.min <= value < self.max


RATING_RANGES_5: Tuple[RangeConfig, ...] = (
    RangeConfig(0, '0to1', '0 to 1', 0, 1, 0),
    RangeConfig(1, '1to2', '1 to 2', 1, 2, 1),
    RangeConfig(2, '2to3', '2 to 3', 2, 3, 2),
    RangeConfig(3, '3to4', '3 to 4', 3, 4, 3),
    RangeConfig(4, '4to4.5', '4 to 4.5', 4, 4.5, 4),
    RangeConfig(5, '4.5+', '4.5+', 4.5, INF, 5),
)

RATING_OPTIONS_10: Tuple[RangeConfig, ...] = tuple(
    RangeConfig(i, str(i), str(i), i, i + 1, i - 1) for i in range(1, 11)
)

# Sizes in KB. 100–250 MB and 2–5 GB fall in no bucket.
FILE_SIZE_RANGES: Tuple[RangeConfig, ...] = (
    RangeConfig(0, '<1MB', '< 1 MB', 0, 1024, 0),
    RangeConfig(1, '1to10MB', '1–10 MB', 1024, 10240, 1),
    RangeConfig(2, '10to50MB', '10–50 MB', 10240, 51200, 2),
    RangeConfig(3, '50to100MB', '50–100 MB', 51200, 102400, 3),
    RangeConfig(4, '250to500MB', '250–500 MB', 256000, 512000, 4),
    RangeConfig(5, '0.5to1GB', '0.5–1 GB', 512000, 1048576, 5),
    RangeConfig(6, '1to2GB', '1–2 GB', 1048576, 2097152, 6),
    RangeConfig(7, '5GB+', '5+ GB', 5242880, INF, 7),
)

PAGE_COUNT_RANGES: Tuple[RangeConfig, ...] = (
    RangeConfig(0, '<50', '< 50 pages', 0, 50, 0),
    RangeConfig(1, '50to100', '50–100 pages', 50, 100, 1),
    RangeConfig(2, '100to200', '100–200 pages', 100, 200, 2),
    RangeConfig(3, '200to400', '200–400 pages', 200, 400, 3),
    RangeConfig(4, '400to600', '400–600 pages', 400, 600, 4),
    RangeConfig(5, '600to1000', '600–1000 pages', 600, 1000, 5),
    RangeConfig(6, '1000+', '1000+ pages', 1000, INF, 6),
)

MATCH_SCORE_RANGES: Tuple[RangeConfig, ...] = (
    RangeConfig(0, 'outstanding', 'Outstanding (95–100%)', 0.95, 1.01, 0),
    RangeConfig(1, 'excellent', 'Excellent (90–94%)', 0.90, 0.95, 1),
    RangeConfig(2, 'great', 'Great (80–89%)', 0.80, 0.90, 2),
    RangeConfig(3, 'good', 'Good (70–79%)', 0.70, 0.80, 3),
    RangeConfig(4, 'fair', 'Fair (50–69%)', 0.50, 0.70, 4),
    RangeConfig(5, 'weak', 'Weak (30–49%)', 0.30, 0.50, 5),
    RangeConfig(6, 'poor', 'Poor (0–29%)', 0.00, 0.30, 6),
)

AGE_RATING_OPTIONS: Tuple[RangeConfig, ...] = (
    RangeConfig(0, 'all', 'All Ages', 0, 1, 0),
    RangeConfig(6, '6+', '6+', 6, 7, 1),
    RangeConfig(10, '10+', '10+', 10, 11, 2),
    RangeConfig(13, '13+', '13+', 13, 14, 3),
    RangeConfig(16, '16+', '16+', 16, 17, 4),
    RangeConfig(18, '18+', '18+', 18, 19, 5),
    RangeConfig(21, '21+', '21+', 21, 22, 6),
)


def find_range(ranges: Sequence[RangeConfig], range_id: Any) -> Optional[RangeConfig]:
    """Look up a bucket by numeric id, id text, or key (canonical or lower-cased)."""
    if range_id is None or isinstance(range_id, bool):
        return None
    if isinstance(range_id, (int, float)):
        return next((r for r in ranges if r.id == range_id), None)

    text = str(range_id).strip()
    for r in ranges:
        if text == r.key or text == r.key.lower():
            return r
    try:
        numeric = float(text)
    except ValueError:
        return None
    return next((r for r in ranges if r.id == numeric), None)


def find_bucket(value: Optional[float], ranges: Sequence[RangeConfig]) -> Optional[RangeConfig]:
    """The bucket a value falls in, None when absent or outside every bucket."""
    if value is None:
        return None
    return next((r for r in ranges if r.contains(value)), None)


def _in_range(value: Optional[float], range_id: Any, ranges: Sequence[RangeConfig]) -> bool:
    if value is None:
        return False
    bucket = find_range(ranges, range_id)
    return bucket is not None and bucket.contains(value)


def normalize_match_score(score: Optional[float]) -> Optional[float]:
    """Scores above 1 are percentages."""
    if score is None:
        return None
    return score / 100 if score > 1 else score


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_rating_in_range(rating: Optional[float], range_id: Any) -> bool:
    return _in_range(rating, range_id, RATING_RANGES_5)


def is_rating_in_range_10(rating: Optional[float], range_id: Any) -> bool:
    if rating is None:
        return False
    bucket = find_range(RATING_OPTIONS_10, range_id)
    return bucket is not None and round_half_up(rating) == bucket.id


def is_file_size_in_range(file_size_kb: Optional[float], range_id: Any) -> bool:
    return _in_range(file_size_kb, range_id, FILE_SIZE_RANGES)


def is_page_count_in_range(page_count: Optional[float], range_id: Any) -> bool:
    return _in_range(page_count, range_id, PAGE_COUNT_RANGES)


def is_match_score_in_range(score: Optional[float], range_id: Any) -> bool:
    return _in_range(normalize_match_score(score), range_id, MATCH_SCORE_RANGES)


def is_age_rating_in_range(age_rating: Optional[float], range_id: Any) -> bool:
    if age_rating is None:
        return False
    bucket = find_range(AGE_RATING_OPTIONS, range_id)
    return bucket is not None and age_rating == bucket.id
