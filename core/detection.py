# core/detection.py
import json
import re
from typing import Final, Iterable
from model.entity import GroundTruthEntity
from model.hallucination import Category, Severity

DEFAULT_PREFIX_CHARS: Final[int] = 20

# First match wins, so the most damaging categories come first.
_CATEGORY_PATTERNS: Final[list[tuple[Category, re.Pattern[str]]]] = [
    (
        Category.status,
        re.compile(
            r"\b(permanently closed|closed (permanently|for good|down)|shut\s*down|out of business|"
            r"no longer (open|operating)|relocated|moved)\b",
            re.I,
        ),
    ),
    (
        Category.phone,
        re.compile(r"\b(phone|telephone|call)\b|\b\d{3}[-.\s)]\s*\d{3}[-.\s]\d{4}\b", re.I),
    ),
    (
        Category.address,
        re.compile(
            r"\b(address|located|location|street|st|avenue|ave|blvd|road|suite|zip)\b",
            re.I,
        ),
    ),
    (
        Category.hours,
        re.compile(
            r"\b(hours|opens?|closes|until|\d{1,2}(:\d{2})?\s*(am|pm)|24/7|"
            r"mondays?|tuesdays?|wednesdays?|thursdays?|fridays?|saturdays?|sundays?|weekends?)\b",
            re.I,
        ),
    ),
    (
        Category.menu,
        re.compile(r"\b(menu|dish(es)?|serves?|price[sd]?|entrees?|drinks?)\b|\$\d", re.I),
    ),
    (
        Category.amenity,
        re.compile(
            r"\b(wi-?fi|parking|patio|outdoor|wheelchair|accessible|delivery|takeout|"
            r"reservations?|alcohol|bar|hookah|live music|pets?|kids?)\b",
            re.I,
        ),
    ),
]

SEVERITY_BY_CATEGORY: Final[dict[Category, Severity]] = {
    Category.status: Severity.critical,
    Category.hours: Severity.high,
    Category.address: Severity.high,
    Category.phone: Severity.high,
    Category.amenity: Severity.medium,
    Category.menu: Severity.medium,
    Category.other: Severity.low,
}


def categorize(claim: str) -> Category:
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(claim):
            return category
    return Category.other


def severity_for(category: Category) -> Severity:
    return SEVERITY_BY_CATEGORY[category]


def expected_truth_for(category: Category, entity: GroundTruthEntity) -> str:
    name = entity.business_name
    if category is Category.status:
        return f"{name} is actively operating (ground truth data on file)."
    if category is Category.phone:
        return f"Phone: {entity.phone}" if entity.phone else "Phone not listed in ground truth."
    if category is Category.address:
        return f"Address: {entity.address}" if entity.address else "Address not listed in ground truth."
    if category is Category.hours:
        if entity.hours_data:
            return f"Hours: {json.dumps(entity.hours_data, sort_keys=True)}"
        return "Hours not listed in ground truth."
    if category is Category.amenity:
        if entity.amenities:
            return f"Amenities: {json.dumps(entity.amenities, sort_keys=True)}"
        return "Amenities not listed in ground truth."
    if category is Category.menu:
        return f"See the published menu for {name}."
    return f"Ground truth on file for {name}."


def claim_key(claim: str, prefix_chars: int = DEFAULT_PREFIX_CHARS) -> str:
    """Case-folded opening of a claim; the whole match key for re-detection."""
    return claim.lower()[:prefix_chars]


def claim_still_present(
    original_claim: str,
    fresh_inaccuracies: Iterable[str],
    prefix_chars: int = DEFAULT_PREFIX_CHARS,
) -> bool:
    """
    Approximate on purpose: providers paraphrase, so a fresh inaccuracy counts
    as the same claim when it contains the original's lower-cased prefix.
    Unrelated claims sharing a generic opening will match (false positive) and
    rewordings with a new opening will not (false negative).
    """
    key = claim_key(original_claim, prefix_chars)
    if not key.strip():
        return False
    return any(key in text.lower() for text in fresh_inaccuracies)
