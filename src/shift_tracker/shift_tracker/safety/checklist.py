"""Versioned safety checklist schemas.

Each version is a fixed, enumerated key set. Input is normalized against the
active version: unknown keys are rejected, missing keys default to ``False``.
Older snapshots are carried forward with :func:`migrate`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from ..core.exceptions import ValidationError

PPE_KEYS = (
    "high_vis",
    "helmet",
    "goggles",
    "gloves",
    "mask",
    "ear_muffs",
    "face_guard",
    "harness",
    "boots",
)

SITE_KEYS_V2 = (
    "know_job_safety",
    "weather_check",
    "safe_pass_in_date",
    "hazard_awareness",
    "floor_conditions",
    "manual_handling_cert",
    "lifting_help",
    "anchor_points",
    "ladder_footing",
    "safety_cones",
    "communication",
    "ladders_check",
    "sharp_edges",
    "scraper_covers",
    "hot_surfaces",
    "chemical_course",
    "chemical_awareness",
    "tidy_equipment",
    "ladders_stored",
)

SITE_KEYS_V3 = (
    # Safety plan
    "know_safe_job",
    "weather_check",
    "safe_pass_in_date",
    "slip_trip_aware",
    "wet_floors_cleaned",
    # Lifting
    "manual_handling_cert",
    "heavy_lifting_assistance",
    # Working at heights
    "anchor_points_tie",
    "ladder_footed",
    "safety_signs",
    "comm_with_others",
    # Equipment
    "ladder_check",
    "sharp_edges_check",
    "scraper_blade_covers",
    "hot_surfaces_check",
    "chemical_course_complete",
    "chemical_dilution_aware",
    "equipment_tidy",
    "ladders_put_away",
)

# v2 name -> v3 name for items that were renamed rather than replaced.
V2_TO_V3_RENAMES = {
    "know_job_safety": "know_safe_job",
    "hazard_awareness": "slip_trip_aware",
    "floor_conditions": "wet_floors_cleaned",
    "lifting_help": "heavy_lifting_assistance",
    "anchor_points": "anchor_points_tie",
    "ladder_footing": "ladder_footed",
    "safety_cones": "safety_signs",
    "communication": "comm_with_others",
    "ladders_check": "ladder_check",
    "sharp_edges": "sharp_edges_check",
    "scraper_covers": "scraper_blade_covers",
    "hot_surfaces": "hot_surfaces_check",
    "chemical_course": "chemical_course_complete",
    "chemical_awareness": "chemical_dilution_aware",
    "tidy_equipment": "equipment_tidy",
    "ladders_stored": "ladders_put_away",
}

SAFETY_LABELS = {
    "high_vis": "High-Vis Vest",
    "helmet": "Helmet",
    "goggles": "Goggles",
    "gloves": "Gloves",
    "mask": "Mask",
    "ear_muffs": "Ear Muffs",
    "face_guard": "Face Guard",
    "harness": "Harness",
    "boots": "Safety Boots",
    "know_job_safety": "Knows Job Safety",
    "know_safe_job": "Knows Safe Job Procedure",
    "weather_check": "Weather Checked",
    "safe_pass_in_date": "Safe Pass In Date",
    "hazard_awareness": "Hazard Awareness",
    "slip_trip_aware": "Slip/Trip Hazards Aware",
    "floor_conditions": "Floor Conditions Checked",
    "wet_floors_cleaned": "Wet Floors Cleaned",
    "manual_handling_cert": "Manual Handling Certified",
    "lifting_help": "Lifting Help Available",
    "heavy_lifting_assistance": "Heavy Lifting Assistance",
    "anchor_points": "Anchor Points",
    "anchor_points_tie": "Tied To Anchor Points",
    "ladder_footing": "Ladder Footing",
    "ladder_footed": "Ladder Footed",
    "safety_cones": "Safety Cones",
    "safety_signs": "Safety Signs Placed",
    "communication": "Communication",
    "comm_with_others": "Communicating With Others",
    "ladders_check": "Ladders Checked",
    "ladder_check": "Ladder Checked",
    "sharp_edges": "Sharp Edges",
    "sharp_edges_check": "Sharp Edges Checked",
    "scraper_covers": "Scraper Covers",
    "scraper_blade_covers": "Scraper Blade Covers On",
    "hot_surfaces": "Hot Surfaces",
    "hot_surfaces_check": "Hot Surfaces Checked",
    "chemical_course": "Chemical Course",
    "chemical_course_complete": "Chemical Course Complete",
    "chemical_awareness": "Chemical Awareness",
    "chemical_dilution_aware": "Chemical Dilution Aware",
    "tidy_equipment": "Tidy Equipment",
    "equipment_tidy": "Equipment Tidy",
    "ladders_stored": "Ladders Stored",
    "ladders_put_away": "Ladders Put Away",
}


@dataclass(frozen=True)
class ChecklistSchema:
    version: int
    keys: tuple[str, ...]

    def empty(self) -> dict[str, bool]:
        return {key: False for key in self.keys}

    def require_key(self, key: str) -> str:
        if key not in self.keys:
            raise ValidationError(f"Unknown safety checklist item: {key}")
        return key

    def normalize(self, raw: Optional[Mapping[str, object]]) -> dict[str, bool]:
        """Reject unknown keys, default-fill missing keys with False."""
        result = self.empty()
        for key, value in (raw or {}).items():
            self.require_key(key)
            if not isinstance(value, bool):
                raise ValidationError(f"Safety checklist item {key} must be true or false")
            result[key] = value
        return result


CHECKLIST_SCHEMAS = {
    1: ChecklistSchema(version=1, keys=PPE_KEYS),
    2: ChecklistSchema(version=2, keys=SITE_KEYS_V2),
    3: ChecklistSchema(version=3, keys=PPE_KEYS + SITE_KEYS_V3),
}

CURRENT_CHECKLIST_VERSION = 3


def get_schema(version: int = CURRENT_CHECKLIST_VERSION) -> ChecklistSchema:
    schema = CHECKLIST_SCHEMAS.get(int(version))
    if schema is None:
        raise ValidationError(f"Unsupported safety checklist version: {version}")
    return schema


def migrate(raw: Mapping[str, object], *, from_version: int, to_version: int = CURRENT_CHECKLIST_VERSION) -> dict[str, bool]:
    """Carry a stored snapshot forward to another schema version.

    Values for keys the target knows (directly or through a rename) are kept;
    everything else the target defines starts out False.
    """
    target = get_schema(to_version)
    renames = V2_TO_V3_RENAMES if (from_version, to_version) == (2, 3) else {}

    result = target.empty()
    for key, value in raw.items():
        key = renames.get(key, key)
        if key in result:
            result[key] = bool(value)
    return result


def label_for(key: str) -> str:
    return SAFETY_LABELS.get(key, key)
