"""Movement-pattern lookup tables shared by session adaptation and exercise swaps.

Rules are data: extend a table to add a region or replacement family without
touching the control flow that reads it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RegionRule:
    """Exercises matching ``pattern`` are excluded when any avoided region tag mentions a keyword."""
    region: str
    keywords: tuple[str, ...]
    pattern: re.Pattern


@dataclass(frozen=True)
class ReplacementFamily:
    family: str
    pattern: re.Pattern
    equipped: str
    bodyweight: str


REGION_RULES: tuple[RegionRule, ...] = (
    RegionRule("knee", ("knee",), re.compile(r"squat|lunge|step-up|leg press")),
    RegionRule("back", ("back", "spine"), re.compile(r"deadlift|rdl|good morning|barbell row")),
    RegionRule("shoulder", ("shoulder",), re.compile(r"press|push-up|overhead")),
)

REPLACEMENT_FAMILIES: tuple[ReplacementFamily, ...] = (
    ReplacementFamily("squat", re.compile(r"squat|lunge|leg press"), "Goblet Squat", "Bodyweight Box Squat"),
    ReplacementFamily("hinge", re.compile(r"deadlift|rdl|hinge"), "Dumbbell Romanian Deadlift", "Hip Hinge Drill"),
    ReplacementFamily("push", re.compile(r"press|push"), "Dumbbell Floor Press", "Incline Push-up"),
    ReplacementFamily("pull", re.compile(r"row|pull"), "Single-arm Dumbbell Row", "Inverted Row"),
)

FALLBACK_FAMILY = ReplacementFamily("general", re.compile(r".*"), "Tempo Bodyweight Variation", "Bodyweight Circuit")


def excluding_rules(exercise_name: str, avoid_body_regions: list[str]) -> list[RegionRule]:
    """Region rules that both apply to the avoided tags and match the exercise."""
    name = exercise_name.lower()
    tags = [tag.lower() for tag in avoid_body_regions]
    return [
        rule for rule in REGION_RULES
        if any(keyword in tag for tag in tags for keyword in rule.keywords) and rule.pattern.search(name)
    ]


def matches_pain_flag(exercise_name: str, pain_flags: list[str]) -> Optional[str]:
    name = exercise_name.lower()
    for token in pain_flags:
        if token and token.lower() in name:
            return token
    return None


def replacement_family(exercise_name: str) -> ReplacementFamily:
    name = exercise_name.lower()
    for family in REPLACEMENT_FAMILIES:
        if family.pattern.search(name):
            return family
    return FALLBACK_FAMILY


def safe_replacement(exercise_name: str, equipment_mode: str) -> str:
    family = replacement_family(exercise_name)
    return family.bodyweight if equipment_mode == "bodyweight" else family.equipped


# --- single-exercise swap tables ---

@dataclass(frozen=True)
class SwapRule:
    pattern: re.Pattern
    name: str
    note: str


@dataclass(frozen=True)
class VariantRule:
    """Same-pattern alternative; ``gym`` when the athlete is at a gym, ``home`` otherwise."""
    pattern: re.Pattern
    gym: str
    home: str
    note: str


PAIN_SWAPS: tuple[SwapRule, ...] = (
    SwapRule(re.compile(r"squat|lunge|leg press"), "Box Squat",
             "Use pain-free depth and slow tempo. Stop if symptoms worsen."),
    SwapRule(re.compile(r"deadlift|rdl|hinge"), "Hip Hinge Patterning",
             "Reduce load and keep neutral spine with controlled tempo."),
    SwapRule(re.compile(r"press|push"), "Incline Push-up",
             "Use incline to reduce joint load while maintaining pushing stimulus."),
)

EQUIPMENT_SWAPS: tuple[SwapRule, ...] = (
    SwapRule(re.compile(r"squat"), "Goblet Squat", "Home-friendly substitute preserving squat pattern."),
    SwapRule(re.compile(r"bench|press"), "Dumbbell Floor Press", "Uses minimal equipment and keeps pressing focus."),
    SwapRule(re.compile(r"row|pulldown"), "Single-arm Dumbbell Row", "Keeps pull volume with simple setup."),
    SwapRule(re.compile(r"deadlift|rdl"), "Dumbbell Romanian Deadlift", "Maintains hinge stimulus at home."),
)
EQUIPMENT_FALLBACK = SwapRule(re.compile(r".*"), "Bodyweight Circuit",
                              "Keeps session continuity when equipment is limited.")

VARIANTS: tuple[VariantRule, ...] = (
    VariantRule(re.compile(r"squat"), "Front Squat", "Goblet Squat",
                "Equivalent squat movement to maintain lower-body focus."),
    VariantRule(re.compile(r"bench|press|push"), "Incline Dumbbell Press", "Push-up",
                "Pressing variant to continue upper-body work."),
    VariantRule(re.compile(r"deadlift|rdl|hinge"), "Romanian Deadlift", "Dumbbell Romanian Deadlift",
                "Hinge alternative with manageable fatigue."),
    VariantRule(re.compile(r"row|pulldown|pull"), "Seated Cable Row", "Single-arm Dumbbell Row",
                "Pulling alternative to keep back stimulus."),
)
GENERIC_FALLBACK = SwapRule(re.compile(r".*"), "Tempo Bodyweight Variation",
                            "Fallback substitution preserving training momentum.")


def first_match(rules, exercise_name: str):
    """First rule in ``rules`` whose pattern matches the lower-cased name, else None."""
    name = exercise_name.lower()
    return next((rule for rule in rules if rule.pattern.search(name)), None)
