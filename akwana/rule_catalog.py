"""
RuleCatalog - the static, versioned set of diagnostic rules.

Rules are keyed by domain tag (pest, disease, soil_nutrient, weather_risk,
planting, ...) and kept in declaration order. Declaration order matters:
text classification is first-match-wins over all().
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError as SchemaError

from .catalog_schema import CatalogFile
from .rule import FALLBACK_TAG, DiagnosisStatus, Money, Rule

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2024.09"

FOLLOW_UP_SUGGESTIONS = (
    "Tell me more",
    "What about costs?",
    "Alternative methods?",
    "Local suppliers?",
)


class NotFoundError(Exception):
    """The rule catalog could not be initialized."""


class RuleCatalog:
    """
    Read-only, ordered collection of Rules.

    Built either from an in-memory sequence (validated immediately) or
    from a JSON catalog file (loaded on first access). A catalog that
    failed to initialize raises NotFoundError on every access; an empty
    lookup on a healthy catalog is just [].
    """

    def __init__(self, rules: Sequence[Rule] | None = None, *, version: str = CATALOG_VERSION):
        self._version = version
        self._path: Path | None = None
        self._rules: tuple[Rule, ...] | None = None
        self._by_tag: dict[str, tuple[Rule, ...]] = {}
        self._by_id: dict[str, Rule] = {}
        self._init_error: str | None = None
        if rules is not None:
            self._index(tuple(rules))

    @classmethod
    def from_file(cls, path: Path | str) -> "RuleCatalog":
        """Create a catalog backed by a JSON file (see catalog_schema.CatalogFile)."""
        catalog = cls(version="unloaded")
        catalog._path = Path(path)
        return catalog

    @property
    def version(self) -> str:
        self._ensure_loaded()
        return self._version

    def all(self) -> list[Rule]:
        """All rules in declaration order."""
        self._ensure_loaded()
        return list(self._rules)

    def lookup(self, domain_tag: str) -> list[Rule]:
        """Rules carrying domain_tag, in declaration order."""
        self._ensure_loaded()
        return list(self._by_tag.get(domain_tag, ()))

    def get(self, rule_id: str) -> Rule | None:
        self._ensure_loaded()
        return self._by_id.get(rule_id)

    def fallback(self) -> Rule:
        """The rule used when nothing else matches."""
        self._ensure_loaded()
        return self._by_tag[FALLBACK_TAG][0]

    def tags(self) -> list[str]:
        """All known domain tags, sorted."""
        self._ensure_loaded()
        return sorted(self._by_tag)

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        self._ensure_loaded()
        return rule_id in self._by_id

    def _ensure_loaded(self) -> None:
        if self._rules is not None:
            return
        if self._init_error is not None:
            raise NotFoundError(f"Rule catalog unavailable: {self._init_error}")
        if self._path is None:
            self._init_error = "no rules and no catalog file"
            raise NotFoundError(f"Rule catalog unavailable: {self._init_error}")

        try:
            data = json.loads(self._path.read_text())
            parsed = CatalogFile.model_validate(data)
            self._version = parsed.version
            self._index(tuple(spec.to_rule() for spec in parsed.rules))
        except (OSError, json.JSONDecodeError, SchemaError, ValueError) as e:
            self._init_error = f"{self._path}: {e}"
            logger.error(f"Failed to load rule catalog {self._path}: {e}")
            raise NotFoundError(f"Rule catalog unavailable: {self._init_error}") from e

        logger.info(f"Loaded rule catalog {self._version} ({len(self._rules)} rules) from {self._path}")

    def _index(self, rules: tuple[Rule, ...]) -> None:
        """Validate and index rules. Raises ValueError on a malformed catalog."""
        by_id: dict[str, Rule] = {}
        by_tag: dict[str, list[Rule]] = {}
        for rule in rules:
            if rule.rule_id in by_id:
                raise ValueError(f"Duplicate rule id: {rule.rule_id}")
            by_id[rule.rule_id] = rule
            for tag in sorted(rule.domain_tags):
                by_tag.setdefault(tag, []).append(rule)

        fallbacks = by_tag.get(FALLBACK_TAG, [])
        if len(fallbacks) != 1:
            raise ValueError(
                f"Catalog must declare exactly one '{FALLBACK_TAG}' rule, found {len(fallbacks)}"
            )

        self._rules = rules
        self._by_id = by_id
        self._by_tag = {tag: tuple(tagged) for tag, tagged in by_tag.items()}


# -----------------------------------------------------------------------------
# Built-in catalog
# -----------------------------------------------------------------------------

# Chat advisor topics come first: they are what free-text questions hit.
BUILTIN_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="advisor-blight",
        domain_tags=frozenset({"disease", "blight", "advisor"}),
        keywords=("blight",),
        severity=DiagnosisStatus.WARNING,
        confidence_base=85,
        title="Tomato Blight Treatment",
        issues=(
            "Fungal infection spreading on leaves",
            "Dark lesions starting on lower leaves",
        ),
        recommendations=(
            "Remove affected leaves immediately",
            "Apply copper-based fungicide (2.5g/L water)",
            "Ensure good air circulation",
            "Water at the base, not on leaves",
            "Space plants properly",
        ),
        cost_estimate=Money(20_000),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="advisor-maize-planting",
        domain_tags=frozenset({"planting", "maize", "advisor"}),
        keywords=("maize",),
        severity=DiagnosisStatus.HEALTHY,
        confidence_base=80,
        title="Maize Planting Calendar",
        recommendations=(
            "Plant during the early rains (March-April) or second rains (August-September)",
            "Ensure soil temperature is above 10°C",
            "Plant when consistent rainfall is expected for 2-3 weeks",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="advisor-soil-fertility",
        domain_tags=frozenset({"soil_nutrient", "advisor"}),
        keywords=("soil",),
        severity=DiagnosisStatus.HEALTHY,
        confidence_base=80,
        title="Improving Soil Fertility",
        recommendations=(
            "Add organic compost (2-3 tons/acre)",
            "Practice crop rotation",
            "Use cover crops like beans",
            "Apply NPK fertilizer based on soil test",
            "Maintain pH between 6.0-7.0",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="advisor-coffee-pests",
        domain_tags=frozenset({"pest", "coffee", "advisor"}),
        keywords=("coffee",),
        severity=DiagnosisStatus.WARNING,
        confidence_base=80,
        title="Coffee Pest Control",
        issues=("Coffee Berry Borer activity reported in the region",),
        recommendations=(
            "For Coffee Berry Borer, use pheromone traps",
            "Spray neem oil solution monthly",
            "Remove infected berries",
            "Maintain shade trees",
            "Apply systemic insecticides if severe",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    # Image scan results
    Rule(
        rule_id="crop-early-blight",
        domain_tags=frozenset({"crop", "disease", "early_blight"}),
        severity=DiagnosisStatus.WARNING,
        confidence_base=87,
        title="Early Blight Disease Detected",
        issues=(
            "Fungal infection on leaves",
            "Yellow spots with concentric rings",
            "Lower leaves affected",
        ),
        recommendations=(
            "Apply fungicide (Mancozeb) - 2.5g/L water",
            "Remove affected leaves immediately",
            "Improve air circulation between plants",
            "Water at base, avoid wetting leaves",
        ),
        cost_estimate=Money(25_000),
        metrics={"affected_area_pct": 20.0},
    ),
    Rule(
        rule_id="soil-good-quality",
        domain_tags=frozenset({"soil", "soil_quality"}),
        severity=DiagnosisStatus.HEALTHY,
        confidence_base=92,
        title="Good Soil Quality",
        issues=(
            "Slightly low nitrogen levels",
            "Good moisture retention",
        ),
        recommendations=(
            "Add organic compost - 2 tons/acre",
            "Consider nitrogen-rich fertilizer",
            "Maintain current irrigation schedule",
        ),
        metrics={"nitrogen": 65.0, "phosphorus": 85.0, "potassium": 90.0, "ph": 6.5},
    ),
    # Pest outbreak advisories
    Rule(
        rule_id="pest-fall-armyworm",
        domain_tags=frozenset({"pest", "fall_armyworm"}),
        keywords=("armyworm",),
        severity=DiagnosisStatus.CRITICAL,
        confidence_base=82,
        title="Fall Armyworm Outbreak",
        issues=(
            "Ragged holes and frass in leaf whorls",
            "Outbreak cases increasing in neighbouring districts",
        ),
        recommendations=(
            "Scout fields twice a week, checking leaf whorls",
            "Hand-pick and destroy egg masses and larvae",
            "Apply a recommended insecticide into the whorl early morning or late evening",
            "Report new cases to your district agricultural officer",
        ),
        cost_estimate=Money(30_000),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="pest-aphids",
        domain_tags=frozenset({"pest", "aphids"}),
        keywords=("aphid",),
        severity=DiagnosisStatus.WARNING,
        confidence_base=78,
        title="Aphid Infestation",
        issues=("Curled leaves with sticky residue",),
        recommendations=(
            "Spray neem oil or soapy water on the underside of leaves",
            "Encourage natural predators such as ladybirds",
            "Remove heavily infested shoots",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="pest-stem-borer",
        domain_tags=frozenset({"pest", "stem_borer"}),
        keywords=("stem borer", "stemborer"),
        severity=DiagnosisStatus.WARNING,
        confidence_base=78,
        title="Stem Borer Damage",
        issues=("Dead hearts and bore holes in stems",),
        recommendations=(
            "Remove and destroy crop residues after harvest",
            "Intercrop with legumes to reduce infestation",
            "Plant early to escape peak borer populations",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="pest-banana-weevil",
        domain_tags=frozenset({"pest", "banana_weevil"}),
        keywords=("weevil",),
        severity=DiagnosisStatus.WARNING,
        confidence_base=78,
        title="Banana Weevil",
        issues=("Tunnels in the corm and weakened plants",),
        recommendations=(
            "Use clean, pared planting material",
            "Trap adult weevils with split pseudostems",
            "Cut old pseudostems close to the ground after harvest",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    # Weather risk advisories
    Rule(
        rule_id="weather-heavy-rain",
        domain_tags=frozenset({"weather_risk", "rain"}),
        keywords=("heavy rain", "flood"),
        severity=DiagnosisStatus.WARNING,
        confidence_base=75,
        title="Heavy Rainfall Expected",
        issues=("Increased pest and fungal activity after rain",),
        recommendations=(
            "Delay irrigation, natural rain expected",
            "Apply fungicide after rain stops",
            "Clear drainage channels around the field",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="weather-dry-spell",
        domain_tags=frozenset({"weather_risk", "drought"}),
        keywords=("drought", "dry spell"),
        severity=DiagnosisStatus.WARNING,
        confidence_base=75,
        title="Dry Spell Advisory",
        recommendations=(
            "Monitor soil moisture levels",
            "Mulch around plants to retain moisture",
            "Irrigate early in the morning",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
    Rule(
        rule_id="default",
        domain_tags=frozenset({FALLBACK_TAG}),
        severity=DiagnosisStatus.HEALTHY,
        confidence_base=40,
        title="General Farming Advice",
        recommendations=(
            "Consult your local extension officer for specific guidance",
            "Monitor your crops regularly",
            "Maintain good agricultural practices",
        ),
        suggestions=FOLLOW_UP_SUGGESTIONS,
    ),
)


@lru_cache(maxsize=1)
def default_catalog() -> RuleCatalog:
    """Process-wide built-in catalog. Read-only after creation."""
    return RuleCatalog(BUILTIN_RULES)


__all__ = [
    "CATALOG_VERSION",
    "BUILTIN_RULES",
    "FOLLOW_UP_SUGGESTIONS",
    "NotFoundError",
    "RuleCatalog",
    "default_catalog",
]
