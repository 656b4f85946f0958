"""
Strategy Validator

Validates a raw (decoded JSON) strategy document against InvestmentStrategy
and, when it fails, makes exactly one repair pass:

    validate -> (invalid) -> repair deep copy -> validate once more

Repairs come from REPAIRS, a table of pure functions keyed by
ValidationErrorKind. Anything the table cannot handle (missing phase, wrong
container type, numeric field without a default) is UNREPAIRABLE and the
document is rejected.
"""

import copy
import logging
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from tradeplan.schemas.strategy import InvestmentStrategy

logger = logging.getLogger(__name__)


# =============================================================================
# REPAIR TABLE
# =============================================================================


class ValidationErrorKind(str, Enum):
    TOO_SMALL = "too_small"  # Numeric below its lower bound
    TOO_BIG = "too_big"  # Numeric above its upper bound
    STRING_TOO_SHORT = "string_too_short"
    MISSING_NUMBER = "missing_number"  # Absent or non-numeric, default known
    MISSING_STRING = "missing_string"  # Absent or not text
    UNREPAIRABLE = "unrepairable"


@dataclass(frozen=True)
class RepairConstraint:
    """What a repair function needs to know about the violated field."""

    field: str  # Leaf field name as it appears on the wire (e.g. "entryRatio")
    bound: Optional[float] = None


# Defaults for missing numeric fields
NUMBER_DEFAULTS = {
    "entryRatio": 30,
    "exitRatio": 50,
    "actionRatio": 25,
}

# Appended once to strings that are too short
SHORT_TEXT_SUFFIXES = {
    "reasoning": " (technical-indicator basis)",
    "reason": " (further analysis required)",
    "action": " recommended",
}
DEFAULT_SHORT_TEXT_SUFFIX = " (no further detail)"

# Placeholders for missing strings
STRING_PLACEHOLDERS = {
    "condition": "market-dependent",
    "action": "position adjustment required",
    "reason": "detailed analysis required",
    "reasoning": "detailed analysis required",
}
DEFAULT_STRING_PLACEHOLDER = "not specified"


def _clamp_to_bound(value: Any, constraint: RepairConstraint) -> float:
    return constraint.bound


def _append_suffix(value: Any, constraint: RepairConstraint) -> str:
    return str(value) + SHORT_TEXT_SUFFIXES.get(constraint.field, DEFAULT_SHORT_TEXT_SUFFIX)


def _default_number(value: Any, constraint: RepairConstraint) -> float:
    return NUMBER_DEFAULTS[constraint.field]


def _placeholder_string(value: Any, constraint: RepairConstraint) -> str:
    return STRING_PLACEHOLDERS.get(constraint.field, DEFAULT_STRING_PLACEHOLDER)


RepairFn = Callable[[Any, RepairConstraint], Any]

REPAIRS: dict[ValidationErrorKind, RepairFn] = {
    ValidationErrorKind.TOO_SMALL: _clamp_to_bound,
    ValidationErrorKind.TOO_BIG: _clamp_to_bound,
    ValidationErrorKind.STRING_TOO_SHORT: _append_suffix,
    ValidationErrorKind.MISSING_NUMBER: _default_number,
    ValidationErrorKind.MISSING_STRING: _placeholder_string,
}


# =============================================================================
# RESULT
# =============================================================================


@dataclass
class ValidationResult:
    success: bool
    data: Optional[InvestmentStrategy] = None
    errors: Optional[list[str]] = None
    fixed: bool = False
    fixed_fields: Optional[list[str]] = None


# =============================================================================
# ERROR CLASSIFICATION
# =============================================================================

_NUMBER_TYPE_ERRORS = {"float_parsing", "float_type", "int_parsing", "int_type"}
_STRING_TYPE_ERRORS = {"string_type"}


def _unwrap_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _leaf_type(loc: tuple) -> Optional[type]:
    """Resolve the declared type at a wire-level location, or None if unknown."""
    model: Any = InvestmentStrategy
    annotation: Any = None
    for part in loc:
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            return None
        match = None
        for name, info in model.model_fields.items():
            if part == name or part == info.alias:
                match = info
                break
        if match is None:
            return None
        annotation = _unwrap_optional(match.annotation)
        model = annotation
    return annotation


def classify_error(error: dict) -> tuple[ValidationErrorKind, RepairConstraint]:
    """Map one pydantic error onto the repair table."""
    loc = tuple(error.get("loc", ()))
    leaf = str(loc[-1]) if loc else ""
    err_type = error.get("type", "")
    ctx = error.get("ctx") or {}
    leaf_type = _leaf_type(loc) if loc else None

    # Exclusive bounds (gt, lt) have no valid clamp value and fall through as unrepairable
    if err_type == "greater_than_equal":
        return ValidationErrorKind.TOO_SMALL, RepairConstraint(leaf, float(ctx["ge"]))
    if err_type == "less_than_equal":
        return ValidationErrorKind.TOO_BIG, RepairConstraint(leaf, float(ctx["le"]))
    if err_type == "string_too_short":
        return ValidationErrorKind.STRING_TOO_SHORT, RepairConstraint(
            leaf, ctx.get("min_length")
        )

    if leaf_type is float and (err_type == "missing" or err_type in _NUMBER_TYPE_ERRORS):
        if leaf in NUMBER_DEFAULTS:
            return ValidationErrorKind.MISSING_NUMBER, RepairConstraint(leaf)
    if leaf_type is str and (err_type == "missing" or err_type in _STRING_TYPE_ERRORS):
        return ValidationErrorKind.MISSING_STRING, RepairConstraint(leaf)

    return ValidationErrorKind.UNREPAIRABLE, RepairConstraint(leaf)


def _format_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    ]


def _get_path(data: Any, path: tuple) -> Any:
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _set_path(data: dict, path: tuple, value: Any) -> bool:
    parent = _get_path(data, path[:-1]) if len(path) > 1 else data
    if not isinstance(parent, dict):
        return False
    parent[path[-1]] = value
    return True


# =============================================================================
# VALIDATOR
# =============================================================================


class StrategyValidator:
    """Schema validation with a single deterministic repair pass."""

    def validate(self, raw: Any, auto_fix: bool = True) -> ValidationResult:
        try:
            strategy = InvestmentStrategy.model_validate(raw)
            return ValidationResult(success=True, data=strategy, fixed=False)
        except ValidationError as e:
            first_error = e

        errors = _format_errors(first_error)
        if not auto_fix or not isinstance(raw, dict):
            return ValidationResult(success=False, errors=errors)

        repaired, fixed_fields = self._repair(raw, first_error)
        if not fixed_fields:
            return ValidationResult(success=False, errors=errors)

        try:
            strategy = InvestmentStrategy.model_validate(repaired)
        except ValidationError as e:
            logger.debug(f"Repair of {len(fixed_fields)} field(s) did not satisfy schema")
            return ValidationResult(success=False, errors=_format_errors(e))

        logger.info(f"Strategy auto-repaired ({len(fixed_fields)} field(s)): {fixed_fields}")
        return ValidationResult(
            success=True,
            data=strategy,
            fixed=True,
            fixed_fields=fixed_fields,
        )

    def _repair(self, raw: dict, error: ValidationError) -> tuple[dict, list[str]]:
        """Apply REPAIRS to a deep copy. The input is never mutated."""
        repaired = copy.deepcopy(raw)
        fixed_fields: list[str] = []

        for err in error.errors():
            kind, constraint = classify_error(err)
            repair = REPAIRS.get(kind)
            if repair is None:
                continue
            path = tuple(err["loc"])
            current = _get_path(repaired, path)
            new_value = repair(current, constraint)
            if _set_path(repaired, path, new_value):
                dotted = ".".join(str(p) for p in path)
                fixed_fields.append(dotted)
                logger.debug(f"  - {dotted}: {current!r} -> {new_value!r}")

        return repaired, fixed_fields

    @staticmethod
    def quick_validate(raw: Any) -> bool:
        """Structural check only: phases and their sections are present."""
        if not isinstance(raw, dict):
            return False
        phase1 = raw.get("phase1")
        phase2 = raw.get("phase2")
        phase3 = raw.get("phase3")
        if not (isinstance(phase1, dict) and isinstance(phase2, dict) and isinstance(phase3, dict)):
            return False
        entry_ratio = phase1.get("entryRatio")
        return bool(
            isinstance(entry_ratio, (int, float))
            and not isinstance(entry_ratio, bool)
            and phase1.get("stopLoss")
            and phase2.get("bullish")
            and phase2.get("sideways")
            and phase2.get("bearish")
            and phase3.get("target1")
            and phase3.get("target2")
        )
