"""Validation diagnostics for roadmap bets and work items.

Checks are pure functions returning a list of ValidationItem; an adapter
concatenates the lists for an entity in the order it runs the checks.
"""

from services.models import SEVERITY_ERROR, SEVERITY_WARNING, ValidationItem

DOCS_BASE_URL = "https://docs.example.com/cycle-planning"

# code -> (label, reference). Labels are the policy text shown next to a
# data-quality warning; references point at the page explaining the rule.
VALIDATION_DICTIONARY = {
    "missingAreaLabel": (
        "At least one `area:` prefix label is needed",
        f"{DOCS_BASE_URL}/labels#area",
    ),
    "missingTeamLabel": (
        "At least one `team:` prefix label is needed on the Cycle Item",
        f"{DOCS_BASE_URL}/labels#team",
    ),
    "missingObjectiveLabel": (
        "An `objective:` prefix label links the Roadmap Item to an objective",
        f"{DOCS_BASE_URL}/labels#objective",
    ),
    "missingEstimate": (
        "The Cycle Item needs an effort estimate",
        f"{DOCS_BASE_URL}/estimates",
    ),
    "missingStage": (
        "The stage goes in parentheses at the end of the title, e.g. (s1)",
        f"{DOCS_BASE_URL}/stages",
    ),
    "missingAssignee": (
        "Someone should be assigned to the Cycle Item",
        f"{DOCS_BASE_URL}/ownership",
    ),
    "noProjectId": (
        "The Cycle Item is not linked to a Roadmap Item",
        f"{DOCS_BASE_URL}/hierarchy",
    ),
    "invalidStage": (
        "The stage must be one of the configured release stages",
        f"{DOCS_BASE_URL}/stages",
    ),
    "effortOutOfRange": (
        "The effort estimate is outside the allowed range",
        f"{DOCS_BASE_URL}/estimates",
    ),
    "missingAreaTranslation": (
        "The `area:` label is not a known area and has no translation",
        f"{DOCS_BASE_URL}/labels#area",
    ),
    "tooLowStageWithoutProperRoadmapItem": (
        "It should have its own Roadmap Item, because at least another "
        "release stage will be in the future based on its current stage",
        f"{DOCS_BASE_URL}/roadmap-items",
    ),
}


def _capitalize(field_name: str) -> str:
    return field_name[:1].upper() + field_name[1:]


def describe(code: str) -> tuple:
    """Return (label, reference) for a validation code."""
    return VALIDATION_DICTIONARY.get(code, ("", ""))


def create_validation(subject_id: str, code: str, severity: str = SEVERITY_ERROR,
                      description: str = None) -> ValidationItem:
    label, reference = describe(code)
    return ValidationItem(
        id=f"{subject_id}-{code}",
        code=code,
        name=code,
        severity=severity,
        description=label if description is None else description,
        reference=reference,
    )


def create_parameterized_validation(subject_id: str, code: str, parameter: str,
                                    severity: str = SEVERITY_ERROR,
                                    description: str = None) -> ValidationItem:
    """Like create_validation, but unique per parameter (e.g. per label)."""
    label, reference = describe(code)
    return ValidationItem(
        id=f"{subject_id}-{code}-{parameter}",
        code=code,
        name=code,
        severity=severity,
        description=label if description is None else description,
        reference=reference,
    )


def validate_required(value, subject_id: str, field_name: str,
                      severity: str = SEVERITY_ERROR) -> list:
    """Flag a missing value.

    Args:
        value: Extracted value; empty strings, empty collections, zero and
            None all count as missing
        subject_id: Id of the bet or work item being checked
        field_name: Field name in camelCase, becomes ``missing<FieldName>``
        severity: "error" or "warning"

    Returns:
        Empty list, or a single ValidationItem
    """
    if value:
        return []
    return [create_validation(subject_id, f"missing{_capitalize(field_name)}", severity)]


def validate_one_of(value, allowed, subject_id: str, field_name: str,
                    severity: str = SEVERITY_WARNING) -> list:
    """Flag a present value that is not in ``allowed``. Missing values pass."""
    if value is None or value in allowed:
        return []
    return [create_validation(subject_id, f"invalid{_capitalize(field_name)}", severity)]


def validate_range(value, minimum, maximum, subject_id: str, field_name: str,
                   severity: str = SEVERITY_WARNING) -> list:
    """Flag a value outside [minimum, maximum]; either bound may be None."""
    if value is None:
        return []
    try:
        number = float(value)
    except (TypeError, ValueError):
        return [create_validation(subject_id, f"{field_name}OutOfRange", severity)]
    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        return [create_validation(subject_id, f"{field_name}OutOfRange", severity)]
    return []


def combine_validations(*groups) -> tuple:
    """Concatenate check results in order, keeping duplicates."""
    combined = []
    for group in groups:
        combined.extend(group)
    return tuple(combined)
