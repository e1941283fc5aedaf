"""Form validation and data-file checks against schema.yaml."""
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft7Validator

from .errors import ValidationError
from .rows import parse_date

FORMS = ("car", "maintenance", "fuel")


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def _form_schema(kind: str) -> dict:
    schema = load_schema()
    if kind not in FORMS:
        raise ValueError(f"Unknown form: {kind}")
    form = dict(schema["definitions"][kind])
    form["definitions"] = schema["definitions"]
    if kind == "car":
        # Model years run up to next year
        properties = dict(form["properties"])
        properties["year"] = dict(properties["year"], maximum=date.today().year + 1)
        form["properties"] = properties
    return form


def _describe(error) -> str:
    if error.path:
        return f"{'.'.join(str(p) for p in error.path)}: {error.message}"
    return error.message


def form_errors(kind: str, data: Dict[str, Any]) -> List[str]:
    """All constraint violations of a form, in field order."""
    validator = Draft7Validator(_form_schema(kind))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    return [_describe(e) for e in errors]


def validate_form(kind: str, data: Dict[str, Any]) -> None:
    """Raise ValidationError listing every violated constraint."""
    errors = form_errors(kind, data)
    if errors:
        raise ValidationError(errors)


def parse_form_date(value: Optional[str], field: str) -> Optional[date]:
    """Parse a user-typed date; blank is None, anything else must be YYYY-MM-DD."""
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError([f"{field}: invalid date '{value}' (expected YYYY-MM-DD)"])


def validate_data_file(filepath: Path, schema: dict = None) -> List[str]:
    """Validate a YAML backend document. Returns list of errors."""
    schema = schema or load_schema()
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validator = Draft7Validator(schema)
        for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
            errors.append(f"Schema validation error: {error.message}")
            if error.path:
                errors.append(f"  at path: {'.'.join(str(p) for p in error.path)}")
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors
