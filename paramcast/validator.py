"""Parameter validation and type coercion engine.

``validate_param`` checks one named value in a container against a
``ParameterSpec``, coerces it to its native type in place and returns either
``False`` (valid) or the error(s) describing why it is not.

Candidate types are tried in a fixed order regardless of how the schema
lists them:

    array -> object -> date -> boolean -> number -> string

The first coercion that succeeds wins, so ``"1"`` declared as
``boolean|number`` becomes ``True`` while ``number|string`` makes it ``1``.

Arrays and objects recurse: elements of a typed array (``array|number``) are
validated against the same spec without ``array``; decoded objects are
validated field by field against ``spec.params``. Nested failures come back
as one flat list, each labelled with its dotted path (``payload.items.2``).

A parameter is only written back once it has fully succeeded; on failure the
container keeps the raw value (or stays without the key).
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, MutableMapping, Sequence, Tuple, Union

from .dates import coerce_date
from .errors import ParameterError, flatten_errors, invalid_argument, missing_parameter
from .logging_config import get_logger
from .metrics import timing_decorator
from .types import DataType, ParameterSpec, get_type, is_truthy, parse_number

logger = get_logger(__name__)

Container = Union[MutableMapping[Any, Any], List[Any]]
ValidationOutcome = Union[bool, ParameterError, List[Any]]

DEFAULT_MAX_DEPTH = 16


def _has_key(container: Container, key: Any) -> bool:
    if isinstance(container, list):
        return isinstance(key, int) and 0 <= key < len(container)
    return key in container


def _decode_error(error: Exception) -> str:
    return getattr(error, "msg", None) or str(error)


def describe_value(value: Any) -> str:
    """Render a raw value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    try:
        if isinstance(value, (list, tuple)):
            return ",".join(describe_value(item) for item in value)
        if isinstance(value, dict):
            return json.dumps(value, default=str)
        if hasattr(value, "isoformat"):
            return value.isoformat()
        return str(value)
    except (ValueError, RecursionError):
        # Integers past the int/str conversion limit, or nesting too deep to walk
        return f"<{get_type(value)}>"


def _strict_member(value: Any, allowed: Sequence[Any]) -> bool:
    # Type-aware membership: True must not match 1, nor 1 match "1"
    kind = get_type(value)
    return any(get_type(item) == kind and item == value for item in allowed)


def _received_hint(value: Any) -> str:
    kind = get_type(value)
    received = kind
    if kind != DataType.NUMBER and is_truthy(value) and parse_number(value) is not None:
        received += "|number"
    if kind != DataType.BOOLEAN and value in ("0", "1"):
        received += "|boolean"
    if kind == DataType.STRING and value.startswith("{"):
        received += "|object"
    if kind == DataType.STRING and value.startswith("["):
        received += "|array"
    return received


def _bounds_error(label: str, spec: ParameterSpec, value: Any) -> Union[ParameterError, None]:
    number = parse_number(value)
    has_min = spec.min is not None
    has_max = spec.max is not None
    if not ((has_min and number < spec.min) or (has_max and number > spec.max)):
        return None

    msg = f"Invalid param `{label}`"
    if has_min and has_max:
        msg += f", value must be between `{describe_value(spec.min)}` and `{describe_value(spec.max)}`"
    elif has_min:
        msg += f", value must be higher than `{describe_value(spec.min)}`"
    else:
        msg += f", value must be lower than `{describe_value(spec.max)}`"
    msg += f", received `{describe_value(value)}`"
    return invalid_argument(label, msg, value)


def _coerce_boolean(value: Any) -> Tuple[bool, Any]:
    if isinstance(value, bool):
        return True, value
    if isinstance(value, str):
        low = value.lower()
        if low in ("false", "0"):
            return True, False
        if low in ("true", "1"):
            return True, True
        # `?flag=` arrives as an empty string: existence means true
        if value == "":
            return True, True
        return False, value
    if get_type(value) == DataType.NUMBER and value in (0, 1):
        return True, bool(value)
    # Present without a value
    if value is None:
        return True, True
    return False, value


def validate_param(
    container: Container,
    key: Any,
    spec: ParameterSpec,
    context: Any = None,
    label_prefix: str = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    _depth: int = 0,
) -> ValidationOutcome:
    """
    Validate and coerce ``container[key]`` against ``spec``.

    Args:
        container: Mapping (or list, for array elements) holding the raw value;
            updated in place with the coerced value on success
        key: Property name or list index to check
        spec: Parameter specification
        context: Opaque request context handed to default/validate/transform
            callbacks
        label_prefix: Dotted path of the parent, set only for nested checks
        max_depth: Deepest nesting level of arrays/objects that is still
            validated; deeper values fail with InvalidArgument

    Returns:
        False when valid, a ParameterError for a direct failure, a list of
        errors for nested failures, or whatever a custom ``validate``
        callback returned
    """
    label = f"{label_prefix or ''}{key}"
    data_types = spec.data_types

    if not _has_key(container, key):
        if spec.required:
            return missing_parameter(label)
        if not spec.has_default:
            return False
        value = spec.resolve_default(context)
        logger.debug(f"[validate] default applied: `{label}` = `{describe_value(value)}`")
    else:
        value = container[key]

    if _depth > max_depth:
        return invalid_argument(
            label,
            f"Invalid param `{label}`, maximum nesting depth exceeded",
            value,
        )

    raw = value
    kind = get_type(value)
    accepted = False

    logger.debug(f"[validate] param=`{label}` value=`{describe_value(value)}` allowed=`{'|'.join(data_types)}` type=`{kind}`")

    # Array: native list, JSON string, CSV string or a lone value
    if DataType.ARRAY in data_types and is_truthy(value):
        if kind == DataType.ARRAY:
            value = list(value)
            accepted = True
        elif kind == DataType.STRING and value.startswith("["):
            try:
                value = json.loads(value)
                accepted = True
            except (ValueError, RecursionError) as e:
                if DataType.STRING not in data_types:
                    return invalid_argument(
                        label,
                        f"Invalid param `{label}`, malformed array: `{_decode_error(e)}`",
                        raw,
                    )
        elif kind == DataType.STRING and "," in value and not (
            DataType.OBJECT in data_types and value.startswith("{")
        ):
            value = value.split(",")
            accepted = True
        elif len(data_types) == 1:
            value = [value]
            accepted = True

        if accepted and len(data_types) > 1:
            element_spec = spec.element_spec()
            errors = flatten_errors(
                validate_param(value, index, element_spec, context, f"{label}.", max_depth, _depth + 1)
                for index in range(len(value))
            )
            if errors:
                return errors

        if accepted:
            kind = DataType.ARRAY

    # Object: native dict or JSON string, then the nested schema
    if DataType.OBJECT in data_types and kind != DataType.ARRAY:
        if kind == DataType.OBJECT:
            value = dict(value)
            accepted = True
        elif kind == DataType.STRING and value.startswith("{"):
            try:
                value = json.loads(value)
                accepted = True
            except (ValueError, RecursionError) as e:
                if DataType.STRING not in data_types:
                    return invalid_argument(
                        label,
                        f"Invalid param `{label}`, malformed object: `{_decode_error(e)}`",
                        raw,
                    )

        if accepted:
            kind = DataType.OBJECT
            if spec.params:
                errors = flatten_errors(
                    validate_param(value, child.name, child, context, f"{label}.", max_depth, _depth + 1)
                    for child in spec.params
                )
                if errors:
                    return errors

    # Date: timestamps and calendar strings
    if DataType.DATE in data_types and not accepted and is_truthy(value):
        parsed = coerce_date(value)
        if parsed is not None:
            value = parsed
            kind = DataType.DATE
            accepted = True

    # Boolean
    if DataType.BOOLEAN in data_types and not accepted:
        accepted, value = _coerce_boolean(value)
        if accepted:
            kind = DataType.BOOLEAN

    # Number, bounds checked before the value is committed
    if DataType.NUMBER in data_types and not accepted:
        number = parse_number(value) if kind in (DataType.STRING, DataType.NUMBER) else None
        if number is not None:
            error = _bounds_error(label, spec, value)
            if error:
                return error
            value = number
            kind = DataType.NUMBER
            accepted = True

    # String, existence without a value counts as ""
    if DataType.STRING in data_types and not accepted:
        if kind == DataType.STRING:
            accepted = True
        elif not is_truthy(value):
            value = ""
            kind = DataType.STRING
            accepted = True

    if not accepted:
        received = _received_hint(raw)
        logger.debug(f"[validate] invalid param=`{label}` allowed=`{'|'.join(data_types)}` received=`{received}`")
        return invalid_argument(
            label,
            f"Invalid param `{label}`, valid types are `{'|'.join(data_types)}`, received `{received}`",
            raw,
        )

    # Allowed values, checked element-wise for arrays
    if spec.data_values:
        allowed = spec.data_values
        if kind == DataType.ARRAY and value:
            ok = all(_strict_member(item, allowed) for item in value)
        else:
            ok = _strict_member(value, allowed)
        if not ok:
            return invalid_argument(
                label,
                f"Invalid param `{label}`, valid values are "
                f"`{', '.join(describe_value(item) for item in allowed)}`, "
                f"received `{describe_value(value)}`",
                raw,
            )

    # Custom hooks only run for top-level parameters
    if not label_prefix:
        if spec.validate:
            error = spec.validate(value, context, spec)
            if error:
                return error
        if spec.transform:
            value = spec.transform(value, context, spec)

    container[key] = value
    logger.debug(f"[validate] done: `{label}` = `{describe_value(value)}`")
    return False


def check_param(
    container: Container,
    key: Any,
    spec: ParameterSpec,
    context: Any = None,
    label_prefix: str = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Any]:
    """Same as ``validate_param`` but always returns a (possibly empty) list of errors."""
    result = validate_param(container, key, spec, context, label_prefix, max_depth)
    if not result:
        return []
    if isinstance(result, list):
        return result
    return [result]


@timing_decorator("validate_params")
def validate_params(
    specs: Iterable[ParameterSpec],
    values: Dict[str, Any],
    context: Any = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Tuple[Dict[str, Any], List[Any]]:
    """
    Validate a whole mapping against a list of specs.

    The input mapping is left untouched; a shallow copy is coerced instead.

    Return: (validated_dict, errors_list)
    If errors_list is empty, validation succeeded.
    """
    validated = dict(values)
    errors: List[Any] = []

    for spec in specs:
        errors.extend(check_param(validated, spec.name, spec, context, max_depth=max_depth))

    return validated, errors


def format_errors(errors: List[Any]) -> str:
    return "; ".join(str(error) for error in errors)
