"""
Declarative response schemas.

A schema is a tree of small frozen rule objects, defined once per response
shape and validated against parsed payloads:

    DOWNLOADS_SCHEMA = Object({
        "d": Required(Object({
            "results": Optional(Array(Object({
                "DownloadCount": Required(NonNegativeInteger()),
            }), max_length=1), default=[]),
        })),
    })

    data = validate(DOWNLOADS_SCHEMA, payload)

validate() returns a new tree holding only the declared fields, coerced to
their declared types, or raises ValidationError on the first violation.
Rules are plain data: describe() turns any tree into dicts and lists.
"""

import copy
import dataclasses
import math
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Tuple

from .errors import ValidationError

# Sentinel for "no default"
MISSING = object()

# ASCII only: int() and float() also take "1_000", "nan", "inf" and non-ASCII digits
DIGITS_PATTERN = re.compile(r"[0-9]+")
INTEGER_PATTERN = re.compile(r"-?[0-9]+")
DECIMAL_PATTERN = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")
URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)


def _join(path: str, key) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else str(key)


def _numeric_string(text: str):
    """int or float for a plain decimal string, None for anything else."""
    text = text.strip()
    if INTEGER_PATTERN.fullmatch(text):
        return int(text)
    if DECIMAL_PATTERN.fullmatch(text):
        return float(text)
    return None


class Rule:
    """Base class for schema rules."""

    kind: ClassVar[str] = "any"

    def check(self, value: Any, path: str) -> Any:
        raise NotImplementedError

    def fail(self, path: str, value: Any, expected: str = None):
        raise ValidationError(path, expected or self.kind, value)


@dataclass(frozen=True)
class String(Rule):
    kind: ClassVar[str] = "string"
    allow_empty: bool = False

    def check(self, value, path):
        if not isinstance(value, str):
            self.fail(path, value)
        if not value and not self.allow_empty:
            self.fail(path, value, "non-empty string")
        return value


@dataclass(frozen=True)
class Number(Rule):
    kind: ClassVar[str] = "number"

    def check(self, value, path):
        if isinstance(value, bool):
            self.fail(path, value)
        number = _numeric_string(value) if isinstance(value, str) else value
        if isinstance(number, int) or (isinstance(number, float) and math.isfinite(number)):
            return number
        self.fail(path, value)


@dataclass(frozen=True)
class NonNegativeInteger(Rule):
    """Integer >= 0. Digit-only strings (as sent by XML feeds) are coerced."""

    kind: ClassVar[str] = "non-negative integer"

    def check(self, value, path):
        if isinstance(value, bool):
            self.fail(path, value)
        if isinstance(value, int):
            if value < 0:
                self.fail(path, value)
            return value
        if isinstance(value, float):
            if value < 0 or not value.is_integer():
                self.fail(path, value)
            return int(value)
        if isinstance(value, str) and DIGITS_PATTERN.fullmatch(value.strip()):
            return int(value.strip())
        self.fail(path, value)


@dataclass(frozen=True)
class Ratio(Rule):
    """Floating point value, e.g. a rating or percentage."""

    kind: ClassVar[str] = "ratio"

    def check(self, value, path):
        if isinstance(value, bool):
            self.fail(path, value)
        number = _numeric_string(value) if isinstance(value, str) else value
        if isinstance(number, (int, float)):
            try:
                number = float(number)
            except OverflowError:
                self.fail(path, value)
            if math.isfinite(number):
                return number
        self.fail(path, value)


@dataclass(frozen=True)
class Url(Rule):
    kind: ClassVar[str] = "url"

    def check(self, value, path):
        if not isinstance(value, str) or not URL_PATTERN.match(value):
            self.fail(path, value)
        return value


@dataclass(frozen=True)
class Enum(Rule):
    kind: ClassVar[str] = "enum"
    values: Tuple[Any, ...] = ()

    def check(self, value, path):
        if isinstance(value, (dict, list)) or value not in self.values:
            self.fail(path, value, f"one of {list(self.values)}")
        return value


@dataclass(frozen=True)
class AnyOf(Rule):
    """First alternative that validates wins."""

    kind: ClassVar[str] = "any of"
    rules: Tuple[Rule, ...] = ()

    def check(self, value, path):
        for rule in self.rules:
            try:
                return rule.check(value, path)
            except ValidationError:
                continue
        self.fail(path, value, " or ".join(rule.kind for rule in self.rules))


@dataclass(frozen=True)
class Array(Rule):
    kind: ClassVar[str] = "array"
    items: Rule = None
    min_length: int = 0
    max_length: int = None
    # Accept a lone value as a one-element array (XML repeats collapse to scalars)
    single: bool = False

    def check(self, value, path):
        if not isinstance(value, list):
            if self.single and value is not None:
                value = [value]
            else:
                self.fail(path, value)
        if len(value) < self.min_length:
            self.fail(path, value, f"array with at least {self.min_length} items")
        if self.max_length is not None and len(value) > self.max_length:
            self.fail(path, value, f"array with at most {self.max_length} items")
        if self.items is None:
            return list(value)
        return [self.items.check(item, _join(path, i)) for i, item in enumerate(value)]


@dataclass(frozen=True)
class Required:
    rule: Rule
    kind: ClassVar[str] = "required"


@dataclass(frozen=True)
class Optional:
    rule: Rule
    default: Any = MISSING
    kind: ClassVar[str] = "optional"


@dataclass(frozen=True)
class Object(Rule):
    kind: ClassVar[str] = "object"
    fields: Mapping[str, Any] = field(default_factory=dict)
    closed: bool = False

    def check(self, value, path):
        if not isinstance(value, dict):
            self.fail(path, value)

        if self.closed:
            for key in value:
                if key not in self.fields:
                    self.fail(_join(path, key), value[key], "no additional keys")

        result = {}
        for name, spec in self.fields.items():
            field_path = _join(path, name)
            if name in value:
                result[name] = spec.rule.check(value[name], field_path)
            elif isinstance(spec, Required):
                raise ValidationError(field_path, f"required {spec.rule.kind}", None)
            elif spec.default is not MISSING:
                result[name] = copy.deepcopy(spec.default)
        return result


def validate(schema: Rule, payload: Any) -> Any:
    """
    Validate payload against schema.

    Returns:
        The payload narrowed to declared fields and coerced to declared types

    Raises:
        ValidationError on the first violation
    """
    return schema.check(payload, "")


def describe(rule) -> dict:
    """Serialize a rule tree to plain dicts and lists."""
    data = {"kind": rule.kind}
    for f in dataclasses.fields(rule):
        value = getattr(rule, f.name)
        if value is MISSING:
            continue
        data[f.name] = _describe_value(value)
    return data


def _describe_value(value):
    if isinstance(value, (Rule, Required, Optional)):
        return describe(value)
    if isinstance(value, Mapping):
        return {k: _describe_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_describe_value(v) for v in value]
    return value
