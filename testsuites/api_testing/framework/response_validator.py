# ================================================================================
# Response Validator
# ================================================================================
#
# Contract checks of a NormalizedResponse against a ValidationExpectation.
# Violations are returned as data so that a single call reports every breach
# at once; nothing here raises for a failed business expectation.
#
# Check order (all checks always run):
#   1. status code membership
#   2. content-type substring
#   3. header equality
#   4. required JSON keys (dot notation, items[0] indexing)
#   5. JSON value types per key
#   6. JSON array length (min_items / max_items)
#   7. error body (error.code equality, error.message substring)
#
# compare_json() compares two JSON documents while ignoring volatile keys.
#
# ================================================================================

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Collection, FrozenSet, List, Mapping, Optional, Tuple, Type, Union

import allure
from loguru import logger

from .models import NormalizedResponse


TypeSpec = Union[Type, Tuple[Type, ...]]


class ViolationKind(Enum):
    """Which part of the contract was breached."""
    STATUS_CODE = "status_code"
    CONTENT_TYPE = "content_type"
    HEADER = "header"
    MISSING_KEY = "missing_key"
    KEY_TYPE = "key_type"
    ARRAY_LENGTH = "array_length"
    ERROR_BODY = "error_body"


@dataclass(frozen=True)
class Violation:
    """
    A single contract violation.

    Attributes:
        kind: Category of the check that failed
        message: Human-readable description
        expected: What the expectation asked for
        actual: What the response carried
    """
    kind: ViolationKind
    message: str
    expected: Any = None
    actual: Any = None


@dataclass(frozen=True)
class ValidationExpectation:
    """
    Structural expectations for one response.

    acceptable_status_codes is always explicit: the storefront answers many
    business failures with 200 and an HTML page, so each test states which
    codes it accepts.

    Body checks (required_keys, key_types, min_items/max_items, error_code,
    error_message) parse the body as JSON only when at least one is set.

    Attributes:
        key_types: Dot path -> type or tuple of types; bool never passes for int
        items_path: Dot path of the array measured by min_items/max_items,
            None for the body itself
        error_code: Expected value of error.code
        error_message: Substring expected in error.message
    """
    acceptable_status_codes: FrozenSet[int]
    required_keys: FrozenSet[str] = frozenset()
    header_expectations: Mapping[str, str] = field(default_factory=dict)
    content_type_substring: Optional[str] = None
    key_types: Mapping[str, TypeSpec] = field(default_factory=dict)
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    items_path: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        codes = self.acceptable_status_codes
        if isinstance(codes, int):
            codes = (codes,)
        object.__setattr__(self, "acceptable_status_codes", frozenset(int(c) for c in codes))
        object.__setattr__(self, "required_keys", frozenset(self.required_keys))
        object.__setattr__(
            self,
            "header_expectations",
            MappingProxyType(dict(self.header_expectations)),
        )
        object.__setattr__(self, "key_types", MappingProxyType(dict(self.key_types)))

        for name in ("min_items", "max_items"):
            bound = getattr(self, name)
            if bound is not None and bound < 0:
                raise ValueError(f"{name} must be >= 0, got {bound}")
        if (
            self.min_items is not None
            and self.max_items is not None
            and self.min_items > self.max_items
        ):
            raise ValueError(
                f"min_items ({self.min_items}) must not exceed max_items ({self.max_items})"
            )

    @property
    def needs_body(self) -> bool:
        """Whether any check requires the JSON body."""
        return bool(
            self.required_keys
            or self.key_types
            or self.min_items is not None
            or self.max_items is not None
            or self.error_code is not None
            or self.error_message is not None
        )

    @classmethod
    def of(
        cls,
        *status_codes: int,
        required_keys: Collection[str] = (),
        headers: Optional[Mapping[str, str]] = None,
        content_type: Optional[str] = None,
        key_types: Optional[Mapping[str, TypeSpec]] = None,
        min_items: Optional[int] = None,
        max_items: Optional[int] = None,
        items_path: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> "ValidationExpectation":
        """Shorthand: ValidationExpectation.of(200, 400, content_type="text/html")."""
        return cls(
            acceptable_status_codes=frozenset(status_codes),
            required_keys=frozenset(required_keys),
            header_expectations=dict(headers or {}),
            content_type_substring=content_type,
            key_types=dict(key_types or {}),
            min_items=min_items,
            max_items=max_items,
            items_path=items_path,
            error_code=error_code,
            error_message=error_message,
        )


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a validation: valid when there are no violations.

    Truthiness follows validity, so `assert result` works, but prefer
    assert_valid() for a readable failure message.
    """
    violations: Tuple[Violation, ...] = ()

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(())

    @classmethod
    def invalid(cls, violations: Collection[Violation]) -> "ValidationResult":
        return cls(tuple(violations))

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.is_valid

    def messages(self) -> List[str]:
        return [v.message for v in self.violations]

    def of_kind(self, kind: ViolationKind) -> List[Violation]:
        return [v for v in self.violations if v.kind is kind]


_MISSING = object()


def _is_instance(value: Any, expected: TypeSpec) -> bool:
    types = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def _type_names(expected: TypeSpec) -> str:
    types = expected if isinstance(expected, tuple) else (expected,)
    return " | ".join(t.__name__ for t in types)


def _lookup(data: Any, path: str) -> Any:
    """Resolve a dot path with optional list indexing; _MISSING if absent."""
    current = data
    for key in path.split("."):
        array_match = re.fullmatch(r"(\w+)\[(\d+)\]", key)
        name, index = (array_match.group(1), int(array_match.group(2))) if array_match else (key, None)

        if not isinstance(current, Mapping) or name not in current:
            return _MISSING
        current = current[name]

        if index is not None:
            if not isinstance(current, list) or index >= len(current):
                return _MISSING
            current = current[index]
    return current


class ResponseValidator:
    """
    Validate responses against ValidationExpectation values.

    Stateless; one instance can be shared by any number of tests.

    Example:
        validator = ResponseValidator()
        result = validator.validate(
            response,
            ValidationExpectation.of(200, content_type="application/json",
                                     required_keys={"products", "total"}),
        )
        validator.assert_valid(result)
    """

    def validate(
        self,
        response: NormalizedResponse,
        expectation: ValidationExpectation,
    ) -> ValidationResult:
        """
        Run every check and collect the violations.

        Raises:
            ResponseParseError: Only when a body check is configured and the
                body is not valid JSON
        """
        violations: List[Violation] = []
        violations.extend(self._check_status(response, expectation))
        violations.extend(self._check_content_type(response, expectation))
        violations.extend(self._check_headers(response, expectation))
        if expectation.needs_body:
            body = response.parsed_json
            violations.extend(self._check_required_keys(body, expectation))
            violations.extend(self._check_key_types(body, expectation))
            violations.extend(self._check_array_length(body, expectation))
            violations.extend(self._check_error_body(body, expectation))

        result = ValidationResult(tuple(violations))
        self._log_result(response, result)
        return result

    def assert_valid(self, result: ValidationResult) -> None:
        """
        Raise AssertionError listing every violation.

        Raises:
            AssertionError: If the result carries violations
        """
        if result.is_valid:
            return
        error_text = "\n".join(f"- {v.message}" for v in result.violations)
        raise AssertionError(
            f"Response validation failed ({len(result.violations)} violation(s)):\n"
            f"{error_text}"
        )

    def validate_and_assert(
        self,
        response: NormalizedResponse,
        expectation: ValidationExpectation,
    ) -> None:
        self.assert_valid(self.validate(response, expectation))

    def _check_status(self, response, expectation) -> List[Violation]:
        if response.status_code in expectation.acceptable_status_codes:
            return []
        expected = sorted(expectation.acceptable_status_codes)
        return [Violation(
            kind=ViolationKind.STATUS_CODE,
            message=f"Expected status in {expected}, got {response.status_code}",
            expected=expected,
            actual=response.status_code,
        )]

    def _check_content_type(self, response, expectation) -> List[Violation]:
        wanted = expectation.content_type_substring
        if wanted is None:
            return []
        actual = response.content_type
        if wanted.lower() in actual.lower():
            return []
        return [Violation(
            kind=ViolationKind.CONTENT_TYPE,
            message=f"Content-Type '{actual}' does not contain '{wanted}'",
            expected=wanted,
            actual=actual,
        )]

    def _check_headers(self, response, expectation) -> List[Violation]:
        violations = []
        for name in sorted(expectation.header_expectations, key=str.lower):
            expected = expectation.header_expectations[name]
            actual = response.headers.get(name)
            if actual == expected:
                continue
            if actual is None:
                message = f"Header '{name}' missing, expected '{expected}'"
            else:
                message = f"Header '{name}': expected '{expected}', got '{actual}'"
            violations.append(Violation(
                kind=ViolationKind.HEADER,
                message=message,
                expected=expected,
                actual=actual,
            ))
        return violations

    def _check_required_keys(self, body, expectation) -> List[Violation]:
        violations = []
        for key in sorted(expectation.required_keys):
            if _lookup(body, key) is _MISSING:
                violations.append(Violation(
                    kind=ViolationKind.MISSING_KEY,
                    message=f"Required key not found: {key}",
                    expected=key,
                ))
        return violations

    def _check_key_types(self, body, expectation) -> List[Violation]:
        violations = []
        for key in sorted(expectation.key_types):
            expected = expectation.key_types[key]
            value = _lookup(body, key)
            if value is _MISSING:
                message = f"Key '{key}' missing, expected {_type_names(expected)}"
                actual = None
            elif not _is_instance(value, expected):
                actual = type(value).__name__
                message = f"Key '{key}': expected {_type_names(expected)}, got {actual}"
            else:
                continue
            violations.append(Violation(
                kind=ViolationKind.KEY_TYPE,
                message=message,
                expected=_type_names(expected),
                actual=actual,
            ))
        return violations

    def _check_array_length(self, body, expectation) -> List[Violation]:
        low, high = expectation.min_items, expectation.max_items
        if low is None and high is None:
            return []
        where = expectation.items_path or "body"
        items = body if expectation.items_path is None else _lookup(body, expectation.items_path)
        if not isinstance(items, list):
            actual = "missing" if items is _MISSING else type(items).__name__
            return [Violation(
                kind=ViolationKind.ARRAY_LENGTH,
                message=f"Expected a JSON array at {where}, got {actual}",
                expected="array",
                actual=actual,
            )]
        if low is not None and len(items) < low:
            message = f"Array at {where} has {len(items)} item(s), expected at least {low}"
        elif high is not None and len(items) > high:
            message = f"Array at {where} has {len(items)} item(s), expected at most {high}"
        else:
            return []
        return [Violation(
            kind=ViolationKind.ARRAY_LENGTH,
            message=message,
            expected=(low, high),
            actual=len(items),
        )]

    def _check_error_body(self, body, expectation) -> List[Violation]:
        code, text = expectation.error_code, expectation.error_message
        if code is None and text is None:
            return []
        error = _lookup(body, "error")
        if not isinstance(error, Mapping):
            return [Violation(
                kind=ViolationKind.ERROR_BODY,
                message="Response has no 'error' object",
                expected={"code": code, "message": text},
            )]

        violations = []
        actual_code = error.get("code")
        if code is not None and (actual_code is None or str(actual_code) != code):
            violations.append(Violation(
                kind=ViolationKind.ERROR_BODY,
                message=f"Expected error.code '{code}', got '{actual_code}'",
                expected=code,
                actual=actual_code,
            ))
        actual_message = error.get("message")
        if text is not None and text not in str(actual_message or ""):
            violations.append(Violation(
                kind=ViolationKind.ERROR_BODY,
                message=f"error.message '{actual_message}' does not contain '{text}'",
                expected=text,
                actual=actual_message,
            ))
        return violations

    def _log_result(self, response: NormalizedResponse, result: ValidationResult) -> None:
        if result.is_valid:
            logger.debug(f"✅ Response {response.status_code} satisfied its contract")
            return

        for violation in result.violations:
            logger.warning(f"❌ {violation.kind.value}: {violation.message}")

        allure.attach(
            "\n".join(
                [f"Violations: {len(result.violations)}", "-" * 40]
                + [f"❌ {v.kind.value} | {v.message}" for v in result.violations]
            ),
            name="Validation Summary",
            attachment_type=allure.attachment_type.TEXT,
        )


def _without_keys(data: Any, ignore: FrozenSet[str]) -> Any:
    if isinstance(data, Mapping):
        return {k: _without_keys(v, ignore) for k, v in data.items() if k not in ignore}
    if isinstance(data, list):
        return [_without_keys(item, ignore) for item in data]
    return data


def compare_json(first: Any, second: Any, ignore_keys: Collection[str] = ()) -> bool:
    """
    Compare two parsed JSON documents for equality.

    Keys named in ignore_keys are dropped at every nesting level before the
    comparison, so volatile fields (ids, timestamps) do not matter. Key order
    never matters; list order does.

    Example:
        compare_json(before, after, ignore_keys={"date_modified"})
    """
    ignore = frozenset(ignore_keys)
    return _without_keys(first, ignore) == _without_keys(second, ignore)


__all__ = [
    "ResponseValidator",
    "ValidationExpectation",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    "compare_json",
]
