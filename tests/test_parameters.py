from datetime import date
from decimal import Decimal

import pytest

from scoped_nl2sql.models.generation import ErrorKind
from scoped_nl2sql.models.template import (
    ParameterConstraint,
    ParameterDefinition,
    ParameterType,
    StringFormat,
)
from scoped_nl2sql.sql.parameters import (
    ParameterValidationError,
    coerce_value,
    is_compatible,
    validate_parameter,
)


def _definition(type_=ParameterType.STRING, **kwargs):
    return ParameterDefinition(name=kwargs.pop("name", "value"), type=type_, **kwargs)


class TestRequiredParameters:
    def test_missing_required_value_reports_parameter_name(self):
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(_definition(name="email"))
        assert exc_info.value.kind is ErrorKind.MISSING_REQUIRED_PARAMETER
        assert "email" in exc_info.value.message
        assert "required" in exc_info.value.message

    def test_optional_value_without_default_is_omitted(self):
        assert validate_parameter(_definition(required=False)) is None

    def test_optional_value_uses_validated_default(self):
        definition = _definition(ParameterType.DATE, required=False, default_value="2024-01-01")
        validated = validate_parameter(definition)
        assert validated.value == date(2024, 1, 1)
        assert validated.used_default is True

    def test_supplied_value_takes_precedence_over_default(self):
        definition = _definition(ParameterType.INT, required=False, default_value=5)
        validated = validate_parameter(definition, "7")
        assert validated.value == 7
        assert validated.used_default is False


class TestCoercion:
    @pytest.mark.parametrize(
        ("type_", "raw", "expected"),
        [
            (ParameterType.INT, 42, 42),
            (ParameterType.INT, "-17", -17),
            (ParameterType.INT, 3.0, 3),
            (ParameterType.DECIMAL, "19.99", Decimal("19.99")),
            (ParameterType.DECIMAL, 2, Decimal("2")),
            (ParameterType.DATE, "2024-03-05", date(2024, 3, 5)),
            (ParameterType.BOOL, "yes", True),
            (ParameterType.BOOL, 0, False),
            (ParameterType.STRING, 12, "12"),
        ],
    )
    def test_accepts_convertible_values(self, type_, raw, expected):
        assert coerce_value(_definition(type_), raw) == expected

    @pytest.mark.parametrize(
        ("type_", "raw"),
        [
            (ParameterType.INT, "abc"),
            (ParameterType.INT, True),
            (ParameterType.INT, 2.5),
            (ParameterType.DECIMAL, "NaN"),
            (ParameterType.DECIMAL, "ten"),
            (ParameterType.DATE, "05/03/2024"),
            (ParameterType.BOOL, "maybe"),
            (ParameterType.STRING, ["a"]),
        ],
    )
    def test_rejects_unconvertible_values(self, type_, raw):
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(_definition(type_), raw)
        assert exc_info.value.kind is ErrorKind.TYPE_MISMATCH
        assert "expects a" in exc_info.value.message

    def test_enum_returns_canonical_allowed_value(self):
        definition = _definition(
            ParameterType.ENUM,
            constraint=ParameterConstraint(allowed_values=("Open", "Shipped")),
        )
        assert validate_parameter(definition, "shipped").value == "Shipped"

    def test_enum_rejects_value_outside_allowed_set(self):
        definition = _definition(
            ParameterType.ENUM,
            constraint=ParameterConstraint(allowed_values=("open",)),
        )
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(definition, "lost")
        assert exc_info.value.kind is ErrorKind.CONSTRAINT_VIOLATION


class TestConstraints:
    def test_range_violation(self):
        definition = _definition(
            ParameterType.DECIMAL,
            constraint=ParameterConstraint(min_value=Decimal("0"), max_value=Decimal("100")),
        )
        assert validate_parameter(definition, "100").value == Decimal("100")
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(definition, "-0.01")
        assert exc_info.value.kind is ErrorKind.CONSTRAINT_VIOLATION
        assert ">= 0" in exc_info.value.message

    def test_date_range(self):
        definition = _definition(
            ParameterType.DATE,
            constraint=ParameterConstraint(min_value=date(2024, 1, 1)),
        )
        with pytest.raises(ParameterValidationError):
            validate_parameter(definition, "2023-12-31")

    def test_pattern_must_match_whole_value(self):
        definition = _definition(constraint=ParameterConstraint(pattern=r"[A-Z]{3}"))
        assert validate_parameter(definition, "ABC").value == "ABC"
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(definition, "ABCD")
        assert exc_info.value.kind is ErrorKind.CONSTRAINT_VIOLATION

    def test_max_length(self):
        definition = _definition(constraint=ParameterConstraint(max_length=3))
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(definition, "abcd")
        assert "longer than 3" in exc_info.value.message

    def test_allowed_values_for_non_enum_type(self):
        definition = _definition(
            ParameterType.INT,
            constraint=ParameterConstraint(allowed_values=(10, 20)),
        )
        assert validate_parameter(definition, "20").value == 20
        with pytest.raises(ParameterValidationError):
            validate_parameter(definition, 30)

    def test_default_value_is_checked_like_supplied_values(self):
        definition = _definition(
            ParameterType.INT,
            required=False,
            default_value=-1,
            constraint=ParameterConstraint(min_value=Decimal("0")),
        )
        with pytest.raises(ParameterValidationError):
            validate_parameter(definition)


class TestFormats:
    @pytest.mark.parametrize("value", ["a@example.com", "first.last+tag@mail.example.org"])
    def test_accepts_email_addresses(self, value):
        definition = _definition(constraint=ParameterConstraint(format="email"))
        assert validate_parameter(definition, value).value == value

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a@example.com\n"])
    def test_rejects_malformed_email_addresses(self, value):
        definition = _definition(constraint=ParameterConstraint(format=StringFormat.EMAIL))
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(definition, value)
        assert exc_info.value.kind is ErrorKind.CONSTRAINT_VIOLATION
        assert "e-mail" in exc_info.value.message

    def test_url_requires_web_scheme_and_host(self):
        definition = _definition(constraint=ParameterConstraint(format="url"))
        assert validate_parameter(definition, "https://example.com/a?b=1").value
        for value in ("ftp://example.com", "example.com/path", "https://"):
            with pytest.raises(ParameterValidationError, match="URL"):
                validate_parameter(definition, value)

    def test_format_only_on_strings(self):
        with pytest.raises(ValueError, match="format"):
            _definition(ParameterType.INT, constraint=ParameterConstraint(format="email"))


class TestInjectionPatterns:
    @pytest.mark.parametrize(
        "value",
        [
            "x'; --",
            "x' UNION ALL SELECT password FROM Users",
            "x' OR 1=1",
            "x' or '1' = '1",
            "Robert'); DROP TABLE Students",
            "exec('xp_cmdshell')",
        ],
    )
    def test_rejects_sql_fragments_in_strings(self, value):
        with pytest.raises(ParameterValidationError) as exc_info:
            validate_parameter(_definition(), value)
        assert exc_info.value.kind is ErrorKind.CONSTRAINT_VIOLATION
        assert "SQL syntax" in exc_info.value.message

    @pytest.mark.parametrize("value", ["O'Brien", "Home & Office", "drop-off point", "Oregon"])
    def test_ordinary_text_is_accepted(self, value):
        assert validate_parameter(_definition(), value).value == value

    def test_rejected_values_are_not_compatible(self):
        assert is_compatible(_definition(), "a; -- b") is False

class TestDefinitionValidation:
    def test_name_strips_placeholder_prefix(self):
        assert _definition(name="@email").name == "email"
        assert _definition(name="email").placeholder == "@email"

    def test_enum_requires_allowed_values(self):
        with pytest.raises(ValueError, match="allowed_values"):
            _definition(ParameterType.ENUM)

    def test_range_not_allowed_on_strings(self):
        with pytest.raises(ValueError, match="cannot declare a range"):
            _definition(constraint=ParameterConstraint(min_value=Decimal("1")))

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValueError, match="regular expression"):
            ParameterConstraint(pattern="([a-z")


def test_is_compatible():
    definition = _definition(ParameterType.INT)
    assert is_compatible(definition, "5") is True
    assert is_compatible(definition, "five") is False
    assert is_compatible(definition, None) is False
