"""Tests for input validation helpers."""

import pytest

from riskvanguard.exceptions import ValidationError as BaseValidationError
from riskvanguard.models import DomainInput
from riskvanguard.validation import (
    InputValidationError,
    validate_domain_input,
    validate_identifier,
    validate_in_list,
    validate_required,
    validate_step_definitions,
)


class TestFieldValidators:
    """Tests for the single-field validators."""

    def test_required_rejects_none_and_blank(self):
        with pytest.raises(InputValidationError, match="content is required"):
            validate_required(None, "content")
        with pytest.raises(InputValidationError, match="content cannot be empty"):
            validate_required("  \n", "content")
        validate_required("Royalty: 15%", "content")

    def test_error_is_a_validation_error(self):
        with pytest.raises(BaseValidationError) as exc_info:
            validate_required(None, "vertical")
        assert exc_info.value.field == "vertical"
        assert exc_info.value.code == "validation_error"

    def test_in_list(self):
        validate_in_list("review", "type", ["review", "approval"])
        with pytest.raises(InputValidationError, match="must be one of: review, approval"):
            validate_in_list("deploy", "type", ["review", "approval"])

    def test_identifier(self):
        validate_identifier("legal_review")
        validate_identifier("step-2.b")
        with pytest.raises(InputValidationError):
            validate_identifier("-leading-dash")
        with pytest.raises(InputValidationError):
            validate_identifier("has space")


class TestDomainInputValidation:
    """Tests for validate_domain_input."""

    def test_missing_input(self):
        with pytest.raises(InputValidationError, match="input is required"):
            validate_domain_input(None)

    def test_blank_content(self):
        with pytest.raises(InputValidationError):
            validate_domain_input(DomainInput("lease", ""))

    def test_unknown_document_type_is_not_fatal(self):
        validate_domain_input(DomainInput("memo", "Some text"))

    def test_none_metadata_and_context_become_empty(self):
        document = DomainInput("lease", "text", metadata=None, context=None)
        validate_domain_input(document)
        assert document.metadata == {}
        assert document.context == {}

    def test_metadata_must_be_a_dict(self):
        with pytest.raises(InputValidationError, match="metadata must be a dictionary"):
            validate_domain_input(DomainInput("lease", "text", metadata=["royalty"]))


class TestStepDefinitions:
    """Tests for validate_step_definitions."""

    def test_valid_steps(self):
        validate_step_definitions(
            [
                {"id": "analyze", "type": "analysis"},
                {"id": "review", "type": "review", "depends_on": ["analyze"]},
            ],
            allowed_types=["analysis", "review"],
        )

    def test_duplicate_id(self):
        with pytest.raises(InputValidationError, match="Duplicate step id 'a'"):
            validate_step_definitions([{"id": "a"}, {"id": "a"}])

    def test_dependencies_must_be_strings(self):
        with pytest.raises(InputValidationError) as exc_info:
            validate_step_definitions([{"id": "a", "dependencies": [1]}])
        assert exc_info.value.field == "steps[0].dependencies[0]"

    def test_disallowed_type(self):
        with pytest.raises(InputValidationError):
            validate_step_definitions([{"id": "a", "type": "deploy"}], allowed_types=["review"])
