"""
Docstore Kernel - Schema Validation

The collection layer depends only on SchemaValidator.validate().
PydanticValidator adapts a pydantic model to that contract.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from docstore.kernel.types import Document, ValidationIssue, ValidationResult


class SchemaValidator:
    """
    One-method validation contract.

    validate() returns ValidationResult.success(normalized_document) or
    ValidationResult.failure([ValidationIssue(path, message), ...]).
    It must not raise for invalid documents.
    """

    def validate(self, document: Document) -> ValidationResult:
        raise NotImplementedError


class PydanticValidator(SchemaValidator):
    """
    Validate documents against a pydantic model.

    Pydantic treats leading-underscore attributes as private, so declare the
    identifier through an alias:

        class User(BaseModel):
            id: str = Field(alias="_id")
            name: str

    The normalized document is model_dump(mode="json", by_alias=True):
    defaults are applied, and fields the model does not declare are dropped
    unless the model allows extras.
    """

    def __init__(self, model: type[BaseModel]):
        self.model = model

    def validate(self, document: Document) -> ValidationResult:
        try:
            instance = self.model.model_validate(document)
        except PydanticValidationError as e:
            return ValidationResult.failure(
                [
                    ValidationIssue(path=tuple(err["loc"]), message=err["msg"], code=err["type"])
                    for err in e.errors()
                ]
            )
        return ValidationResult.success(instance.model_dump(mode="json", by_alias=True))
