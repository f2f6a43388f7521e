"""JSON Schema management."""

from functools import cache
from json import dumps
from typing import TYPE_CHECKING, Any

from pydantic.json_schema import GenerateJsonSchema, JsonSchemaValue

from conformgen.names import ACTION_PATTERN
from conformgen.schema import Action, Always, Disabled, Invocation, ReturnShape, ReturnType

if TYPE_CHECKING:
    from pydantic_core import core_schema as core

#: File name patterns of registry sources.
REGISTRY_PATTERNS = (
    '*.actions.yaml',
    '*.actions.yml',
)


class SchemaGenerator(GenerateJsonSchema):
    """Custom JSON Schema generator for registry documents.

    Registry sources may spell some elements in a short form that is
    expanded before validation: invocations as flow lists, return types
    without a struct as a bare shape name, and payload-less prerequisites
    as a bare kind. The generated schema accepts both spellings.
    """

    @classmethod
    @cache
    def make_schema(cls, indent: int | str | None = 4) -> str:
        """Generate the JSON Schema of an action document.

        Args:
            indent: Indentation level used for JSON formatting.

        Returns:
            Serialized JSON Schema string.
        """
        schema = {
            **Action.model_json_schema(schema_generator=cls),
            'title': 'conformgen',
            'description': 'JSON Schema for conformgen action registry documents',
            '$schema': cls.schema_dialect,
        }

        return dumps(
            schema,
            ensure_ascii=False,
            sort_keys=True,
            indent=indent,
        )

    @staticmethod
    def shorthand(model: type[Any]) -> JsonSchemaValue | None:
        """Short spelling accepted for a model, if any.

        Args:
            model: Registry model class.

        Returns:
            A JSON Schema fragment of the short spelling, or None.
        """
        if model is Invocation:
            return {
                'type': 'array',
                'minItems': 1,
                'prefixItems': [{'type': 'string', 'pattern': ACTION_PATTERN.pattern}],
                'items': {'type': ['string', 'integer', 'boolean']},
                'description': 'Action name followed by its literal arguments.',
            }

        if model is ReturnType:
            return {
                'enum': [shape.value for shape in ReturnShape if not shape.has_struct],
            }

        if model in (Always, Disabled):
            return {'const': model.model_fields['kind'].default}

        return None

    def model_schema(self, schema: 'core.ModelSchema') -> JsonSchemaValue:
        """Generate JSON Schema for a model, adding its short spelling.

        Args:
            schema: Pydantic core schema describing a model.

        Returns:
            The generated JSON schema.
        """
        json_schema = super().model_schema(schema)

        if (shorthand := self.shorthand(schema['cls'])) is not None:
            return {'anyOf': [shorthand, json_schema]}

        return json_schema
