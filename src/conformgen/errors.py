"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report registry loading failures, generation-time schema defects and
runtime failures of the generated conformance program in a structured
and extensible way.
"""

from collections.abc import Mapping
from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump
from yaml.error import MarkedYAMLError

if TYPE_CHECKING:
    from typing import Self

    from pydantic_core import ErrorDetails, ValidationError

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unicode string>'
FORMAT_INDENT = 4


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    This structure aggregates optional metadata that may be available
    at different stages of registry loading and program generation.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the registry source where the error occurred.
    filename: str | None

    #: Line number in the source file.
    line_num: int | None
    #: Column number in the source file.
    column_num: int | None

    #: Position of the YAML document (action) in the source.
    document_num: int | None

    #: Name of the action being processed.
    action: str | None
    #: Synthesized name of the test unit being generated.
    test_name: str | None

    #: Underlying exception that triggered formatting.
    error: Exception | None

    #: Registry element associated with the error.
    element: Any


class ErrorFormatter:
    """Utility class for formatting registry-related errors.

    This formatter is responsible for producing human-readable
    error messages with optional source location and YAML-based
    contextual snippets.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: int = 0) -> str:
        """Format source and generation location information.

        Args:
            context: Error context containing location metadata.
            indent: Number of spaces to indent with.

        Returns:
            A formatted location string including filename, line,
            column, document, action and test names when available.
        """
        prefix = ' ' * indent
        message = ''

        filename = context.get('filename')
        if filename or context.get('line_num') is not None:
            message += f'{prefix}in "{filename or FORMAT_FILENAME}"'
            if (line_num := context.get('line_num')) is not None:
                message += f', line {line_num + 1}'
                if (column_num := context.get('column_num')) is not None:
                    message += f', column {column_num + 1}'
            if (document_num := context.get('document_num')) is not None:
                message += f', document {document_num + 1}'
            message += linesep

        if action := context.get('action'):
            message += f'{prefix}on action "{action}"'
            if test_name := context.get('test_name'):
                message += f', test "{test_name}"'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: int = 0) -> str:
        """Generate a formatted snippet illustrating the error context.

        Args:
            context: Error context containing element or exception data.
            indent: Number of spaces to indent with.

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no snippet data is available.
        """
        prefix = ' ' * indent

        error = context.get('error')
        if isinstance(error, MarkedYAMLError) and error.problem_mark is not None:
            snippet = error.problem_mark.get_snippet(indent=0) or ''
            return cls._shift(snippet, indent)

        if element := context.get('element'):
            snippet = f'{prefix}{SNIPPET_ELLIPSIS}'
            snippet += cls._make_yaml(element, prefix)
            snippet += linesep
            return snippet

        return ''

    @classmethod
    def _plain(cls, value: Any) -> Any:  # noqa: ANN401
        """Reduce a registry fragment to plain YAML data.

        Byte strings are shown as escaped text rather than binary tags,
        and objects with no YAML rendering become a placeholder.
        """
        match value:
            case None | bool() | int() | float() | str():
                return value
            case bytes():
                return value.decode('latin-1').encode('unicode_escape').decode('ascii')
            case dict() | Mapping():
                return {key: cls._plain(item) for key, item in value.items()}
            case list() | tuple() | set() | frozenset():
                return [cls._plain(item) for item in value]
            case _:
                return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a registry fragment to an indented YAML string."""
        data = dump(cls._plain(value), indent=SNIPPET_INDENT, sort_keys=False)

        return cls._shift(data, indent)

    @staticmethod
    def _shift(value: str, indent: str | int | None) -> str:
        """Prefix every non-blank line of a text with an indentation."""
        if isinstance(indent, int):
            indent = ' ' * max(indent, 0)

        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )


class CoverageWarning(UserWarning):
    """Warning emitted for registry actions without enabled tests.

    Untested actions never fail generation by themselves; the warning
    keeps them visible to registry authors.
    """


class ConformError(Exception, ErrorFormatter):
    """Base exception for all conformgen errors.

    All custom exceptions raised by the library should inherit from
    this class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional location values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class RegistryError(ConformError):
    """Error raised when a registry source can not be loaded.

    This exception is used when a registry source is not valid YAML or
    when an action document violates the structural constraints of the
    registry models.
    """

    @classmethod
    def from_yaml_error(cls, error: MarkedYAMLError, *,
                        filename: str | None = None) -> 'Self':
        """Create a registry error from a YAML parsing failure.

        Args:
            error: Exception raised by the YAML parser.
            filename: Name of the registry source.

        Returns:
            RegistryError representing the YAML parsing failure.
        """
        error_context = ErrorContext(error=error)
        if (mark := error.problem_mark) is not None:
            error_context.update(
                filename=filename or mark.name,
                line_num=mark.line,
                column_num=mark.column,
            )

        message = 'Invalid YAML'
        if error.problem:
            message += f'{linesep}{' ' * FORMAT_INDENT}{error.problem}'

        return cls(message, context=error_context)

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            data: Any = None,  # noqa: ANN401
                            filename: str | None = None,
                            document_num: int | None = None) -> 'Self':
        """Create a registry error from a Pydantic validation failure.

        The error message is taken from the first validation issue whose
        location can be found in the source document; the snippet shows
        the smallest failing fragment of that document.

        Args:
            error: ValidationError raised by Pydantic.
            data: Action document data.
            filename: Name of the registry source.
            document_num: Position of the document in the source.

        Returns:
            RegistryError representing the validation failure.
        """
        error_context = ErrorContext(
            filename=filename,
            document_num=document_num,
            error=error,
            element=data,
        )
        if isinstance(data, dict) and isinstance(data.get('name'), str):
            error_context['action'] = data['name']

        if not data or not isinstance(data, dict):
            return cls('Type validation error', context=error_context)

        for item in error.errors(include_url=False, include_input=False):
            if context := cls._locate_pydantic_context(data, item):
                message, value = context
                return cls(message, context=ErrorContext({**error_context, 'element': value}))

        return cls('Validation error', context=error_context)

    @classmethod
    def _locate_pydantic_context(cls, value: Any,  # noqa: ANN401
                                 error: 'ErrorDetails') -> tuple[str, Any] | None:
        """Locate the most specific failing element in validated data.

        Walks the Pydantic error location path and extracts the minimal
        substructure responsible for the failure.

        Args:
            value: Root data structure being validated.
            error: Pydantic error details including location path.

        Returns:
            A tuple of (error message, extracted element) if a relevant
            context can be located, otherwise None.
        """
        container = last_item = value
        last_key: int | str | None = None

        for key in error['loc']:
            if isinstance(last_item, (list, tuple)):
                if isinstance(key, int) and 0 <= key < len(last_item):
                    container = last_item
                    last_item = last_item[key]
                    last_key = key
            elif isinstance(last_item, dict):
                if key in last_item:
                    container = last_item
                    last_item = last_item[key]
                    last_key = key
            else:
                break

        message = None
        for item in (error.get('msg') or '').splitlines():
            if item_message := item.strip():
                message = item_message
                break

        if not message or last_key is None:
            return None

        if isinstance(container, (list, tuple)):
            return message, [last_item]

        return message, {last_key: last_item}


class SchemaDefectError(ConformError):
    """Error raised for generation-time schema defects.

    Covers unresolved action references, arity mismatches, unparsable
    literals, literals for parameters that can not be synthesized and
    assertions that can never hold. Each defect names the offending test
    and action; none of them is recoverable.
    """

    def __init__(self, message: str, *,
                 action: str | None = None,
                 test_name: str | None = None) -> None:
        """Initialize a schema defect.

        Args:
            message: Human-readable error description.
            action: Name of the action the defect was found in.
            test_name: Synthesized name of the referencing test.
        """
        self.action = action
        self.test_name = test_name

        context = None
        if action or test_name:
            context = ErrorContext(action=action, test_name=test_name)

        super().__init__(message, context=context)

    def __str__(self) -> str:
        """String representation."""
        message = self.message
        if self.action:
            message += f' (action "{self.action}")'

        if self.test_name:
            return f'{self.test_name}: {message}'

        return message


class HostError(ConformError):
    """Error raised by the runtime support layer of generated programs.

    This exception indicates that the session host could not be located,
    created or driven.
    """


class SetupError(HostError):
    """Error raised when environment provisioning fails.

    Provisioning failures are fatal to the whole run: no aggregate report
    is possible without a live, prepared session.
    """
