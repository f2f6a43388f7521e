"""YAML registry parser.

This module defines the parser that turns registry sources into a
validated `Registry`. A source is a YAML stream in which every document
declares one action; several sources are concatenated in the order they
are given, so declaration order is document order, then source order.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from yaml import SafeLoader, load_all
from yaml.error import MarkedYAMLError
from yaml.nodes import ScalarNode, SequenceNode

from conformgen.errors import ConformError, RegistryError
from conformgen.schema import Action, Registry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from io import TextIOBase

    from yaml import BaseLoader


def literal_rows_constructor(loader: SafeLoader, node: SequenceNode) -> 'Iterator[list[Any]]':
    """Construct a sequence whose nested sequences are literal rows.

    Lists of lists only occur as invocation sequences, where every plain
    scalar of an inner list is a literal argument. Those scalars keep the
    text they are written with: YAML 1.1 would otherwise read `on` as a
    boolean, `0755` as an octal integer or `NULL` as null.

    Args:
        loader: YAML loader instance.
        node: Sequence node.

    Yields:
        The constructed list, filled after it is yielded so that anchors
        to it resolve.
    """
    data: list[Any] = []
    yield data

    for child in node.value:
        if not isinstance(child, SequenceNode):
            data.append(loader.construct_object(child))
            continue

        data.append([
            item.value
            if isinstance(item, ScalarNode) and item.style is None
            else loader.construct_object(item, deep=True)
            for item in child.value
        ])


class RegistryLoader(SafeLoader):
    """Safe YAML loader keeping invocation literals as written."""


RegistryLoader.add_constructor('tag:yaml.org,2002:seq', literal_rows_constructor)


class RegistryParser:
    """Registry source parser.

    The parser is stateless apart from the YAML loader class it uses;
    by default `RegistryLoader` is used, a safe loader, so registry
    sources can not construct arbitrary Python objects.
    """

    def __init__(self, loader: type['BaseLoader'] = RegistryLoader) -> None:
        """Initialize the registry parser.

        Args:
            loader: YAML loader class used to read sources.
        """
        self.loader = loader

    def parse(self, content: 'TextIOBase | str', *,
              filename: str | None = None) -> tuple[Action, ...]:
        """Parse one YAML stream into validated actions.

        Empty documents are ignored, so sources may start with a document
        separator or carry comment-only documents.

        Args:
            content: YAML content as a string or file-like object.
            filename: Name of the source used in error messages.

        Returns:
            Actions of the stream in document order.

        Raises:
            RegistryError: If YAML parsing or validation fails.
        """
        try:
            documents = list(load_all(content, Loader=self.loader))

        except MarkedYAMLError as base:
            raise RegistryError.from_yaml_error(base, filename=filename) from base

        except ConformError:
            raise

        except Exception as base:
            raise RegistryError('Unexpected error') from base

        actions = []
        for position, document in enumerate(documents):
            if document is None:
                continue

            try:
                actions.append(Action.model_validate(document))

            except ValidationError as base:
                raise RegistryError.from_pydantic_error(
                    base,
                    data=document,
                    filename=filename,
                    document_num=position,
                ) from base

        return tuple(actions)

    def parse_files(self, paths: 'Iterable[Path | str]') -> Registry:
        """Parse registry source files into one registry.

        Args:
            paths: Registry source files, in declaration order.

        Returns:
            The combined, validated registry.

        Raises:
            RegistryError: If a source can not be read, parsed or validated,
                or if the combined registry declares an action twice.
        """
        actions: list[Action] = []
        for item in paths:
            path = Path(item)
            try:
                with path.open('rt', encoding='utf-8') as content:
                    actions.extend(self.parse(content, filename=path.as_posix()))
            except OSError as base:
                raise RegistryError(f'Can not read registry source {path}') from base

        return self.combine(actions)

    def parse_string(self, content: str, *, filename: str | None = None) -> Registry:
        """Parse a single in-memory registry source.

        Args:
            content: YAML content.
            filename: Name of the source used in error messages.

        Returns:
            The validated registry.

        Raises:
            RegistryError: If the source can not be parsed or validated.
        """
        return self.combine(self.parse(content, filename=filename))

    @staticmethod
    def combine(actions: 'Iterable[Action]') -> Registry:
        """Build a registry from already validated actions.

        Raises:
            RegistryError: If an action is declared twice.
        """
        try:
            return Registry(actions=tuple(actions))
        except ValidationError as base:
            message = 'Invalid registry'
            for item in base.errors(include_url=False, include_input=False):
                message = item['msg']
                break
            raise RegistryError(message) from base
