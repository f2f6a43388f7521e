"""Registry compiler.

Loads action registries and lowers them into standalone conformance
programs: literal resolution, assertion and unit emission, the coverage
audit and the program driver.
"""

from .coverage import tested_actions, untested_actions, warn_untested
from .driver import ProgramGenerator, execution_order
from .parser import RegistryLoader, RegistryParser
from .resolver import ResolvedArgument, ResolvedCall, ResolvedOptional, pad_optional_literals, resolve
from .writer import CodeWriter, SymbolCounter

__all__ = (
    'CodeWriter',
    'ProgramGenerator',
    'RegistryLoader',
    'RegistryParser',
    'ResolvedArgument',
    'ResolvedCall',
    'ResolvedOptional',
    'SymbolCounter',
    'execution_order',
    'pad_optional_literals',
    'resolve',
    'tested_actions',
    'untested_actions',
    'warn_untested',
)
