"""LSF command-line package.

Runs LSF command-line tools and decodes their tabular output into raw,
validated record types with minimal processing. Business logic and metric
transformations are handled by collector modules.

Exports:
    CommandRunner: Runs LSF executables inside a validated environment.
    LsfEnvironment: LSF installation directories.
    decoder: Module decoding tabular command output.
    types: Module containing Pydantic models for command rows.
"""

from . import decoder, types
from .runner import CommandRunner, LsfEnvironment

__all__ = [
    "CommandRunner",
    "LsfEnvironment",
    "decoder",
    "types",
]
