# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""File inspectors for interface and statement files."""

from .base import ClassLocator, DeclarationInspector, read_source
from .classifier import InterfaceClassifier
from .declaration import RegexDeclarationInspector
from .statement import StatementInspector

__all__ = [
    "ClassLocator",
    "DeclarationInspector",
    "InterfaceClassifier",
    "RegexDeclarationInspector",
    "StatementInspector",
    "read_source",
]
