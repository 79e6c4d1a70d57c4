"""Tokenization engine for SOAP multiRef flattening.

This module provides a strict raw tokenizer that converts XML text into
start-element, end-element and character-data tokens without resolving
namespaces, so that documents can be re-serialized with their original
prefixes intact.

Key Components:
    XMLTokenizer: Main tokenization class
    Token: Individual XML token with position information
    TokenType: Enumeration of all token types
    QName: Prefix and local part of a name as written
    Attribute: Attribute name with decoded and raw value
"""

from .tokenizer import (
    PREDEFINED_ENTITIES,
    Attribute,
    QName,
    Token,
    TokenPosition,
    TokenType,
    XMLTokenizer,
)

__all__ = [
    "PREDEFINED_ENTITIES",
    "Attribute",
    "QName",
    "Token",
    "TokenPosition",
    "TokenType",
    "XMLTokenizer",
]
