"""Interfaces for parsing JavaScript source code."""

from .esprima_parser import ParseError, ParseResult, hash_source, parse_js

__all__ = ["ParseError", "ParseResult", "hash_source", "parse_js"]
