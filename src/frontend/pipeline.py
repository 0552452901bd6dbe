"""
Front-end integration utilities stitching together parsing and scope analysis.

The `run_frontend` function accepts raw JavaScript source, invokes the parser to
obtain an AST, optionally builds the lexical scope tree, and persists parse
artefacts when requested. A failure while analysing one source is captured on
the result instead of propagating, so batch callers can carry on with the next
source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from analyzer import Scope, ScopeAnalysisError, analyze_scopes
from parser import ParseResult, parse_js

from .cache import ScopeCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrontEndResult:
    """Combined output from the parsing and analysis pipeline."""

    parse: ParseResult
    scopes: Optional[Scope]
    error: Optional[ScopeAnalysisError] = None

    @property
    def has_ast(self) -> bool:
        return self.parse.ast is not None

    @property
    def diagnostics(self):
        """Aggregate diagnostics from parse recovery and scope analysis."""
        diagnostics = list(self.parse.errors)
        if self.error is not None:
            diagnostics.append(self.error)
        return diagnostics


def run_frontend(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    analyze: bool = True,
    source_type: str = "script",
    generated: bool = False,
    cache_dir: Optional[Union[str, Path]] = None,
    cache: Optional[ScopeCache] = None,
) -> FrontEndResult:
    """
    Execute parsing and optional scope analysis for JavaScript input.

    Args:
        source: Raw JavaScript source text.
        source_name: Identifier used in diagnostics, e.g. file path.
        tolerant: Forwarded to parser; when True esprima attempts recovery.
        analyze: Toggle to disable scope analysis for performance/testing.
        source_type: `"script"` or `"module"` to control parsing of import/export.
        generated: Mark the source as bundler/compiler output for the module heuristic.
        cache_dir: Optional directory to write parse artefacts (`None` disables).
        cache: Optional `ScopeCache` consulted before and filled after analysis.

    Returns:
        FrontEndResult containing the parser output and the scope tree or the
        analysis error.
    """
    parse_result = parse_js(
        source,
        source_name=source_name,
        tolerant=tolerant,
        source_type=source_type,
    )

    if cache_dir is not None:
        _persist_parse(cache_dir, parse_result)

    if not analyze or parse_result.ast is None:
        return FrontEndResult(parse=parse_result, scopes=None)

    if cache is not None:
        cached = cache.get(
            source_name,
            parse_result.source_hash,
            source_type=source_type,
            generated=generated,
        )
        if cached is not None:
            return FrontEndResult(parse=parse_result, scopes=cached)

    try:
        scopes = analyze_scopes(parse_result.ast, source_id=source_name, generated=generated)
    except ScopeAnalysisError as exc:
        logger.warning("Scope analysis failed for %s: %s", source_name, exc)
        return FrontEndResult(parse=parse_result, scopes=None, error=exc)

    if cache is not None:
        cache.put(
            source_name,
            parse_result.source_hash,
            scopes,
            source_type=source_type,
            generated=generated,
        )
    return FrontEndResult(parse=parse_result, scopes=scopes)


def _persist_parse(cache_dir: Union[str, Path], parse_result: ParseResult) -> None:
    """Store the raw parse output to disk for reuse in subsequent runs."""
    path = Path(cache_dir)
    path.mkdir(parents=True, exist_ok=True)
    cache_file = path / f"{parse_result.source_hash}.json"
    try:
        payload = parse_result.to_json()
    except RecursionError:
        # The json encoder recurses per nesting level.
        logger.warning("AST for %s is too deep to persist; skipping", parse_result.source_name)
        return
    cache_file.write_text(payload, encoding="utf-8")


__all__ = ["FrontEndResult", "run_frontend"]
