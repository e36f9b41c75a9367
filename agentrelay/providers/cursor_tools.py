"""cursor-agent tool call shapes.

A cursor-agent ``tool_call`` event carries exactly one key naming the tool
(``readToolCall``, ``shellToolCall``, ...) whose value holds ``args`` and,
once completed, ``result.success`` or ``result.rejected``. Each entry in
``CURSOR_TOOL_HANDLERS`` maps one such key to a canonical tool name, an
input mapping and result formatters.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Characters of an unrecognised tool_call payload included in the warning
_UNKNOWN_SHAPE_PREVIEW_CHARS = 500


@dataclass(frozen=True)
class CursorToolHandler:
    name: str
    map_input: Callable[[dict[str, Any]], dict[str, Any]]
    format_result: Callable[[dict[str, Any], dict[str, Any]], str] | None = None
    format_rejected: Callable[[str], str] | None = None


def _format_shell_result(result: dict[str, Any], args: dict[str, Any]) -> str:
    content = f"Exit code: {result.get('exitCode')}"
    if result.get("stdout"):
        content += f"\n{result['stdout']}"
    if result.get("stderr"):
        content += f"\nStderr: {result['stderr']}"
    return content


def _format_rejected(reason: str) -> str:
    return f"Rejected: {reason}"


def _format_sem_search_result(result: dict[str, Any], args: dict[str, Any]) -> str:
    count = len(result.get("codeResults") or [])
    if count > 0:
        return f"Found {count} semantic search result(s)"
    return result.get("results") or "No results found"


CURSOR_TOOL_HANDLERS: dict[str, CursorToolHandler] = {
    "readToolCall": CursorToolHandler(
        name="Read",
        map_input=lambda args: {"file_path": args.get("path")},
        format_result=lambda result, args: result.get("content") or "",
    ),
    "writeToolCall": CursorToolHandler(
        name="Write",
        map_input=lambda args: {"file_path": args.get("path"), "content": args.get("fileText")},
        format_result=lambda result, args: f"Wrote {result.get('linesCreated')} lines to {result.get('path')}",
    ),
    "editToolCall": CursorToolHandler(
        name="Edit",
        map_input=lambda args: {
            "file_path": args.get("path"),
            "old_string": args.get("oldText"),
            "new_string": args.get("newText"),
        },
        format_result=lambda result, args: f"Edited file: {args.get('path')}",
    ),
    "shellToolCall": CursorToolHandler(
        name="Bash",
        map_input=lambda args: {"command": args.get("command")},
        format_result=_format_shell_result,
        format_rejected=_format_rejected,
    ),
    "deleteToolCall": CursorToolHandler(
        name="Delete",
        map_input=lambda args: {"file_path": args.get("path")},
        format_result=lambda result, args: f"Deleted: {args.get('path')}",
        format_rejected=lambda reason: f"Delete rejected: {reason}",
    ),
    "grepToolCall": CursorToolHandler(
        name="Grep",
        map_input=lambda args: {"pattern": args.get("pattern"), "path": args.get("path")},
        format_result=lambda result, args: f"Found {result.get('matchedLines')} matching lines",
    ),
    "lsToolCall": CursorToolHandler(
        name="Ls",
        map_input=lambda args: {"path": args.get("path")},
        format_result=lambda result, args: (
            f"Found {result.get('childrenFiles')} files, {result.get('childrenDirs')} directories"
        ),
    ),
    "globToolCall": CursorToolHandler(
        name="Glob",
        map_input=lambda args: {"pattern": args.get("globPattern"), "path": args.get("targetDirectory")},
        format_result=lambda result, args: f"Found {result.get('totalFiles')} matching files",
    ),
    "semSearchToolCall": CursorToolHandler(
        name="SemanticSearch",
        map_input=lambda args: {
            "query": args.get("query"),
            "targetDirectories": args.get("targetDirectories"),
            "explanation": args.get("explanation"),
        },
        format_result=_format_sem_search_result,
    ),
    "readLintsToolCall": CursorToolHandler(
        name="ReadLints",
        map_input=lambda args: {"paths": args.get("paths")},
        format_result=lambda result, args: (
            f"Found {result.get('totalDiagnostics')} diagnostic(s) in {result.get('totalFiles')} file(s)"
        ),
    ),
}


@dataclass
class ParsedToolCall:
    name: str
    input: Any


class PartialToolCall(Exception):
    """The tool key is present but its ``args`` have not streamed in yet."""


def parse_tool_call(tool_call: dict[str, Any]) -> ParsedToolCall | None:
    """Identify the tool and map its input.

    Returns None for a shape no handler recognises.

    Raises:
        PartialToolCall: If a known tool key has no args yet.
    """
    for key, handler in CURSOR_TOOL_HANDLERS.items():
        tool_data = tool_call.get(key)
        if tool_data:
            args = tool_data.get("args")
            if not args:
                raise PartialToolCall(key)
            return ParsedToolCall(name=handler.name, input=handler.map_input(args))

    function = tool_call.get("function")
    if function:
        raw_arguments = function.get("arguments") or "{}"
        try:
            tool_input = json.loads(raw_arguments)
        except (json.JSONDecodeError, TypeError):
            tool_input = {"raw": raw_arguments}
        return ParsedToolCall(name=function.get("name", ""), input=tool_input)

    logger.warning(
        f"[UNHANDLED TOOL_CALL] Unknown tool call structure. Keys: {', '.join(tool_call)}. "
        f"Full tool_call: {json.dumps(tool_call)[:_UNKNOWN_SHAPE_PREVIEW_CHARS]}"
    )
    return None


def format_tool_result(tool_call: dict[str, Any]) -> str:
    """Result text of a completed tool call ('' when there is none)."""
    for key, handler in CURSOR_TOOL_HANDLERS.items():
        tool_data = tool_call.get(key)
        if not tool_data or not tool_data.get("result"):
            continue
        result = tool_data["result"]
        args = tool_data.get("args") or {}
        if result.get("success") and handler.format_result:
            return handler.format_result(result["success"], args)
        rejected = result.get("rejected")
        if rejected:
            format_rejected = handler.format_rejected or _format_rejected
            return format_rejected(rejected.get("reason", ""))
    return ""


__all__ = [
    "CursorToolHandler",
    "CURSOR_TOOL_HANDLERS",
    "ParsedToolCall",
    "PartialToolCall",
    "parse_tool_call",
    "format_tool_result",
]
