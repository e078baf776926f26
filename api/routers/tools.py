"""
Tools router — the conversational tool surface over HTTP.

    GET  /tools          list tool names, arguments and widgets
    POST /tools/{name}   JSON body = tool arguments

A rejected tool call is returned as an HTTP error whose status reflects the
rejection kind; the detail carries the same structured error payload.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request

from api.schemas import ToolCallResponse, ToolInfo

router = APIRouter(prefix="/tools", tags=["tools"])

# Rejection kind → HTTP status
ERROR_STATUS: dict[str, int] = {
    "validation":           422,
    "unsupported_corridor": 422,
    "rate_unavailable":     503,
    "not_found":            404,
    "unknown_tool":         404,
}


@router.get("", response_model=list[ToolInfo])
async def list_tools(request: Request) -> list[ToolInfo]:
    tools = request.app.state.tools
    return [ToolInfo(**spec.to_payload()) for spec in tools.specs()]


@router.post("/{name}", response_model=ToolCallResponse)
async def call_tool(
    name: str,
    request: Request,
    args: dict[str, Any] | None = Body(default=None),
) -> ToolCallResponse:
    tools = request.app.state.tools
    result = await tools.call(name, args or {})
    if result.is_error:
        error = result.payload.get("error", {})
        raise HTTPException(
            status_code=ERROR_STATUS.get(error.get("kind"), 400),
            detail={"summary": result.summary, "widget": result.widget, **error},
        )
    return ToolCallResponse(**result.to_payload())
