"""API routers for parsing engine output and building timelines."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncIterator, Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from lumi.models import Chunk, ParsedResult, TimelineEntry, TimelineResult, TurnSummary
from lumi.parsers.platforms.registry import ENGINES, get_event_translator, parse_to_lumi_result
from lumi.parsers.stream import TurnStream
from lumi.parsers.turn import collect_turn
from lumi.timeline import build_timeline_from_chunks

logger = logging.getLogger("lumi.api")

parse_router = APIRouter(prefix="/api", tags=["parse"])


class ParseRequest(BaseModel):
    engine: str = Field(..., min_length=1)
    output: Any = ""
    stderr: str = ""
    format: Literal["auto", "text", "stream-json"] = "auto"
    durationMs: Optional[int] = None


class ParseResponse(BaseModel):
    lumiResult: ParsedResult
    chunks: list[Chunk] = Field(default_factory=list)
    timelineEntries: list[TimelineEntry] = Field(default_factory=list)
    turnSummary: TurnSummary
    usage: Optional[dict[str, Any]] = None


class TimelineRequest(BaseModel):
    chunks: list[dict[str, Any]] = Field(default_factory=list)
    durationMs: Optional[int] = None


def _sse(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


@parse_router.post("/parse", response_model=ParseResponse, response_model_exclude_none=True)
async def parse_output(req: ParseRequest) -> ParseResponse:
    """Normalize one finished turn's output and roll it into a timeline."""
    lumi_result = parse_to_lumi_result(req.engine, req.output)
    outcome = collect_turn(req.engine, req.output, req.stderr, req.format)
    built = build_timeline_from_chunks(outcome.chunks, {"durationMs": req.durationMs})
    logger.info(
        "Parsed %s output: %d chunk(s), %d entr(ies), status=%s",
        req.engine,
        len(outcome.chunks),
        len(built.timeline),
        built.summary.status,
    )
    return ParseResponse(
        lumiResult=lumi_result,
        chunks=outcome.chunks,
        timelineEntries=built.timeline,
        turnSummary=built.summary,
        usage=outcome.usage,
    )


@parse_router.post("/timeline", response_model=TimelineResult, response_model_exclude_none=True)
async def build_timeline(req: TimelineRequest) -> TimelineResult:
    return build_timeline_from_chunks(req.chunks, {"durationMs": req.durationMs})


async def _stream_events(session: TurnStream, request: Request) -> AsyncIterator[str]:
    started = time.monotonic()
    async for data in request.stream():
        for chunk in session.feed(data):
            yield _sse("chunk", chunk.model_dump(exclude_none=True))
    for chunk in session.finish():
        yield _sse("chunk", chunk.model_dump(exclude_none=True))

    outcome = session.outcome
    built = build_timeline_from_chunks(
        outcome.chunks,
        {"durationMs": int((time.monotonic() - started) * 1000)},
    )
    yield _sse(
        "done",
        {
            "timelineEntries": [entry.model_dump(exclude_none=True) for entry in built.timeline],
            "turnSummary": built.summary.model_dump(exclude_none=True),
            "usage": outcome.usage,
            "droppedLines": session.dropped_lines,
        },
    )


@parse_router.post("/stream/{engine}")
async def stream_output(engine: str, request: Request) -> StreamingResponse:
    """Relay chunks from a raw stream-json request body as server-sent events."""
    if get_event_translator(engine) is None:
        raise HTTPException(status_code=400, detail=f"Unsupported engine: {engine}. Expected one of {list(ENGINES)}")
    session = TurnStream(engine)
    return StreamingResponse(_stream_events(session, request), media_type="text/event-stream")
