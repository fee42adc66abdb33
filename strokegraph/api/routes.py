"""FastAPI route definitions for the StrokeGraph API.

- ``POST /evaluate`` evaluates one node of a posted graph.
- ``GET /glyph/{char}`` returns a single character's baked glyph.
- ``GET /health`` reports liveness and version.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from fastapi import APIRouter, HTTPException, Request, status

from strokegraph import __version__
from strokegraph.core.operations import count_visible_strokes
from strokegraph.engine.executors import PLACEHOLDER_SVG
from strokegraph.errors import InvalidInput, NotFound, ParseFailure
from strokegraph.models.graph import StrokeGraph

router = APIRouter()


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class EvaluateRequest(BaseModel):
    """Payload for ``POST /evaluate``.

    Attributes:
        graph: Nodes and edges to evaluate.
        target: Id of the node whose artifact is wanted.
    """

    graph: StrokeGraph = Field(..., description="Graph to evaluate.")
    target: str = Field(..., description="Id of the node to evaluate.")


class EvaluateResponse(BaseModel):
    """Response from ``POST /evaluate``.

    Attributes:
        target: The evaluated node id.
        available: ``False`` when the node produced no artifact.
        svg: The artifact, or the "N/A" placeholder when unavailable.
        stroke_count: Strokes visible in the artifact.
    """

    target: str
    available: bool
    svg: str = Field(..., description="SVG artifact or placeholder.")
    stroke_count: int = Field(0, description="Number of visible strokes.")


class GlyphResponse(BaseModel):
    """Response from ``GET /glyph/{char}``."""

    char: str
    codepoint: str = Field(..., description="5-digit lowercase hex codepoint.")
    stroke_count: int
    svg: str = Field(..., description="Baked, stroke-indexed SVG.")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@router.post(
    "/evaluate",
    response_model=EvaluateResponse,
    status_code=status.HTTP_200_OK,
    summary="Evaluate a graph node",
    description=(
        "Evaluate the target node of the posted graph, following its "
        "inputs upstream.  Node failures never fail the request: an "
        "unavailable node answers with the placeholder SVG."
    ),
)
async def evaluate(payload: EvaluateRequest, request: Request) -> EvaluateResponse:
    engine = request.app.state.engine
    artifact = await engine.evaluate(payload.graph, payload.target)
    if artifact is None:
        return EvaluateResponse(target=payload.target, available=False, svg=PLACEHOLDER_SVG)
    return EvaluateResponse(
        target=payload.target,
        available=True,
        svg=artifact,
        stroke_count=count_visible_strokes(artifact),
    )


@router.get(
    "/glyph/{char}",
    response_model=GlyphResponse,
    status_code=status.HTTP_200_OK,
    summary="Fetch a baked glyph",
    description="Resolve one character and return its prepared, baked SVG.",
)
async def glyph(char: str, request: Request) -> GlyphResponse:
    """Resolve and bake a single character.

    Raises:
        HTTPException: 400 for anything but one character, 404 when no
            source tier has the glyph, 422 when the source is not XML.
    """
    context = request.app.state.engine.primary.context
    try:
        artifact = await context.source.resolve(char)
        prepared = context.ops.prepare_glyph(artifact.svg, context.stroke_color, context.stroke_width)
        baked = context.ops.bake(prepared)
    except InvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except NotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ParseFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Glyph source is not valid XML: {exc}",
        )

    return GlyphResponse(
        char=artifact.char,
        codepoint=artifact.codepoint,
        stroke_count=baked.count,
        svg=baked.svg,
    )


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)
