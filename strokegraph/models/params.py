"""Per-kind parameter models parsed from :attr:`GraphNode.data`.

Unknown keys are ignored so the editor may store UI-only state next to
the operation parameters.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class GlyphParams(BaseModel):
    """Parameters of a Glyph node."""

    char: Optional[str] = None

    model_config = {"extra": "ignore"}


class RangeParams(BaseModel):
    """Parameters of a Range node.  Missing bounds mean "whole glyph"."""

    start: Optional[float] = None
    end: Optional[float] = None

    model_config = {"extra": "ignore"}


class TransformParams(BaseModel):
    """Parameters of a Transform node (translate, then scale).

    ``None`` offsets count as 0 and ``None`` or zero scales as 1.
    """

    x: Optional[float] = 0
    y: Optional[float] = 0
    sx: Optional[float] = 1
    sy: Optional[float] = 1

    model_config = {"extra": "ignore"}


class CompositeParams(BaseModel):
    """Parameters of a Composite node.

    The editor's camelCase ``alphaA``/``alphaB`` keys are accepted too;
    a ``None`` alpha means fully opaque.
    """

    alpha_a: Optional[float] = Field(1, validation_alias=AliasChoices("alpha_a", "alphaA"))
    alpha_b: Optional[float] = Field(1, validation_alias=AliasChoices("alpha_b", "alphaB"))
    swap: bool = False

    model_config = {"extra": "ignore"}
