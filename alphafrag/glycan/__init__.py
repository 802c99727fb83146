"""Glycan compositions and structures."""

from .monosaccharide import (
    Composition,
    MonoSaccharide,
    composition_formula,
    composition_left_over,
    composition_options,
    format_composition,
    is_valid_composition,
    parse_composition,
    simplify_composition,
)
from .structure import BreakKind, GlycanBreakPos, GlycanPosition, GlycanStructure

__all__ = [
    'Composition',
    'MonoSaccharide',
    'composition_formula',
    'composition_left_over',
    'composition_options',
    'format_composition',
    'is_valid_composition',
    'parse_composition',
    'simplify_composition',
    'BreakKind',
    'GlycanBreakPos',
    'GlycanPosition',
    'GlycanStructure',
]
