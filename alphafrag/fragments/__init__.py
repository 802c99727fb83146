"""Theoretical fragment generation for (glyco)peptidoforms.

Backbone a/b/c/x/y/z ions, satellite d/v/w and immonium ions, the
precursor, modification diagnostic ions and glycan B/Y ions, generated from
exact formulas according to a :class:`FragmentationModel`.
"""

from .fragment import (
    KIND_CODES,
    DiagnosticPosition,
    Fragment,
    FragmentKind,
    FragmentType,
    GlycanCompositionDiagnostic,
    GlycanDiagnostic,
    LabileDiagnostic,
    PeptideDiagnostic,
    PeptidePosition,
    fragments_to_arrays,
)
from .model import (
    FragmentationModel,
    GlycanModel,
    Location,
    PossibleIons,
    PossibleSeries,
    PrecursorSettings,
    PrimaryIonSeries,
    SatelliteIonSeries,
    SatelliteLocation,
    get_all_sidechain_losses,
)
from .glycan import composition_fragments, modification_fragments, structure_fragments
from .generator import generate_fragments_batch, generate_theoretical_fragments, peptidoform_fragments

__all__ = [
    'KIND_CODES',
    'DiagnosticPosition',
    'Fragment',
    'FragmentKind',
    'FragmentType',
    'GlycanCompositionDiagnostic',
    'GlycanDiagnostic',
    'LabileDiagnostic',
    'PeptideDiagnostic',
    'PeptidePosition',
    'fragments_to_arrays',
    'FragmentationModel',
    'GlycanModel',
    'Location',
    'PossibleIons',
    'PossibleSeries',
    'PrecursorSettings',
    'PrimaryIonSeries',
    'SatelliteIonSeries',
    'SatelliteLocation',
    'get_all_sidechain_losses',
    'composition_fragments',
    'modification_fragments',
    'structure_fragments',
    'generate_fragments_batch',
    'generate_theoretical_fragments',
    'peptidoform_fragments',
]
