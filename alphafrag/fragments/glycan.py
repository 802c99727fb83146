"""Glycan B/Y and diagnostic ions.

Glycans on a peptide fragment themselves: the broken off part forms an
oxonium (B) ion, the peptide with what is left of the glycan forms a Y ion.

- Composition known only: every sub-composition within the model's size range
  gives one B ion and, against every full formula, one Y ion
- Structure known: every set of bond breaks gives B ions (per node) and Y
  ions (from the root)
- Every monosaccharide gives its diagnostic ions, with the model's
  monosaccharide specific losses

Compositions with negative or too large counts give no fragments at all.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..chemistry.charge import CachedCharge
from ..chemistry.multi import Multi
from ..glycan.monosaccharide import (
    Composition,
    MonoSaccharide,
    composition_formula,
    composition_left_over,
    composition_options,
    format_composition,
    is_valid_composition,
)
from ..glycan.structure import BreakKind, GlycanStructure
from ..sequence.aminoacid import AminoAcid
from ..sequence.modification import GlycanComposition, GlycanStructureModification, Modification
from ..sequence.placement import SequencePosition
from .fragment import (
    Fragment,
    FragmentKind,
    FragmentType,
    GlycanCompositionDiagnostic,
    GlycanDiagnostic,
)

logger = logging.getLogger(__name__)

Attachment = Optional[Tuple[AminoAcid, SequencePosition]]


def _diagnostic_ions(sugar: MonoSaccharide, position, add_base: bool, glycan_model, ion_index, index) -> List[Fragment]:
    base = Fragment(
        sugar.formula(), 0, FragmentType(FragmentKind.diagnostic, diagnostic=position), ion_index, index
    )
    output = [base.with_neutral_loss(l) for l in glycan_model.diagnostic_losses(sugar)]
    if add_base:
        output.append(base)
    return output


# =============================================================================
# Compositions
# =============================================================================

def composition_fragments(
    composition: Composition,
    model,
    peptidoform_ion_index: int,
    peptidoform_index: int,
    charge_carriers: CachedCharge,
    full_formula: Multi,
    attachment: Attachment = None,
) -> List[Fragment]:
    """B, Y and diagnostic ions of a glycan known by composition only."""
    if not is_valid_composition(composition):
        logger.warning(
            f"Invalid glycan composition {format_composition(composition)}, no glycan fragments generated"
        )
        return []
    glycan = model.glycan
    oxonium = charge_carriers.range(glycan.oxonium_charge_range)
    other = charge_carriers.range(glycan.other_charge_range)
    options = composition_options(composition, glycan.compositional_range)
    logger.debug(f"{len(options)} sub-compositions for {format_composition(composition)}")

    fragments = []
    for option in options:
        option_formula = composition_formula(option)
        b_ion = Fragment(
            option_formula, 0,
            FragmentType(FragmentKind.BComposition, composition=option, attachment=attachment),
            peptidoform_ion_index, peptidoform_index,
        )
        for charged in b_ion.with_charges(oxonium):
            fragments.extend(charged.with_neutral_losses(glycan.neutral_losses))
        left_over = composition_left_over(composition, option)
        for full in full_formula:
            y_ion = Fragment(
                full - option_formula, 0,
                FragmentType(FragmentKind.YComposition, composition=left_over, attachment=attachment),
                peptidoform_ion_index, peptidoform_index,
            )
            for charged in y_ion.with_charges(other):
                fragments.extend(charged.with_neutral_losses(glycan.neutral_losses))

    for sugar, _ in composition:
        position = GlycanCompositionDiagnostic(sugar, attachment)
        for diagnostic in _diagnostic_ions(sugar, position, False, glycan, peptidoform_ion_index, peptidoform_index):
            fragments.extend(diagnostic.with_charges(oxonium))
    return fragments


# =============================================================================
# Structures
# =============================================================================

def structure_fragments(
    structure: GlycanStructure,
    model,
    peptidoform_ion_index: int,
    peptidoform_index: int,
    charge_carriers: CachedCharge,
    full_formula: Multi,
    attachment: Attachment = None,
) -> List[Fragment]:
    """B, Y and diagnostic ions of a glycan with a known structure."""
    glycan = model.glycan
    if not glycan.allow_structural:
        return []
    oxonium = charge_carriers.range(glycan.oxonium_charge_range)
    other = charge_carriers.range(glycan.other_charge_range)
    positions = structure.positions()

    fragments = []
    # B ions: everything that can break off below every node
    for node in range(len(structure.sugars)):
        b_position = structure.position(node, attachment, outer=True, positions=positions)
        for kept, breaks, _ in structure.internal_break_points(node, 0, attachment):
            if kept.is_empty():
                continue
            ion = FragmentType(
                FragmentKind.B,
                position=b_position,
                breakages=tuple(b.position for b in breaks if b.kind is BreakKind.Y),
                ends=tuple(b.position for b in breaks if b.kind is BreakKind.END),
            )
            fragment = Fragment(kept, 0, ion, peptidoform_ion_index, peptidoform_index)
            for charged in fragment.with_charges(oxonium):
                fragments.extend(charged.with_neutral_losses(glycan.neutral_losses))

    # Y ions: the peptide with what stays of the glycan after breaking from the root
    glycan_formula = structure.formula()
    for kept, breaks, _ in structure.internal_break_points(0, 0, attachment):
        if all(b.kind is BreakKind.END for b in breaks):
            continue
        ion = FragmentType(
            FragmentKind.Y, breakages=tuple(b.position for b in breaks if b.kind is not BreakKind.END)
        )
        for full in full_formula:
            fragment = Fragment(full - glycan_formula + kept, 0, ion, peptidoform_ion_index, peptidoform_index)
            for charged in fragment.with_charges(other):
                fragments.extend(charged.with_neutral_losses(glycan.neutral_losses))

    for node, sugar in enumerate(structure.sugars):
        position = GlycanDiagnostic(structure.position(node, attachment, positions=positions), sugar)
        for diagnostic in _diagnostic_ions(sugar, position, True, glycan, peptidoform_ion_index, peptidoform_index):
            fragments.extend(diagnostic.with_charges(oxonium))
    return fragments


# =============================================================================
# Modifications
# =============================================================================

def simple_modification_fragments(
    modification,
    model,
    peptidoform_ion_index: int,
    peptidoform_index: int,
    charge_carriers: CachedCharge,
    full_formula: Multi,
    attachment: Attachment = None,
) -> List[Fragment]:
    """Own fragments of a modification; only glycans have any."""
    if isinstance(modification, GlycanStructureModification):
        return structure_fragments(
            modification.structure, model, peptidoform_ion_index, peptidoform_index,
            charge_carriers, full_formula, attachment,
        )
    if isinstance(modification, GlycanComposition):
        return composition_fragments(
            modification.composition, model, peptidoform_ion_index, peptidoform_index,
            charge_carriers, full_formula, attachment,
        )
    return []


def modification_fragments(
    modification: Modification,
    model,
    peptidoform_ion_index: int,
    peptidoform_index: int,
    charge_carriers: CachedCharge,
    full_formula: Multi,
    attachment: Attachment = None,
) -> List[Fragment]:
    """Own fragments of a placed modification; cross-links have none."""
    if modification.is_cross_link:
        return []
    return simple_modification_fragments(
        modification.simple(), model, peptidoform_ion_index, peptidoform_index,
        charge_carriers, full_formula, attachment,
    )
