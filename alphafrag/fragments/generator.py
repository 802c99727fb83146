"""Theoretical fragment generation.

For every chain of a peptidoform ion the engine walks all backbone
positions. At each position it builds the N-terminal and C-terminal parts
(every legal formula, ambiguous modifications placed in all patterns) and
emits the ion series the model allows there. Split points where a
cross-link is reachable from both sides are skipped, the cut would not
separate the molecule.

After the backbone ions come the precursor (with its loss sets), the
fragments of modifications (glycan B/Y ions), modification diagnostic
ions and the fragments of labile glycans.

Key Features
------------
- a/b/c/x/y/z, satellite d/v/w and immonium ions per position
- Charge carrier options memoised per chain with ``CachedCharge``
- Global isotope labels applied to every backbone fragment
- ``generate_fragments_batch`` to spread many peptidoforms over processes

Examples
--------
>>> from alphafrag.sequence import parse_peptidoform
>>> from alphafrag.fragments.model import FragmentationModel
>>> fragments = generate_theoretical_fragments(parse_peptidoform("PEPTIDE"), 1, FragmentationModel.cid())
>>> "y3" in {str(f.ion) for f in fragments}
True
"""

from __future__ import annotations

import logging
from multiprocessing import Pool
from typing import List, Optional, Sequence, Set, Tuple, Union

from ..chemistry.charge import CachedCharge, MolecularCharge
from ..chemistry.formula import MolecularFormula, formula
from ..chemistry.multi import Multi
from ..sequence.aminoacid import BACKBONE, AminoAcid
from ..sequence.modification import CrossLinkName, GlycanComposition, GlycanStructureModification
from ..sequence.peptidoform import CompoundPeptidoformIon, Peptidoform, PeptidoformIon
from ..sequence.placement import SequencePosition
from .fragment import (
    Fragment,
    FragmentKind,
    FragmentType,
    LabileDiagnostic,
    PeptideDiagnostic,
    PeptidePosition,
)
from .glycan import modification_fragments, simple_modification_fragments
from .model import FragmentationModel, PossibleIons, get_all_sidechain_losses

logger = logging.getLogger(__name__)

CHO = formula("CHO")
CO = formula("CO")
H = formula("H")
H2N = formula("H2N")

Target = Union[Peptidoform, PeptidoformIon, CompoundPeptidoformIon]


def _identity() -> Multi:
    return Multi.of(MolecularFormula())


# =============================================================================
# Per residue
# =============================================================================

def _residue_fragments(
    aminoacid: AminoAcid,
    index: int,
    length: int,
    n_term: Tuple[Multi, List[list]],
    c_term: Tuple[Multi, List[list]],
    modifications: Multi,
    charge_carriers: CachedCharge,
    ions: PossibleIons,
    peptidoform_ion_index: int,
    peptidoform_index: int,
    allow_n: bool,
    allow_c: bool,
) -> List[Fragment]:
    """All ions formed by cleaving next to one residue.

    ``n_term`` and ``c_term`` hold the formulas of the rest of the chain on
    either side and the modification loss sets in range.
    """
    position = SequencePosition.at(index)
    n_position = PeptidePosition.n(position, length)
    c_position = PeptidePosition.c(position, length)
    residue = aminoacid.formulas(index, peptidoform_index, peptidoform_ion_index)
    modified = residue + modifications
    n_formulas, n_losses = n_term
    c_formulas, c_losses = c_term

    def series(mass, kind, at, settings, termini, losses, **extra):
        return Fragment.generate_series(
            mass, peptidoform_ion_index, peptidoform_index,
            FragmentType(kind, position=at, aminoacid=aminoacid, **extra),
            termini, losses, charge_carriers, settings,
        )

    output = []
    if allow_n:
        for kind, settings, mass in (
            (FragmentKind.a, ions.a, modified - CHO),
            (FragmentKind.b, ions.b, modified - H),
            (FragmentKind.c, ions.c, modified + H2N),
        ):
            if settings is not None:
                output.extend(series(mass, kind, n_position, settings, n_formulas, n_losses))
        satellites, settings = ions.d
        for satellite, distance in satellites:
            for label, group in satellite.satellite_ion_fragments():
                output.extend(series(
                    modified + CHO - group, FragmentKind.d, n_position, settings, n_formulas, n_losses,
                    distance=distance, label=label,
                ))

    if allow_c:
        satellites, settings = ions.v
        for satellite, distance in satellites:
            mass = residue - satellite.formulas(index + distance, peptidoform_index, peptidoform_ion_index)
            output.extend(series(
                mass + BACKBONE, FragmentKind.v, c_position, settings, c_formulas, c_losses, distance=distance,
            ))
        satellites, settings = ions.w
        for satellite, distance in satellites:
            for label, group in satellite.satellite_ion_fragments():
                output.extend(series(
                    modified + H2N - group, FragmentKind.w, c_position, settings, c_formulas, c_losses,
                    distance=distance, label=label,
                ))
        for kind, settings, mass in (
            (FragmentKind.x, ions.x, modified + CO - H),
            (FragmentKind.y, ions.y, modified + H),
            (FragmentKind.z, ions.z, modified - H2N),
        ):
            if settings is not None:
                output.extend(series(mass, kind, c_position, settings, c_formulas, c_losses))

    if allow_n and allow_c and ions.immonium is not None:
        charge_range, rules = ions.immonium
        losses = [[l] for aminoacids, rule in rules if aminoacid in aminoacids for l in rule]
        output.extend(Fragment.generate_all(
            modified - CO, peptidoform_ion_index, peptidoform_index,
            FragmentType(FragmentKind.immonium, position=n_position, aminoacid=aminoacid),
            _identity(), losses, charge_carriers, charge_range,
        ))
    return output


# =============================================================================
# Per chain
# =============================================================================

def _backbone_fragments(
    peptidoform: Peptidoform,
    index: int,
    peptidoform_index: int,
    peptidoform_ion_index: int,
    all_peptides: Sequence[Peptidoform],
    model: FragmentationModel,
    charge_carriers: CachedCharge,
) -> List[Fragment]:
    length = len(peptidoform)
    allow = model.allow_cross_link_cleavage
    glycan = model.glycan
    cross_links: List[CrossLinkName] = []
    visited = [peptidoform_index]
    context = (all_peptides, visited, cross_links, allow, peptidoform_index, peptidoform_ion_index, glycan)

    n_base, n_term_seen = peptidoform.get_n_term_mass(*context)
    n_formulas, n_seen, n_losses = peptidoform.all_masses(0, index + 1, 0, index, n_base, *context)
    c_base, c_term_seen = peptidoform.get_c_term_mass(*context)
    c_formulas, c_seen, c_losses = peptidoform.all_masses(index, length, index + 1, length, c_base, *context)
    n_seen = n_seen | n_term_seen
    c_seen = c_seen | c_term_seen
    if n_seen & c_seen:
        logger.debug(f"Skipping position {index} of {peptidoform}, cross-links reachable from both sides")
        return []

    element = peptidoform.sequence[index]
    modifications = _identity()
    modification_seen: Set[CrossLinkName] = set()
    for modification in element.modifications:
        if modification.is_ambiguous:
            continue
        options, passed = modification.formula_inner(
            all_peptides, visited, cross_links, allow, SequencePosition.at(index),
            peptidoform_index, peptidoform_ion_index, glycan, element.aminoacid,
        )
        modifications = modifications + options
        modification_seen |= passed

    if not model.modification_specific_neutral_losses:
        n_losses, c_losses = [], []
    position = PeptidePosition.n(SequencePosition.at(index), length)
    return _residue_fragments(
        element.aminoacid,
        index,
        length,
        (n_formulas, n_losses),
        (c_formulas, c_losses),
        modifications,
        charge_carriers,
        model.ions(position, peptidoform),
        peptidoform_ion_index,
        peptidoform_index,
        # A cut is only allowed on a side no cross-link from this residue leads back to
        allow_n=not (c_seen & modification_seen),
        allow_c=not (n_seen & modification_seen),
    )


def _precursor_fragments(
    peptidoform: Peptidoform,
    peptidoform_index: int,
    peptidoform_ion_index: int,
    all_peptides: Sequence[Peptidoform],
    model: FragmentationModel,
    charge_carriers: CachedCharge,
) -> List[Fragment]:
    precursor = model.precursor
    full, _ = peptidoform.formulas_inner(
        peptidoform_index, peptidoform_ion_index, all_peptides, [], [],
        model.allow_cross_link_cleavage, model.glycan,
    )
    losses = []
    if model.modification_specific_neutral_losses:
        losses.extend(
            [l] for l, _, _ in peptidoform.potential_neutral_losses(0, None, all_peptides, peptidoform_index, [])
        )
    present = {element.aminoacid for element in peptidoform.sequence}
    for aminoacids, rule in precursor.amino_acid_neutral_losses:
        if any(aminoacid in present for aminoacid in aminoacids):
            losses.extend([l] for l in rule)
    losses.extend(get_all_sidechain_losses(peptidoform.sequence, precursor.amino_acid_side_chain_losses))
    losses.extend([l] for l in precursor.neutral_losses)
    return Fragment.generate_all(
        full, peptidoform_ion_index, peptidoform_index, FragmentType(FragmentKind.precursor),
        _identity(), losses, charge_carriers, precursor.charge_range,
    )


def _diagnostic_fragments(
    peptidoform: Peptidoform,
    peptidoform_index: int,
    peptidoform_ion_index: int,
    model: FragmentationModel,
    charge_carriers: CachedCharge,
) -> List[Fragment]:
    charge_range = model.modification_specific_diagnostic_ions
    length = len(peptidoform)
    diagnostics = [
        (ion, PeptideDiagnostic(PeptidePosition.n(position, length), aminoacid))
        for ion, position, aminoacid in peptidoform.diagnostic_ions()
    ]
    diagnostics.extend((ion, LabileDiagnostic(modification)) for ion, modification in peptidoform.labile_diagnostic_ions())
    output = []
    for ion, diagnostic in diagnostics:
        fragment = Fragment(
            ion.formula, 0, FragmentType(FragmentKind.diagnostic, diagnostic=diagnostic),
            peptidoform_ion_index, peptidoform_index,
        )
        output.extend(fragment.with_charge_range(charge_carriers, charge_range))
    return output


def peptidoform_fragments(
    peptidoform: Peptidoform,
    max_charge: int,
    model: FragmentationModel,
    peptidoform_ion_index: int = 0,
    peptidoform_index: int = 0,
    all_peptides: Optional[Sequence[Peptidoform]] = None,
) -> List[Fragment]:
    """All fragments of one chain.

    Parameters
    ----------
    peptidoform : Peptidoform
        The chain to fragment
    max_charge : int
        Precursor charge, used when the chain has no charge carriers of its own
    model : FragmentationModel
        Which ions to generate
    peptidoform_ion_index, peptidoform_index : int
        Indices stored on every fragment
    all_peptides : list of Peptidoform, optional
        All chains of the ion, needed to follow cross-links. Defaults to
        only this chain.

    Returns
    -------
    list of Fragment
        Unordered; compare fragment sets with ``Fragment.key``
    """
    if all_peptides is None:
        all_peptides = [peptidoform]
    charge_carriers = CachedCharge(peptidoform.charge_carriers or MolecularCharge.proton(max_charge))

    output = []
    for index in range(len(peptidoform)):
        output.extend(_backbone_fragments(
            peptidoform, index, peptidoform_index, peptidoform_ion_index, all_peptides, model, charge_carriers,
        ))
    for fragment in output:
        fragment.formula = peptidoform.apply_global_isotopes(Multi.of(fragment.formula))[0]

    output.extend(_precursor_fragments(
        peptidoform, peptidoform_index, peptidoform_ion_index, all_peptides, model, charge_carriers,
    ))

    # Only one glycan is assumed to fragment at the same time
    full_formula, _ = peptidoform.formulas_inner(
        peptidoform_index, peptidoform_ion_index, all_peptides, [], [],
        model.allow_cross_link_cleavage, model.glycan,
    )
    for index, element in enumerate(peptidoform.sequence):
        attachment = (element.aminoacid, SequencePosition.at(index))
        for modification in element.modifications:
            output.extend(modification_fragments(
                modification, model, peptidoform_ion_index, peptidoform_index,
                charge_carriers, full_formula, attachment,
            ))

    if model.modification_specific_diagnostic_ions is not None:
        output.extend(_diagnostic_fragments(
            peptidoform, peptidoform_index, peptidoform_ion_index, model, charge_carriers,
        ))

    for modification in peptidoform.labile:
        if isinstance(modification, (GlycanComposition, GlycanStructureModification)):
            output.extend(simple_modification_fragments(
                modification, model, peptidoform_ion_index, peptidoform_index,
                charge_carriers, full_formula, None,
            ))
    return output


# =============================================================================
# Public API
# =============================================================================

def generate_theoretical_fragments(target: Target, max_charge: int, model: FragmentationModel) -> List[Fragment]:
    """Theoretical fragments of a peptidoform, peptidoform ion or compound ion.

    Every chain of every ion is fragmented; fragments carry the index of
    their ion and chain.

    Parameters
    ----------
    target : Peptidoform, PeptidoformIon or CompoundPeptidoformIon
        What to fragment
    max_charge : int
        Precursor charge for chains without explicit charge carriers
    model : FragmentationModel
        Which ions to generate

    Returns
    -------
    list of Fragment
    """
    if max_charge < 1:
        raise ValueError(f"Maximal charge has to be at least 1, got {max_charge}")
    if isinstance(target, Peptidoform):
        ions = [PeptidoformIon([target])]
    elif isinstance(target, PeptidoformIon):
        ions = [target]
    else:
        ions = target.peptidoform_ions

    output = []
    for ion_index, ion in enumerate(ions):
        for index, peptidoform in enumerate(ion.peptidoforms):
            output.extend(peptidoform_fragments(
                peptidoform, max_charge, model, ion_index, index, ion.peptidoforms,
            ))
    logger.info(f"Generated {len(output)} fragments for {target} (max charge {max_charge})")
    return output


def _fragments_task(task) -> List[Fragment]:
    target, max_charge, model = task
    return generate_theoretical_fragments(target, max_charge, model)


def generate_fragments_batch(
    targets: Sequence[Target],
    max_charge: int,
    model: FragmentationModel,
    processes: Optional[int] = None,
) -> List[List[Fragment]]:
    """Fragments for many peptidoforms, in input order.

    With ``processes`` > 1 the work is spread over a ``multiprocessing.Pool``;
    every worker builds its own charge carrier caches so the results are
    identical to the sequential loop.
    """
    tasks = [(target, max_charge, model) for target in targets]
    if processes is None or processes <= 1 or len(tasks) < 2:
        return [_fragments_task(task) for task in tasks]
    logger.info(f"Generating fragments for {len(tasks)} peptidoforms on {processes} processes")
    with Pool(processes) as pool:
        return pool.map(_fragments_task, tasks)
