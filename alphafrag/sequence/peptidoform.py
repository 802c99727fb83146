"""Peptidoforms and their formulas.

A :class:`Peptidoform` is one chain: residues (:class:`SequenceElement`)
with their modifications, terminal modifications, labile modifications,
global isotope labels and optional charge carriers. Chains joined by
cross-links form a :class:`PeptidoformIon`; co-isolated ions form a
:class:`CompoundPeptidoformIon`.

Formulas are always :class:`~alphafrag.chemistry.multi.Multi` values since
ambiguous residues, modifications of unknown position and cleavable
cross-links each give more than one legal total. Every formula walk also
reports the cross-links it passed, which the fragment engine uses to drop
split points that would cut through a closed loop.

Ambiguous modifications are placed by one of two policies:

- all: on every candidate position at once (formula of a single residue)
- greedy: on the first candidate position not used yet (whole chain
  formulas, visited in sequence order)

Key Features
------------
- Terminal masses, stretch formulas and ambiguous placement patterns
- Neutral losses and diagnostic ions collected from modifications
- Cross-link walks over all chains of an ion, each link applied once
- Unknown position modifications placed on all positions their rules allow

Examples
--------
>>> from alphafrag.sequence.proforma import parse_peptidoform
>>> peptide = parse_peptidoform("PEPTIDE")
>>> round(peptide.formulas()[0].monoisotopic_mass(), 4)
799.3599
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence, Set, Tuple

from ..chemistry.elements import Element
from ..chemistry.formula import MolecularFormula, formula
from ..chemistry.labels import ModificationLabel
from ..chemistry.multi import Multi
from ..chemistry.charge import MolecularCharge
from ..chemistry.neutral_loss import DiagnosticIon, NeutralLoss
from ..errors import PlacementWarning
from .aminoacid import AminoAcid
from .modification import (
    Ambiguous,
    CrossLink,
    CrossLinkName,
    CrossLinkSide,
    DatabaseModification,
    FormulaModification,
    GlycanComposition,
    GlycanPeptideFragment,
    GlycanStructureModification,
    LinkSide,
    LinkerModification,
    MassModification,
    Modification,
    Simple,
    SimpleModification,
)
from .placement import SequencePosition

logger = logging.getLogger(__name__)

N_TERMINUS = formula("H")
C_TERMINUS = formula("HO")


def _identity() -> Multi:
    return Multi.of(MolecularFormula())


def _peptide_fragment(glycan_model, aminoacid: Optional[AminoAcid]) -> GlycanPeptideFragment:
    if glycan_model is None:
        return GlycanPeptideFragment.FULL
    return glycan_model.peptide_fragment(aminoacid)


def placement_message(modification: SimpleModification, seq, position: SequencePosition) -> str:
    """Human readable reason why ``modification`` cannot go on ``position``."""
    if position.is_n_term:
        where = "the N-terminus"
    elif position.is_c_term:
        where = "the C-terminus"
    else:
        where = f"the side chain of {seq.aminoacid} at index {position.index}"
    allowed = ", ".join(modification.placement_rules())
    return (
        f"Modification {modification} is not allowed on {where}, this modification is only "
        f"allowed at the following locations: {allowed}"
    )


# =============================================================================
# Residues
# =============================================================================

@dataclass
class SequenceElement:
    """One residue with the modifications placed on it.

    Parameters
    ----------
    aminoacid : AminoAcid
        The residue
    modifications : list of Modification
        Simple, ambiguous and cross-link modifications on the side chain
    ambiguous : int, optional
        Group id when the residue is part of an ambiguous stretch ``(?AB)``
    """

    aminoacid: AminoAcid
    modifications: List[Modification] = field(default_factory=list)
    ambiguous: Optional[int] = None

    def formulas_generic(
        self,
        place_ambiguous: Callable[[int], bool],
        all_peptides,
        visited: List[int],
        applied_cross_links: List[CrossLinkName],
        allow_ms_cleavable: bool,
        sequence_index: SequencePosition,
        peptidoform_index: int,
        peptidoform_ion_index: int = 0,
        glycan_model=None,
    ) -> Tuple[Multi, Set[CrossLinkName]]:
        """Residue plus modification formulas, and the cross-links passed.

        Ambiguous modifications are only included when ``place_ambiguous``
        accepts their id.
        """
        modifications = _identity()
        seen: Set[CrossLinkName] = set()
        for modification in self.modifications:
            if modification.is_ambiguous:
                if not place_ambiguous(modification.id):
                    continue
                options = modification.modification.formula_options(
                    sequence_index,
                    peptidoform_index,
                    _peptide_fragment(glycan_model, self.aminoacid),
                    self.aminoacid,
                )
            else:
                options, passed = modification.formula_inner(
                    all_peptides,
                    visited,
                    applied_cross_links,
                    allow_ms_cleavable,
                    sequence_index,
                    peptidoform_index,
                    peptidoform_ion_index,
                    glycan_model,
                    self.aminoacid,
                )
                seen |= passed
            modifications = modifications + options
        residue = self.aminoacid.formulas(sequence_index.index, peptidoform_index, peptidoform_ion_index)
        return residue + modifications, seen

    def formulas_base(self, *args, **kwargs) -> Tuple[Multi, Set[CrossLinkName]]:
        """Formulas without any ambiguous modification."""
        return self.formulas_generic(lambda _: False, *args, **kwargs)

    def formulas_all(self, *args, **kwargs) -> Tuple[Multi, Set[CrossLinkName]]:
        """Formulas with every ambiguous modification that has a candidate here."""
        return self.formulas_generic(lambda _: True, *args, **kwargs)

    def formulas_greedy(self, placed: List[bool], *args, **kwargs) -> Tuple[Multi, Set[CrossLinkName]]:
        """Formulas placing each ambiguous modification on its first free candidate.

        ``placed`` is shared over a walk through the sequence and updated in place.
        """

        def place(id: int) -> bool:
            if placed[id]:
                return False
            placed[id] = True
            return True

        return self.formulas_generic(place, *args, **kwargs)

    def enforce_modification_rules(
        self, position: SequencePosition, peptidoform_index: int = 0
    ) -> List[PlacementWarning]:
        """Rule violations of the modifications on this residue."""
        warnings = []
        for modification in self.modifications:
            if modification.is_cross_link:
                continue
            simple = modification.simple()
            if simple.is_possible(self, position) is None:
                warnings.append(
                    PlacementWarning(placement_message(simple, self, position), peptidoform_index, position)
                )
        return warnings

    def diagnostic_ions(
        self,
        position: SequencePosition,
        n_term: Sequence[Modification] = (),
        c_term: Sequence[Modification] = (),
    ) -> List[DiagnosticIon]:
        """Diagnostic ions of the modifications at ``position``.

        For terminal positions the terminal modifications are used, checked
        against this (first or last) residue.
        """
        if position.is_n_term:
            modifications = n_term
        elif position.is_c_term:
            modifications = c_term
        else:
            modifications = self.modifications
        output = []
        for modification in modifications:
            if isinstance(modification, CrossLink):
                output.extend(modification.side.allowed_rules(modification.linker)[2])
            else:
                output.extend(modification.simple().diagnostic_ions(self, position))
        return output

    def __str__(self) -> str:
        return f"{self.aminoacid}" + "".join(f"[{m}]" for m in self.modifications)


@dataclass
class AmbiguousEntry:
    """Bookkeeping for one modification of unknown position."""

    positions: List[SequencePosition]
    colocalise: bool = False


# =============================================================================
# Global modifications
# =============================================================================

@dataclass(frozen=True)
class FixedGlobal:
    """``<[mod]@rule>``: place a modification wherever its rule allows."""

    modification: SimpleModification
    rules: Tuple = ()


@dataclass(frozen=True)
class IsotopeGlobal:
    """``<13C>``: replace every natural atom of an element by one isotope."""

    element: Element
    isotope: Optional[int] = None


# =============================================================================
# Chains
# =============================================================================

@dataclass
class Peptidoform:
    """One peptide chain with all its modifications."""

    sequence: List[SequenceElement] = field(default_factory=list)
    n_term: List[Modification] = field(default_factory=list)
    c_term: List[Modification] = field(default_factory=list)
    labile: List[SimpleModification] = field(default_factory=list)
    global_isotopes: List[Tuple[Element, Optional[int]]] = field(default_factory=list)
    charge_carriers: Optional[MolecularCharge] = None
    ambiguous_modifications: List[AmbiguousEntry] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.sequence)

    def __getitem__(self, key):
        """Residue at a :class:`SequencePosition` (termini give the end residues) or index."""
        if isinstance(key, SequencePosition):
            if key.is_n_term:
                return self.sequence[0]
            if key.is_c_term:
                return self.sequence[-1]
            return self.sequence[key.index]
        return self.sequence[key]

    def positions(self, start: int = 0, end: Optional[int] = None) -> Iterator[Tuple[SequencePosition, SequenceElement]]:
        """Slots in ``[start, end)``, with the termini when the range reaches them."""
        end = len(self.sequence) if end is None else end
        if start == 0 and self.sequence:
            yield SequencePosition.N_TERM, self.sequence[0]
        for index in range(start, end):
            yield SequencePosition.at(index), self.sequence[index]
        if end == len(self.sequence) and self.sequence:
            yield SequencePosition.C_TERM, self.sequence[-1]

    def _in_range(self, position: SequencePosition, start: int, end: int) -> bool:
        if position.is_n_term:
            return start == 0
        if position.is_c_term:
            return end == len(self.sequence)
        return start <= position.index < end

    def modifications_at(self, position: SequencePosition) -> List[Modification]:
        if position.is_n_term:
            return self.n_term
        if position.is_c_term:
            return self.c_term
        return self.sequence[position.index].modifications

    @property
    def charge(self) -> Optional[int]:
        return None if self.charge_carriers is None else self.charge_carriers.charge()

    def apply_global_isotopes(self, formulas: Multi) -> Multi:
        for element, isotope in self.global_isotopes:
            formulas = formulas.map(lambda f, e=element, i=isotope: f.with_global_isotope(e, i))
        return formulas

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def add_modification(self, position: SequencePosition, modification: Modification):
        self.modifications_at(position).append(modification)

    def add_simple_modification(self, position: SequencePosition, modification: SimpleModification) -> bool:
        """Place ``modification`` if its rules allow it at ``position``."""
        if modification.is_possible(self[position], position) is None:
            return False
        self.add_modification(position, Simple(modification))
        return True

    def add_unknown_position_modification(
        self,
        modification: SimpleModification,
        start: int = 0,
        end: Optional[int] = None,
        group: Optional[str] = None,
        colocalise_placed: bool = False,
        colocalise_unknown: bool = False,
    ) -> bool:
        """Place a modification of unknown position on every slot its rules allow.

        Slots already carrying a fixed modification are skipped unless
        ``colocalise_placed``. Returns False when no slot is left.
        """
        candidates = [
            (position, None)
            for position, seq in self.positions(start, end)
            if modification.is_possible(seq, position) is not None
            and (
                colocalise_placed
                or all(m.is_ambiguous for m in self.modifications_at(position))
            )
        ]
        return self.add_ambiguous_modification(modification, group, candidates, None, colocalise_unknown)

    def add_ambiguous_modification(
        self,
        modification: SimpleModification,
        group: Optional[str],
        positions: Sequence[Tuple[SequencePosition, Optional[float]]],
        preferred: Optional[SequencePosition] = None,
        colocalise: bool = False,
    ) -> bool:
        """Place ``modification`` on one of ``positions`` (with localisation scores).

        A single candidate becomes a plain modification.
        """
        if not positions:
            return False
        if len(positions) == 1:
            self.add_modification(positions[0][0], Simple(modification))
            return True
        id = len(self.ambiguous_modifications)
        group = group if group is not None else f"u{id}"
        for position, score in positions:
            self.add_modification(
                position,
                Ambiguous(id, modification, score, group, preferred == position, colocalise),
            )
        self.ambiguous_modifications.append(
            AmbiguousEntry([position for position, _ in positions], colocalise)
        )
        return True

    def enforce_modification_rules(self, peptidoform_index: int = 0) -> List[PlacementWarning]:
        """Audit every placed modification against its rules; nothing is raised."""
        warnings = []
        for position, seq in self.positions():
            if position.is_terminal:
                for modification in self.modifications_at(position):
                    if modification.is_cross_link:
                        continue
                    simple = modification.simple()
                    if simple.is_possible(seq, position) is None:
                        warnings.append(
                            PlacementWarning(placement_message(simple, seq, position), peptidoform_index, position)
                        )
            else:
                warnings.extend(seq.enforce_modification_rules(position, peptidoform_index))
        for warning in warnings:
            logger.warning(warning.message)
        return warnings

    # -------------------------------------------------------------------------
    # Losses and diagnostic ions
    # -------------------------------------------------------------------------

    def potential_neutral_losses(
        self,
        start: int = 0,
        end: Optional[int] = None,
        all_peptides: Sequence["Peptidoform"] = (),
        peptidoform_index: int = 0,
        ignore: Optional[List[int]] = None,
    ) -> List[Tuple[NeutralLoss, int, SequencePosition]]:
        """Neutral losses of the modifications in ``[start, end)``.

        Cross-links pull in the losses of their linker side and of the whole
        partner chain, every chain at most once.
        """
        ignore = [] if ignore is None else ignore
        ignore.append(peptidoform_index)
        found: List[int] = []
        output = []
        for position, seq in self.positions(start, end):
            for modification in self.modifications_at(position):
                if isinstance(modification, CrossLink):
                    if modification.peptide not in ignore and modification.peptide not in found:
                        found.append(modification.peptide)
                    losses = modification.side.allowed_rules(modification.linker)[0]
                else:
                    simple = modification.simple()
                    losses = simple.neutral_losses(seq, position) if isinstance(simple, DatabaseModification) else []
                output.extend((loss, peptidoform_index, position) for loss in losses)
        for partner in found:
            if partner in ignore:
                continue
            output.extend(
                all_peptides[partner].potential_neutral_losses(0, None, all_peptides, partner, ignore)
            )
        return output

    def diagnostic_ions(self) -> List[Tuple[DiagnosticIon, SequencePosition, AminoAcid]]:
        """Unique (ion, position, residue) triples over the whole chain, termini included."""
        output = []
        for position, seq in self.positions():
            for ion in seq.diagnostic_ions(position, self.n_term, self.c_term):
                entry = (ion, position, seq.aminoacid)
                if entry not in output:
                    output.append(entry)
        return output

    def labile_diagnostic_ions(self) -> List[Tuple[DiagnosticIon, SimpleModification]]:
        output = []
        for modification in self.labile:
            if isinstance(modification, (DatabaseModification, LinkerModification)):
                for specificity in modification.specificities:
                    for ion in specificity.diagnostic_ions:
                        if (ion, modification) not in output:
                            output.append((ion, modification))
        return output

    # -------------------------------------------------------------------------
    # Formulas
    # -------------------------------------------------------------------------

    def _terminal_mass(
        self, position: SequencePosition, terminus: MolecularFormula, all_peptides, visited,
        applied_cross_links, allow_ms_cleavable, peptidoform_index, peptidoform_ion_index, glycan_model,
    ) -> Tuple[Multi, Set[CrossLinkName]]:
        attachment = None
        if self.sequence:
            attachment = self[position].aminoacid
        total = _identity()
        seen: Set[CrossLinkName] = set()
        for modification in self.modifications_at(position):
            if modification.is_ambiguous:
                continue
            options, passed = modification.formula_inner(
                all_peptides,
                visited,
                applied_cross_links,
                allow_ms_cleavable,
                position,
                peptidoform_index,
                peptidoform_ion_index,
                glycan_model,
                attachment,
            )
            total = total + options
            seen |= passed
        return total + terminus, seen

    def get_n_term_mass(self, all_peptides, visited, applied_cross_links, allow_ms_cleavable,
                        peptidoform_index, peptidoform_ion_index=0, glycan_model=None):
        """N-terminal modifications plus H, global isotopes not applied."""
        return self._terminal_mass(
            SequencePosition.N_TERM, N_TERMINUS, all_peptides, visited, applied_cross_links,
            allow_ms_cleavable, peptidoform_index, peptidoform_ion_index, glycan_model,
        )

    def get_c_term_mass(self, all_peptides, visited, applied_cross_links, allow_ms_cleavable,
                        peptidoform_index, peptidoform_ion_index=0, glycan_model=None):
        """C-terminal modifications plus OH, global isotopes not applied."""
        return self._terminal_mass(
            SequencePosition.C_TERM, C_TERMINUS, all_peptides, visited, applied_cross_links,
            allow_ms_cleavable, peptidoform_index, peptidoform_ion_index, glycan_model,
        )

    def ambiguous_patterns(
        self,
        start: int,
        end: int,
        aa_start: int,
        aa_end: int,
        base: Multi,
        all_peptides,
        visited: List[int],
        applied_cross_links: List[CrossLinkName],
        allow_ms_cleavable: bool,
        peptidoform_index: int,
        peptidoform_ion_index: int = 0,
        glycan_model=None,
    ) -> Tuple[Multi, Set[CrossLinkName]]:
        """All formulas of a stretch for every placement of the ambiguous modifications.

        Residues ``[aa_start, aa_end)`` are summed onto ``base`` without any
        ambiguous modification. Then every combination of ambiguous
        placements inside ``[start, end)`` is added; a modification that may
        also sit outside the range can be left out. Two modifications only
        share a slot when the later one colocalises.
        """
        formulas = base
        seen: Set[CrossLinkName] = set()
        for index in range(aa_start, aa_end):
            options, passed = self.sequence[index].formulas_base(
                all_peptides,
                visited,
                applied_cross_links,
                allow_ms_cleavable,
                SequencePosition.at(index),
                peptidoform_index,
                peptidoform_ion_index,
                glycan_model,
            )
            formulas = formulas + options
            seen |= passed

        combinations: List[List[Tuple[int, SequencePosition]]] = [[]]
        for id, entry in enumerate(self.ambiguous_modifications):
            in_range = [p for p in entry.positions if self._in_range(p, start, end)]
            if not in_range:
                continue
            options = [
                path + [(id, position)]
                for position in in_range
                for path in combinations
                if entry.colocalise or all(used != position for _, used in path)
            ]
            if len(in_range) < len(entry.positions):
                options.extend(combinations)
            combinations = options

        patterns = Multi()
        for combination in combinations:
            pattern = _identity()
            for id, position in combination:
                pattern = pattern + self._ambiguous_formula(
                    id, position, peptidoform_index, peptidoform_ion_index, glycan_model
                )
            patterns = patterns.extend(pattern)
        return formulas + patterns, seen

    def _ambiguous_formula(self, id, position, peptidoform_index, peptidoform_ion_index, glycan_model) -> Multi:
        aminoacid = self[position].aminoacid
        label = ModificationLabel(id, position, peptidoform_index, peptidoform_ion_index)
        for modification in self.modifications_at(position):
            if isinstance(modification, Ambiguous) and modification.id == id:
                return modification.modification.formula_options(
                    position, peptidoform_index, _peptide_fragment(glycan_model, aminoacid), aminoacid
                ).map(lambda f: f.with_label(label))
        return _identity()

    def all_masses(
        self,
        start: int,
        end: int,
        aa_start: int,
        aa_end: int,
        base: Multi,
        all_peptides,
        visited: List[int],
        applied_cross_links: List[CrossLinkName],
        allow_ms_cleavable: bool,
        peptidoform_index: int,
        peptidoform_ion_index: int = 0,
        glycan_model=None,
    ) -> Tuple[Multi, Set[CrossLinkName], List[List[NeutralLoss]]]:
        """Formulas of a stretch, the cross-links passed, and the modification losses in range."""
        formulas, seen = self.ambiguous_patterns(
            start, end, aa_start, aa_end, base, all_peptides, visited, applied_cross_links,
            allow_ms_cleavable, peptidoform_index, peptidoform_ion_index, glycan_model,
        )
        losses = [
            [loss]
            for loss, _, _ in self.potential_neutral_losses(start, end, all_peptides, peptidoform_index, [])
        ]
        return formulas, seen, losses

    def formulas_inner(
        self,
        peptidoform_index: int,
        peptidoform_ion_index: int,
        all_peptides,
        visited: List[int],
        applied_cross_links: List[CrossLinkName],
        allow_ms_cleavable: bool,
        glycan_model=None,
    ) -> Tuple[Multi, Set[CrossLinkName]]:
        """Full chain formulas with global isotopes, walking into cross-linked chains."""
        visited = [peptidoform_index] + list(visited)
        n_term, n_seen = self.get_n_term_mass(
            all_peptides, visited, applied_cross_links, allow_ms_cleavable,
            peptidoform_index, peptidoform_ion_index, glycan_model,
        )
        c_term, c_seen = self.get_c_term_mass(
            all_peptides, visited, applied_cross_links, allow_ms_cleavable,
            peptidoform_index, peptidoform_ion_index, glycan_model,
        )
        formulas = n_term + c_term
        seen = n_seen | c_seen
        placed = [False] * len(self.ambiguous_modifications)
        for index, seq in enumerate(self.sequence):
            options, passed = seq.formulas_greedy(
                placed,
                all_peptides,
                visited,
                applied_cross_links,
                allow_ms_cleavable,
                SequencePosition.at(index),
                peptidoform_index,
                peptidoform_ion_index,
                glycan_model,
            )
            formulas = formulas + options
            seen |= passed
        return self.apply_global_isotopes(formulas), seen

    def formulas(self) -> Multi:
        """All formulas of this chain on its own, for chains without links to other chains."""
        return self.formulas_inner(0, 0, [self], [], [], False)[0]

    def __str__(self) -> str:
        text = "".join(f"[{m}]" for m in self.n_term)
        if self.n_term:
            text += "-"
        text += "".join(str(seq) for seq in self.sequence)
        if self.c_term:
            text += "-" + "".join(f"[{m}]" for m in self.c_term)
        if self.charge_carriers is not None:
            text += f"/{self.charge_carriers.charge()}"
        return text


def reachable_chains(peptidoforms: Sequence[Peptidoform], start: int = 0) -> List[int]:
    """Chains reachable from ``start`` over cross-links and branches (stack based DFS)."""
    found = [start]
    stack = [start]
    while stack:
        index = stack.pop()
        peptide = peptidoforms[index]
        modifications = list(peptide.n_term) + list(peptide.c_term)
        for seq in peptide.sequence:
            modifications.extend(seq.modifications)
        for modification in modifications:
            if isinstance(modification, CrossLink) and modification.peptide not in found:
                found.append(modification.peptide)
                stack.append(modification.peptide)
    return found


# =============================================================================
# Multi chain ions
# =============================================================================

_WITHOUT_RULES = (FormulaModification, MassModification, GlycanComposition, GlycanStructureModification)


@dataclass
class PeptidoformIon:
    """Chains joined by cross-links, charged together."""

    peptidoforms: List[Peptidoform] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.peptidoforms)

    def add_cross_link(
        self,
        position_1: Tuple[int, SequencePosition],
        position_2: Tuple[int, SequencePosition],
        linker: SimpleModification,
        name: CrossLinkName,
    ) -> bool:
        """Join two slots with ``linker``; False when its specificities do not fit.

        An asymmetric linker needs its left and right end on different
        slots, with at least one specificity shared by both.
        """
        (peptide_1, index_1), (peptide_2, index_2) = position_1, position_2
        seq_1 = self.peptidoforms[peptide_1][index_1]
        seq_2 = self.peptidoforms[peptide_2][index_2]
        if isinstance(linker, _WITHOUT_RULES):
            sides = (CrossLinkSide.symmetric(), CrossLinkSide.symmetric())
        else:
            sides = _link_sides(linker.is_possible(seq_1, index_1), linker.is_possible(seq_2, index_2))
            if sides is None:
                return False
        self.peptidoforms[peptide_1].add_modification(
            index_1, CrossLink(peptide_2, index_2, linker, name, sides[0])
        )
        self.peptidoforms[peptide_2].add_modification(
            index_2, CrossLink(peptide_1, index_1, linker, name, sides[1])
        )
        return True

    def formulas(self) -> Multi:
        """Formulas of the whole ion; every connected group of chains is counted once."""
        total = _identity()
        counted: List[int] = []
        applied: List[CrossLinkName] = []
        for index, peptide in enumerate(self.peptidoforms):
            if index in counted:
                continue
            counted.extend(reachable_chains(self.peptidoforms, index))
            options, _ = peptide.formulas_inner(index, 0, self.peptidoforms, [], applied, False)
            total = total + options
        return total

    def __str__(self) -> str:
        return "//".join(str(p) for p in self.peptidoforms)


def _link_sides(
    first: Optional[CrossLinkSide], second: Optional[CrossLinkSide]
) -> Optional[Tuple[CrossLinkSide, CrossLinkSide]]:
    if first is None or second is None:
        return None
    shared = first.specificities & second.specificities
    if not first.specificities and not second.specificities:
        return CrossLinkSide.symmetric(), CrossLinkSide.symmetric()
    if not shared:
        return None
    kinds = (first.kind, second.kind)
    if kinds == (LinkSide.SYMMETRIC, LinkSide.SYMMETRIC):
        return CrossLinkSide.symmetric(shared), CrossLinkSide.symmetric(shared)
    if first.kind is LinkSide.LEFT and second.kind is not LinkSide.LEFT:
        return CrossLinkSide.left(shared), CrossLinkSide.right(shared)
    if first.kind is LinkSide.RIGHT and second.kind is not LinkSide.RIGHT:
        return CrossLinkSide.right(shared), CrossLinkSide.left(shared)
    if first.kind is LinkSide.SYMMETRIC and second.kind is LinkSide.LEFT:
        return CrossLinkSide.right(shared), CrossLinkSide.left(shared)
    if first.kind is LinkSide.SYMMETRIC and second.kind is LinkSide.RIGHT:
        return CrossLinkSide.left(shared), CrossLinkSide.right(shared)
    return None


@dataclass
class CompoundPeptidoformIon:
    """Several peptidoform ions measured together (chimeric spectra)."""

    peptidoform_ions: List[PeptidoformIon] = field(default_factory=list)

    def formulas(self) -> Multi:
        """Union of the formulas of all ions."""
        output = Multi()
        for ion in self.peptidoform_ions:
            output = output.extend(ion.formulas())
        return output

    def peptidoforms(self) -> List[Peptidoform]:
        return [p for ion in self.peptidoform_ions for p in ion.peptidoforms]

    def __str__(self) -> str:
        return "+".join(str(ion) for ion in self.peptidoform_ions)
