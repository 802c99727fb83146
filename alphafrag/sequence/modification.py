"""Modifications, cross-linkers and their placement.

Two layers:

- :class:`SimpleModification` is the chemical entity: a mass shift, a
  formula, a glycan, an ontology entry with placement rules, or a linker.
- :class:`Modification` is a simple modification as applied to a residue:
  ``Simple`` (fixed here), ``Ambiguous`` (one of several candidate positions)
  or ``CrossLink`` (bridging to another residue, possibly on another chain).

Placement of ontology entries and linkers is checked against their
specificities. For linkers this also tells which side of an asymmetric
linker an attachment site takes, see :class:`CrossLinkSide`.

Key Features
------------
- Per-specificity neutral losses, diagnostic ions and cleavable linker stubs
- Glycans on peptide fragments reduced to cores according to a
  :class:`GlycanPeptideFragment` setting
- Cross-link formulas that walk into the partner chain exactly once and
  report which cross-links they passed

Examples
--------
>>> oxidation = modification("Oxidation")
>>> oxidation.formula().hill_notation()
'O'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..chemistry.formula import MolecularFormula, formula
from ..chemistry.labels import (
    CrossLinkBoundLabel,
    CrossLinkBrokenLabel,
    GlycanFragmentCompositionLabel,
    GlycanFragmentLabel,
)
from ..chemistry.multi import Multi
from ..chemistry.neutral_loss import DiagnosticIon, NeutralLoss, loss
from ..glycan.monosaccharide import (
    Composition,
    composition_formula,
    composition_options,
    format_composition,
)
from ..glycan.structure import GlycanStructure
from .aminoacid import AminoAcid
from .placement import PlacementRule, Position, RulePossible, SequencePosition, rules

logger = logging.getLogger(__name__)

WATER = formula("H2O")


# =============================================================================
# Glycans on peptide fragments
# =============================================================================

@dataclass(frozen=True)
class GlycanPeptideFragment:
    """Which part of a glycan stays on a peptide fragment.

    ``full`` keeps the intact glycan, ``core`` keeps any core with a size (in
    monosaccharides, fucose not counted) within the inclusive range. Adding
    two settings allows everything either allows.
    """

    full: bool
    core: Optional[Tuple[Optional[int], Optional[int]]] = None

    FULL = None  # type: GlycanPeptideFragment
    CORE_AND_FREE = None  # type: GlycanPeptideFragment
    CORE = None  # type: GlycanPeptideFragment
    FREE = None  # type: GlycanPeptideFragment

    def __add__(self, other: "GlycanPeptideFragment") -> "GlycanPeptideFragment":
        if self.core is None or other.core is None:
            core = self.core or other.core
        else:
            lows = (self.core[0], other.core[0])
            highs = (self.core[1], other.core[1])
            core = (
                None if None in lows else min(lows),
                None if None in highs else max(highs),
            )
        return GlycanPeptideFragment(self.full or other.full, core)


GlycanPeptideFragment.FULL = GlycanPeptideFragment(True, None)
GlycanPeptideFragment.CORE_AND_FREE = GlycanPeptideFragment(False, (None, 1))
GlycanPeptideFragment.CORE = GlycanPeptideFragment(False, (1, 1))
GlycanPeptideFragment.FREE = GlycanPeptideFragment(False, (None, 0))


# =============================================================================
# Cross-link bookkeeping
# =============================================================================

class LinkSide(Enum):
    SYMMETRIC = "symmetric"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CrossLinkSide:
    """Which side of a linker an attachment site uses, and which specificities apply."""

    kind: LinkSide = LinkSide.SYMMETRIC
    specificities: FrozenSet[int] = frozenset()

    @classmethod
    def symmetric(cls, specificities=()) -> "CrossLinkSide":
        return cls(LinkSide.SYMMETRIC, frozenset(specificities))

    @classmethod
    def left(cls, specificities=()) -> "CrossLinkSide":
        return cls(LinkSide.LEFT, frozenset(specificities))

    @classmethod
    def right(cls, specificities=()) -> "CrossLinkSide":
        return cls(LinkSide.RIGHT, frozenset(specificities))

    def allowed_rules(
        self, linker: "SimpleModification"
    ) -> Tuple[List[NeutralLoss], List[Tuple[MolecularFormula, MolecularFormula]], List[DiagnosticIon]]:
        """Neutral losses, stubs (own side first) and diagnostic ions of the selected specificities."""
        neutral: List[NeutralLoss] = []
        stubs: List[Tuple[MolecularFormula, MolecularFormula]] = []
        diagnostic: List[DiagnosticIon] = []
        if isinstance(linker, LinkerModification):
            for i, specificity in enumerate(linker.specificities):
                if i not in self.specificities:
                    continue
                diagnostic.extend(specificity.diagnostic_ions)
                if specificity.is_symmetric:
                    stubs.extend(specificity.stubs)
                elif self.kind is LinkSide.LEFT:
                    stubs.extend(specificity.stubs)
                elif self.kind is LinkSide.RIGHT:
                    stubs.extend((r, l) for l, r in specificity.stubs)
                else:
                    for l, r in specificity.stubs:
                        stubs.extend([(l, r), (r, l)])
        elif isinstance(linker, DatabaseModification):
            for i, specificity in enumerate(linker.specificities):
                if i in self.specificities:
                    neutral.extend(specificity.neutral_losses)
                    diagnostic.extend(specificity.diagnostic_ions)
        return neutral, stubs, diagnostic


def _combine(a: Optional[CrossLinkSide], b: Optional[CrossLinkSide]) -> Optional[CrossLinkSide]:
    """OR two placement outcomes of different linker specificities."""
    if a is None:
        return b
    if b is None:
        return a
    if a.kind is b.kind:
        return CrossLinkSide(a.kind, a.specificities | b.specificities)
    if a.kind is LinkSide.SYMMETRIC:
        return a
    if b.kind is LinkSide.SYMMETRIC:
        return b
    # One site that fits the left of one specificity and the right of another
    both = a.specificities & b.specificities
    return CrossLinkSide.symmetric(both) if both else None


@dataclass(frozen=True)
class CrossLinkName:
    """Name of one cross-link instance, ``#XL1``, or a ``#BRANCH``."""

    name: Optional[str] = None

    BRANCH = None  # type: CrossLinkName

    @property
    def is_branch(self) -> bool:
        return self.name is None

    def __str__(self) -> str:
        return "#BRANCH" if self.name is None else f"#XL{self.name}"


CrossLinkName.BRANCH = CrossLinkName(None)


# =============================================================================
# Specificities
# =============================================================================

@dataclass(frozen=True)
class ModificationSpecificity:
    """Where an ontology modification may go, with what it loses and shows there."""

    rules: Tuple[PlacementRule, ...]
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    diagnostic_ions: Tuple[DiagnosticIon, ...] = ()


@dataclass(frozen=True)
class LinkerSpecificity:
    """Placement of a linker.

    Symmetric linkers have one rule set valid for both ends, asymmetric ones
    a ``rules`` set for the left end and ``right_rules`` for the right end.
    ``stubs`` are the (own side, other side) formulas left behind when a
    cleavable linker breaks.
    """

    rules: Tuple[PlacementRule, ...]
    right_rules: Optional[Tuple[PlacementRule, ...]] = None
    stubs: Tuple[Tuple[MolecularFormula, MolecularFormula], ...] = ()
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    diagnostic_ions: Tuple[DiagnosticIon, ...] = ()

    @property
    def is_symmetric(self) -> bool:
        return self.right_rules is None


def _matches(rule_set, seq, position: SequencePosition) -> bool:
    return PlacementRule.any_possible(rule_set, seq, position) is RulePossible.YES


# =============================================================================
# Simple modifications
# =============================================================================

@dataclass(frozen=True)
class SimpleModification:
    """A modification by itself, independent of where it is placed."""

    def formula(self) -> MolecularFormula:
        raise NotImplementedError

    def formula_options(
        self,
        sequence_index: SequencePosition = SequencePosition.N_TERM,
        peptidoform_index: int = 0,
        glycan_fragment: GlycanPeptideFragment = GlycanPeptideFragment.FULL,
        attachment: Optional[AminoAcid] = None,
    ) -> Multi:
        """All formulas this modification can have on a peptide fragment."""
        return Multi.of(self.formula())

    def is_possible(self, seq, position: SequencePosition) -> Optional[CrossLinkSide]:
        """The side this modification takes at ``position``, None if not allowed."""
        return CrossLinkSide.symmetric()

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> bool:
        return True

    def placement_rules(self) -> List[str]:
        return []

    def neutral_losses(self, seq, position: SequencePosition) -> List[NeutralLoss]:
        return []

    def diagnostic_ions(self, seq, position: SequencePosition) -> List[DiagnosticIon]:
        return []


@dataclass(frozen=True)
class MassModification(SimpleModification):
    mass: float

    def formula(self) -> MolecularFormula:
        return MolecularFormula.with_additional_mass(self.mass)

    def __str__(self) -> str:
        return f"{self.mass:+}"


@dataclass(frozen=True)
class FormulaModification(SimpleModification):
    elemental: MolecularFormula

    def formula(self) -> MolecularFormula:
        return self.elemental

    def __str__(self) -> str:
        return f"Formula:{self.elemental.hill_notation()}"


@dataclass(frozen=True)
class GlycanComposition(SimpleModification):
    """A glycan known by its monosaccharide composition only."""

    composition: Composition

    def formula(self) -> MolecularFormula:
        return composition_formula(self.composition)

    def formula_options(
        self,
        sequence_index=SequencePosition.N_TERM,
        peptidoform_index=0,
        glycan_fragment=GlycanPeptideFragment.FULL,
        attachment=None,
    ) -> Multi:
        options = []
        if glycan_fragment.core is not None:
            low, high = glycan_fragment.core
            if (low is None or low == 0) and (high is None or high >= 0):
                options.append(MolecularFormula())
            for option in composition_options(self.composition, glycan_fragment.core):
                options.append(
                    composition_formula(option).with_label(GlycanFragmentCompositionLabel(option))
                )
        if glycan_fragment.full:
            options.append(self.formula())
        if not options:
            options.append(MolecularFormula())
        return Multi(options)

    def __str__(self) -> str:
        return f"Glycan:{format_composition(self.composition)}"


@dataclass(frozen=True)
class GlycanStructureModification(SimpleModification):
    """A glycan with a known tree structure."""

    structure: GlycanStructure

    def formula(self) -> MolecularFormula:
        return self.structure.formula()

    def formula_options(
        self,
        sequence_index=SequencePosition.N_TERM,
        peptidoform_index=0,
        glycan_fragment=GlycanPeptideFragment.FULL,
        attachment=None,
    ) -> Multi:
        options = []
        if glycan_fragment.core is not None:
            site = None if attachment is None else (attachment, sequence_index)
            for breakages, kept in self.structure.core_options(glycan_fragment.core, site):
                options.append(kept.with_label(GlycanFragmentLabel(breakages)))
        if glycan_fragment.full:
            options.append(self.formula())
        if not options:
            options.append(MolecularFormula())
        return Multi(options)

    def __str__(self) -> str:
        return f"GlycanStructure:{self.structure}"


@dataclass(frozen=True)
class DatabaseModification(SimpleModification):
    """An ontology entry (Unimod, PSI-MOD) with its placement specificities.

    An entry without specificities may be placed anywhere.
    """

    name: str
    elemental: MolecularFormula
    specificities: Tuple[ModificationSpecificity, ...] = ()
    ontology: str = "Unimod"
    id: Optional[int] = None

    @property
    def psi_mod_id(self) -> Optional[int]:
        return self.id if self.ontology == "PSI-MOD" else None

    def formula(self) -> MolecularFormula:
        return self.elemental

    def _matching(self, seq, position: SequencePosition) -> List[int]:
        return [
            i for i, specificity in enumerate(self.specificities)
            if _matches(specificity.rules, seq, position)
        ]

    def is_possible(self, seq, position: SequencePosition) -> Optional[CrossLinkSide]:
        if not self.specificities:
            return CrossLinkSide.symmetric()
        matching = self._matching(seq, position)
        return CrossLinkSide.symmetric(matching) if matching else None

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> bool:
        if not self.specificities:
            return True
        return any(
            PlacementRule.any_possible_aa(s.rules, aminoacid, position) is RulePossible.YES
            for s in self.specificities
        )

    def placement_rules(self) -> List[str]:
        return [str(rule) for s in self.specificities for rule in s.rules]

    def neutral_losses(self, seq, position: SequencePosition) -> List[NeutralLoss]:
        return [
            neutral_loss
            for i in self._matching(seq, position)
            for neutral_loss in self.specificities[i].neutral_losses
        ]

    def diagnostic_ions(self, seq, position: SequencePosition) -> List[DiagnosticIon]:
        return [
            ion for i in self._matching(seq, position) for ion in self.specificities[i].diagnostic_ions
        ]

    def __str__(self) -> str:
        prefix = "U" if self.ontology == "Unimod" else "MOD"
        return f"{prefix}:{self.name}"


@dataclass(frozen=True)
class LinkerModification(SimpleModification):
    """A cross-linker; unbound it is hydrolysed on its free end."""

    name: str
    elemental: MolecularFormula
    specificities: Tuple[LinkerSpecificity, ...] = ()
    id: Optional[int] = None

    def formula(self) -> MolecularFormula:
        return self.elemental

    def is_possible(self, seq, position: SequencePosition) -> Optional[CrossLinkSide]:
        if not self.specificities:
            return CrossLinkSide.symmetric()
        result = None
        for i, specificity in enumerate(self.specificities):
            if specificity.is_symmetric:
                side = CrossLinkSide.symmetric([i]) if _matches(specificity.rules, seq, position) else None
            else:
                left = _matches(specificity.rules, seq, position)
                right = _matches(specificity.right_rules, seq, position)
                if left and right:
                    side = CrossLinkSide.symmetric([i])
                elif left:
                    side = CrossLinkSide.left([i])
                elif right:
                    side = CrossLinkSide.right([i])
                else:
                    side = None
            result = _combine(result, side)
        return result

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> bool:
        if not self.specificities:
            return True
        for specificity in self.specificities:
            for rule_set in (specificity.rules, specificity.right_rules or ()):
                if PlacementRule.any_possible_aa(rule_set, aminoacid, position) is RulePossible.YES:
                    return True
        return False

    def placement_rules(self) -> List[str]:
        output = []
        for specificity in self.specificities:
            left = ", ".join(str(rule) for rule in specificity.rules)
            if specificity.is_symmetric:
                output.append(left)
            else:
                right = ", ".join(str(rule) for rule in specificity.right_rules)
                output.append(f"{left} + {right}")
        return output

    def diagnostic_ions(self, seq, position: SequencePosition) -> List[DiagnosticIon]:
        output = []
        for specificity in self.specificities:
            if _matches(specificity.rules, seq, position) or (
                specificity.right_rules is not None
                and _matches(specificity.right_rules, seq, position)
            ):
                output.extend(specificity.diagnostic_ions)
        return output

    def __str__(self) -> str:
        return f"X:{self.name}"


# =============================================================================
# Applied modifications
# =============================================================================

@dataclass(frozen=True)
class Modification:
    """A simple modification as placed on a residue."""

    def simple(self) -> Optional[SimpleModification]:
        return None

    @property
    def is_ambiguous(self) -> bool:
        return False

    @property
    def is_cross_link(self) -> bool:
        return False

    def is_possible(self, seq, position: SequencePosition) -> Optional[CrossLinkSide]:
        return self.simple().is_possible(seq, position)

    def formula(self) -> MolecularFormula:
        return self.simple().formula()

    def formula_inner(
        self,
        all_peptides,
        visited: List[int],
        applied_cross_links: List[CrossLinkName],
        allow_ms_cleavable: bool,
        sequence_index: SequencePosition,
        peptidoform_index: int,
        peptidoform_ion_index: int = 0,
        glycan_model=None,
        attachment: Optional[AminoAcid] = None,
    ) -> Tuple[Multi, Set[CrossLinkName]]:
        """Formula options of this modification and the cross-links passed on the way.

        Parameters
        ----------
        all_peptides : list of Peptidoform
            All chains of the peptidoform ion, for walking across cross-links
        visited : list of int
            Chains already part of the formula being built
        applied_cross_links : list of CrossLinkName
            Cross-links already accounted for, extended in place
        allow_ms_cleavable : bool
            Whether cleavable linkers may show up as their stubs
        glycan_model : GlycanModel or None
            Decides which glycan parts stay on peptide fragments, None keeps
            glycans intact
        """
        simple = self.simple()
        if isinstance(simple, LinkerModification):
            return Multi.of(simple.formula() + WATER), set()
        fragment = (
            GlycanPeptideFragment.FULL if glycan_model is None else glycan_model.peptide_fragment(attachment)
        )
        return simple.formula_options(sequence_index, peptidoform_index, fragment, attachment), set()


@dataclass(frozen=True)
class Simple(Modification):
    modification: SimpleModification

    def simple(self) -> SimpleModification:
        return self.modification

    def __str__(self) -> str:
        return str(self.modification)


@dataclass(frozen=True)
class Ambiguous(Modification):
    """One of the candidate positions of a modification of uncertain position.

    Every candidate position carries one of these with the same ``id``.
    """

    id: int
    modification: SimpleModification
    localisation_score: Optional[float] = None
    group: Optional[str] = None
    preferred: bool = False
    colocalise: bool = False

    def simple(self) -> SimpleModification:
        return self.modification

    @property
    def is_ambiguous(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.modification}#{self.group or f'u{self.id}'}"


@dataclass(frozen=True)
class CrossLink(Modification):
    """One end of a cross-link, pointing at the other end."""

    peptide: int
    sequence_index: SequencePosition
    linker: SimpleModification
    name: CrossLinkName
    side: CrossLinkSide = field(default_factory=CrossLinkSide)

    def simple(self) -> SimpleModification:
        return self.linker

    @property
    def is_cross_link(self) -> bool:
        return True

    def formula_inner(
        self,
        all_peptides,
        visited,
        applied_cross_links,
        allow_ms_cleavable,
        sequence_index,
        peptidoform_index,
        peptidoform_ion_index=0,
        glycan_model=None,
        attachment=None,
    ):
        if self.name in applied_cross_links:
            return Multi.of(MolecularFormula()), {self.name}
        bound = CrossLinkBoundLabel(self.name)
        link = self.linker.formula_options(sequence_index, peptidoform_index)
        applied_cross_links.append(self.name)
        if self.peptide in visited:
            return link.map(lambda f: f.with_label(bound)), {self.name}

        partner, seen = all_peptides[self.peptide].formulas_inner(
            self.peptide,
            peptidoform_ion_index,
            all_peptides,
            visited,
            applied_cross_links,
            False,
            glycan_model,
        )
        seen = set(seen) | {self.name}
        intact = (partner + link).map(lambda f: f.with_label(bound))
        _, stubs, _ = self.side.allowed_rules(self.linker)
        if allow_ms_cleavable and stubs:
            broken = Multi(
                stub.with_label(CrossLinkBrokenLabel(self.name, stub)) for stub, _ in stubs
            )
            return broken.extend(intact), seen
        return intact, seen

    def __str__(self) -> str:
        return f"{self.linker}{self.name}"


# =============================================================================
# Built-in modifications
# =============================================================================

_BUILT_IN: Dict[str, SimpleModification] = {}
_BY_ID: Dict[Tuple[str, int], SimpleModification] = {}


def _register(mod: SimpleModification):
    _BUILT_IN[mod.name.lower()] = mod
    if mod.id is not None:
        ontology = getattr(mod, "ontology", "XL-MOD")
        _BY_ID[(ontology, mod.id)] = mod
    return mod


_register(DatabaseModification("Oxidation", formula("O"), (
    ModificationSpecificity(rules("M@Anywhere"), (loss("-CH4OS"),)),
    ModificationSpecificity(rules("W@Anywhere", "C@Anywhere", "H@Anywhere", "P@Anywhere")),
), id=35))
_register(DatabaseModification("Phospho", formula("HO3P"), (
    ModificationSpecificity(rules("ST@Anywhere"), (loss("-H3O4P"),)),
    ModificationSpecificity(rules("Y@Anywhere"), (), (DiagnosticIon(formula("C8H10NO4P")),)),
), id=21))
_register(DatabaseModification("Carbamidomethyl", formula("H3C2NO"), (
    ModificationSpecificity(rules("C@Anywhere")),
    ModificationSpecificity(rules("AnyNTerm")),
), id=4))
_register(DatabaseModification("Acetyl", formula("H2C2O"), (
    ModificationSpecificity(rules("K@Anywhere")),
    ModificationSpecificity(rules("AnyNTerm", "ProteinNTerm")),
), id=1))
_register(DatabaseModification("Deamidated", formula("H-1N-1O"), (
    ModificationSpecificity(rules("NQ@Anywhere")),
), id=7))
_register(DatabaseModification("Amidated", formula("HNO-1"), (
    ModificationSpecificity(rules("AnyCTerm")),
), id=2))
_register(DatabaseModification("Methyl", formula("H2C"), (
    ModificationSpecificity(rules("KR@Anywhere")),
    ModificationSpecificity(rules("DE@Anywhere", "AnyCTerm")),
), id=34))
_register(DatabaseModification("Carbamyl", formula("HCNO"), (
    ModificationSpecificity(rules("K@Anywhere", "AnyNTerm")),
), id=5))
_register(DatabaseModification("HexNAc", formula("C8H13NO5"), (
    ModificationSpecificity(
        rules("NST@Anywhere"), (), (DiagnosticIon(formula("C8H13NO5")),)
    ),
), id=43))
_register(DatabaseModification(
    "N6-glycyl-L-lysine", formula("H-2O-1"),
    (ModificationSpecificity(rules("K@Anywhere")),), ontology="PSI-MOD", id=134,
))

_register(LinkerModification("DSS", formula("C8H10O2"), (
    LinkerSpecificity(rules("K@Anywhere", "ProteinNTerm")),
), id=2001))
_register(LinkerModification("BS3", formula("C8H10O2"), (
    LinkerSpecificity(rules("K@Anywhere", "ProteinNTerm")),
), id=2000))
_register(LinkerModification("DSSO", formula("C6H6O3S"), (
    LinkerSpecificity(
        rules("K@Anywhere", "ProteinNTerm"),
        stubs=(
            (formula("C3H2O"), formula("C3H4O2S")),
            (formula("C3H4O2S"), formula("C3H2O")),
        ),
    ),
), id=2010))
_register(LinkerModification("SDA", formula("C5H6O"), (
    LinkerSpecificity(
        rules("K@Anywhere", "ProteinNTerm"),
        right_rules=rules("Anywhere"),
    ),
), id=2015))


def modification(name: str) -> SimpleModification:
    """Look up a built-in modification.

    Accepts plain names (``Oxidation``), ontology prefixed names
    (``U:Oxidation``, ``X:DSS``), and accessions (``UNIMOD:35``,
    ``MOD:00134``, ``XLMOD:02001``), case-insensitive.

    Raises
    ------
    ValueError
        For names not in the built-in table
    """
    head, colon, tail = name.partition(":")
    if colon:
        prefix = head.upper()
        if tail.isdigit():
            ontology = {"UNIMOD": "Unimod", "MOD": "PSI-MOD", "XLMOD": "XL-MOD"}.get(prefix)
            found = _BY_ID.get((ontology, int(tail)))
            if found is not None:
                return found
        elif prefix in ("U", "M", "X", "UNIMOD", "MOD", "XLMOD", "XL-MOD"):
            name = tail
    found = _BUILT_IN.get(name.lower())
    if found is None:
        raise ValueError(f"Unknown modification: {name}")
    return found
