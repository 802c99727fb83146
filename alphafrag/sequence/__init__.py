"""Amino acids, modifications, placement rules and peptidoforms."""

from .aminoacid import BACKBONE, AminoAcid
from .placement import (
    AminoAcidRule,
    AnywhereRule,
    PlacementRule,
    Position,
    PsiModificationRule,
    RulePossible,
    SequencePosition,
    TerminalRule,
    rules,
)
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
    LinkerModification,
    LinkerSpecificity,
    LinkSide,
    MassModification,
    Modification,
    ModificationSpecificity,
    Simple,
    SimpleModification,
    modification,
)
from .peptidoform import (
    CompoundPeptidoformIon,
    FixedGlobal,
    IsotopeGlobal,
    Peptidoform,
    PeptidoformIon,
    SequenceElement,
)
from .validation import enforce_modification_rules, resolve_cross_links
from .proforma import parse_peptidoform, parse_peptidoform_ion, parse_proforma

__all__ = [
    'BACKBONE',
    'AminoAcid',
    'AminoAcidRule',
    'AnywhereRule',
    'PlacementRule',
    'Position',
    'PsiModificationRule',
    'RulePossible',
    'SequencePosition',
    'TerminalRule',
    'rules',
    'Ambiguous',
    'CrossLink',
    'CrossLinkName',
    'CrossLinkSide',
    'DatabaseModification',
    'FormulaModification',
    'GlycanComposition',
    'GlycanPeptideFragment',
    'GlycanStructureModification',
    'LinkerModification',
    'LinkerSpecificity',
    'LinkSide',
    'MassModification',
    'Modification',
    'ModificationSpecificity',
    'Simple',
    'SimpleModification',
    'modification',
    'CompoundPeptidoformIon',
    'FixedGlobal',
    'IsotopeGlobal',
    'Peptidoform',
    'PeptidoformIon',
    'SequenceElement',
    'enforce_modification_rules',
    'resolve_cross_links',
    'parse_peptidoform',
    'parse_peptidoform_ion',
    'parse_proforma',
]
