"""Chemistry primitives: elements, formulas, isotopes, losses and charges.

Everything above this package (sequences, glycans, fragments) expresses
masses as :class:`MolecularFormula` values and only turns them into numbers
at the very end, through :class:`MassMode`.
"""

from .elements import Element
from .formula import MassMode, MolecularFormula, formula
from .labels import (
    AmbiguousLabel,
    AminoAcidLabel,
    ChargeCarrierLabel,
    CrossLinkBoundLabel,
    CrossLinkBrokenLabel,
    GlycanFragmentCompositionLabel,
    GlycanFragmentLabel,
    ModificationLabel,
)
from .multi import Multi
from .parsing import (
    parse_pro_forma,
    parse_psi_mod,
    parse_resid,
    parse_resid_single,
    parse_unimod,
    parse_xlmod,
)
from .isotopes import isotopic_distribution, isotopic_distribution_batch
from .neutral_loss import DiagnosticIon, Gain, Loss, NeutralLoss, SideChainLoss, loss
from .charge import CachedCharge, ChargePoint, ChargeRange, MolecularCharge

__all__ = [
    'Element',
    'MassMode',
    'MolecularFormula',
    'formula',
    'AmbiguousLabel',
    'AminoAcidLabel',
    'ChargeCarrierLabel',
    'CrossLinkBoundLabel',
    'CrossLinkBrokenLabel',
    'GlycanFragmentCompositionLabel',
    'GlycanFragmentLabel',
    'ModificationLabel',
    'Multi',
    'parse_pro_forma',
    'parse_psi_mod',
    'parse_resid',
    'parse_resid_single',
    'parse_unimod',
    'parse_xlmod',
    'isotopic_distribution',
    'isotopic_distribution_batch',
    'DiagnosticIon',
    'Gain',
    'Loss',
    'NeutralLoss',
    'SideChainLoss',
    'loss',
    'CachedCharge',
    'ChargePoint',
    'ChargeRange',
    'MolecularCharge',
]
