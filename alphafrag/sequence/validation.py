"""Turning parsed chains into a valid peptidoform ion.

The ProForma reader collects cross-link attachment sites, global
modifications and modifications of unknown position while it reads. This
module places them and checks the result:

1. Global modifications: fixed rule based modifications and isotope labels
2. Modifications of unknown position, on every slot their rules allow
3. Cross-links, resolved per name from the number of attachment sites
4. Connectivity: every chain of an ion must be reachable from the first one

Placement problems on these fixed paths raise. Auditing an already built
peptidoform with :func:`enforce_modification_rules` collects
:class:`~alphafrag.errors.PlacementWarning` records instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..errors import CrossLinkError, PlacementError, PlacementWarning, UnconnectedPeptidoformError, UnknownPositionError
from .modification import CrossLinkName, SimpleModification
from .peptidoform import (
    CompoundPeptidoformIon,
    FixedGlobal,
    IsotopeGlobal,
    Peptidoform,
    PeptidoformIon,
    placement_message,
    reachable_chains,
)
from .placement import PlacementRule, RulePossible, SequencePosition

logger = logging.getLogger(__name__)

Site = Tuple[int, SequencePosition]


@dataclass
class UnknownPositionEntry:
    """A ``[mod]?`` or ``[mod#g1]`` modification waiting to be placed."""

    modification: SimpleModification
    name: str
    group: Optional[str] = None
    colocalise_placed: bool = False
    colocalise_unknown: bool = False


# =============================================================================
# Cross-links
# =============================================================================

def resolve_cross_links(
    peptidoforms: List[Peptidoform],
    sites: Dict[int, List[Site]],
    definitions: Sequence[Tuple[CrossLinkName, Optional[SimpleModification]]],
) -> PeptidoformIon:
    """Place every named cross-link and check that all chains are joined.

    Parameters
    ----------
    peptidoforms : list of Peptidoform
        The chains, in the order they were written
    sites : dict
        Cross-link id to the (chain, position) sites naming it
    definitions : sequence of (CrossLinkName, SimpleModification or None)
        Per cross-link id its name and, when defined, its linker

    Raises
    ------
    CrossLinkError
        For undefined names, a linker that does not fit, or more than two sites
    PlacementError
        For a single site linker on a slot its rules do not allow
    UnconnectedPeptidoformError
        When a chain cannot be reached over cross-links
    """
    ion = PeptidoformIon(list(peptidoforms))
    for id, locations in sites.items():
        name, linker = definitions[id]
        if linker is None:
            if name.is_branch:
                example, description, prefix = "00134", " N6-glycyl-L-lysine", "MOD"
            else:
                example, description, prefix = "DSS", "", "X"
            raise CrossLinkError(
                f"The cross-link named '{name}' is never defined, for example for "
                f"{example}{description} define it like: '[{prefix}:{example}{name}]'"
            )
        if not locations:
            raise CrossLinkError(f"The cross-link named '{name}' has no listed locations")
        if len(locations) == 1:
            index, position = locations[0]
            chain = ion.peptidoforms[index]
            if not chain.add_simple_modification(position, linker):
                raise PlacementError(placement_message(linker, chain[position], position))
        elif len(locations) == 2:
            if not ion.add_cross_link(locations[0], locations[1], linker, name):
                raise CrossLinkError(
                    f"The cross-link named '{name}' cannot be placed according to its location specificities"
                )
        else:
            raise CrossLinkError(
                f"The cross-link named '{name}' has more than 2 attachment locations, only "
                "cross-links spanning two locations are allowed"
            )
    check_connected(ion)
    return ion


def check_connected(ion: PeptidoformIon):
    """Raise when not every chain is reachable from the first one."""
    if not ion.peptidoforms:
        return
    found = reachable_chains(ion.peptidoforms, 0)
    if len(found) != len(ion.peptidoforms):
        raise UnconnectedPeptidoformError(
            "Not all peptides in this peptidoform are connected with cross-links or branches, if "
            "separate peptides were intended use the chimeric notation `+` instead of the "
            "peptidoform notation `//`."
        )


# =============================================================================
# Global and unknown position modifications
# =============================================================================

def apply_global_modifications(
    peptidoform: Peptidoform, global_modifications: Sequence[Union[FixedGlobal, IsotopeGlobal]]
) -> bool:
    """Apply fixed and isotope global modifications.

    Returns False, without applying anything further, at the first isotope
    label with an isotope the element does not have.

    Raises
    ------
    PlacementError
        When a fixed modification is selected for a slot its own rules forbid
    """
    for modification in global_modifications:
        if isinstance(modification, IsotopeGlobal):
            if not modification.element.is_valid(modification.isotope):
                logger.warning(
                    f"Invalid global isotope {modification.isotope}{modification.element.symbol}"
                )
                return False
            peptidoform.global_isotopes.append((modification.element, modification.isotope))
            continue
        for position, seq in list(peptidoform.positions()):
            if PlacementRule.any_possible(modification.rules, seq, position) is not RulePossible.YES:
                continue
            place_fixed_modification(peptidoform, position, modification.modification)
    return True


def place_fixed_modification(peptidoform: Peptidoform, position: SequencePosition, modification: SimpleModification):
    """Place ``modification`` at ``position`` or raise :class:`PlacementError`."""
    if not peptidoform.add_simple_modification(position, modification):
        raise PlacementError(placement_message(modification, peptidoform[position], position))


def apply_unknown_position_modifications(peptidoform: Peptidoform, entries: Sequence[UnknownPositionEntry]):
    """Place modifications of unknown position on all allowed slots.

    Raises
    ------
    UnknownPositionError
        For the first modification that fits nowhere
    """
    for entry in entries:
        already = any(
            m.is_ambiguous and m.group == entry.group and entry.group is not None
            for seq in peptidoform.sequence
            for m in seq.modifications
        )
        if already:
            continue
        placed = peptidoform.add_unknown_position_modification(
            entry.modification,
            group=entry.group,
            colocalise_placed=entry.colocalise_placed,
            colocalise_unknown=entry.colocalise_unknown,
        )
        if not placed:
            raise UnknownPositionError(entry.name, entry.group)


def apply_ranged_unknown_position_modifications(
    peptidoform: Peptidoform, ranges: Sequence[Tuple[int, int, SimpleModification]]
):
    """Place ``(?AB)[mod]`` style modifications within their inclusive residue range."""
    for start, end, modification in ranges:
        if not peptidoform.add_unknown_position_modification(modification, start, end + 1):
            raise UnknownPositionError(str(modification))


# =============================================================================
# Auditing
# =============================================================================

def enforce_modification_rules(
    peptidoform: Union[Peptidoform, PeptidoformIon, CompoundPeptidoformIon],
) -> List[PlacementWarning]:
    """All placement rule violations, as warnings; nothing is raised."""
    if isinstance(peptidoform, Peptidoform):
        return peptidoform.enforce_modification_rules()
    if isinstance(peptidoform, PeptidoformIon):
        chains = peptidoform.peptidoforms
    else:
        chains = peptidoform.peptidoforms()
    warnings = []
    for index, chain in enumerate(chains):
        warnings.extend(chain.enforce_modification_rules(index))
    return warnings
