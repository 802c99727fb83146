"""Minimal ProForma reader.

Reads the subset of ProForma 2.0 needed to describe peptidoforms for
fragment generation:

- residues with ``[mod]`` on side chains, ``[mod]-`` and ``-[mod]`` termini
- cross-linked chains ``//`` and chimeric ions ``+``
- cross-links ``[X:DSS#XL1]`` ... ``[#XL1]`` and branches ``#BRANCH``
- ambiguous groups ``[Phospho#g1(0.8)]`` ... ``[#g1(0.2)]``
- unknown position ``[Phospho]?`` and ranged ``(?ST)[Phospho]`` modifications
- labile ``{Glycan:Hex1}``, global ``<[Carbamidomethyl]@C>`` and ``<13C>``
- charge ``/2``

Modification names: built-in names (optionally ``U:``/``MOD:``/``X:``
prefixed or as accession), ``Formula:``, ``Glycan:`` and signed masses.

Sources
-------
- ProForma 2.0 specification: https://github.com/HUPO-PSI/ProForma

Examples
--------
>>> ion = parse_proforma("EM[Oxidation]EVEES[Phospho]PEK/2")
>>> len(ion.peptidoform_ions[0].peptidoforms)
1
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..chemistry.charge import MolecularCharge
from ..chemistry.elements import Element
from ..chemistry.parsing import parse_pro_forma
from ..errors import FormulaParseError, ProFormaParseError
from ..glycan.monosaccharide import parse_composition
from .aminoacid import AminoAcid
from .modification import (
    CrossLinkName,
    FormulaModification,
    GlycanComposition,
    MassModification,
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
from .placement import SequencePosition, rules
from .validation import (
    UnknownPositionEntry,
    apply_global_modifications,
    apply_ranged_unknown_position_modifications,
    apply_unknown_position_modifications,
    resolve_cross_links,
)

_MASS = re.compile(r"[+-]\d+(\.\d*)?([eE][+-]?\d+)?$")
_ISOTOPE = re.compile(r"(\d+)([A-Z][a-z]?)$")
_GROUP = re.compile(r"([^()]*)(?:\(([^()]*)\))?$")


@dataclass
class _Label:
    kind: str  # "xl", "group" or "" when unlabelled
    name: str = ""
    score: Optional[float] = None


@dataclass
class _Token:
    modification: Optional[SimpleModification]
    label: _Label
    name: str


@dataclass
class _ChainState:
    """What one chain collected while reading, placed once the chain is complete."""

    peptidoform: Peptidoform = field(default_factory=Peptidoform)
    unknown: List[UnknownPositionEntry] = field(default_factory=list)
    ranged: List[Tuple[int, int, SimpleModification]] = field(default_factory=list)
    groups: Dict[str, Tuple[Optional[SimpleModification], List[Tuple[SequencePosition, Optional[float]]]]] = field(
        default_factory=dict
    )


def _error(title: str, explanation: str, text: str, offset: int, length: int = 1) -> ProFormaParseError:
    return ProFormaParseError(title, explanation, text, offset, length)


def _closing(text: str, start: int, opening: str, closing: str) -> int:
    """Index of the bracket closing the one at ``start``."""
    depth = 0
    for index in range(start, len(text)):
        if text[index] == opening:
            depth += 1
        elif text[index] == closing:
            depth -= 1
            if depth == 0:
                return index
    raise _error("Invalid ProForma", f"No closing '{closing}' found", text, start)


def _split_top_level(text: str, separator: str) -> List[Tuple[int, str]]:
    """Split on ``separator`` outside of brackets, keeping the offset of every part.

    A ``+`` right after ``/`` is the sign of a charge, not a separator.
    """
    parts = []
    depth = 0
    start = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char in "[{<(":
            depth += 1
        elif char in "]}>)":
            depth -= 1
        elif depth == 0 and text.startswith(separator, index) and not (
            separator == "+" and text[index - 1:index] == "/"
        ):
            parts.append((start, text[start:index]))
            index += len(separator)
            start = index
            continue
        index += 1
    parts.append((start, text[start:]))
    return parts


# =============================================================================
# Modification tokens
# =============================================================================

def _parse_label(text: str, full: str, offset: int) -> _Label:
    if text.upper().startswith("XL"):
        return _Label("xl", text[2:])
    if text.upper() == "BRANCH":
        return _Label("branch")
    match = _GROUP.match(text)
    if match is None or not match.group(1):
        raise _error("Invalid modification label", "A label should be XL, BRANCH or a group name", full, offset, len(text))
    score = None
    if match.group(2) is not None:
        try:
            score = float(match.group(2))
        except ValueError:
            raise _error(
                "Invalid localisation score", "The score should be a number", full, offset, len(text)
            ) from None
    return _Label("group", match.group(1), score)


def parse_modification(text: str, full: Optional[str] = None, offset: int = 0) -> _Token:
    """Read the inside of one ``[...]`` modification."""
    full = text if full is None else full
    body, hash_sign, label_text = text.partition("#")
    label = _parse_label(label_text, full, offset + len(body) + 1) if hash_sign else _Label("")
    if not body:
        if not hash_sign:
            raise _error("Invalid modification", "A modification cannot be empty", full, offset)
        return _Token(None, label, "")
    head, colon, tail = body.partition(":")
    try:
        if colon and head.lower() == "formula":
            simple = FormulaModification(parse_pro_forma(tail))
        elif colon and head.lower() == "glycan":
            simple = GlycanComposition(parse_composition(tail))
        elif _MASS.match(body):
            simple = MassModification(float(body))
        else:
            simple = modification(body)
    except FormulaParseError as err:
        raise _error(err.title, err.explanation, full, offset + len(head) + 1 + err.offset, err.length) from err
    except ValueError as err:
        raise _error("Invalid modification", str(err), full, offset, len(body)) from err
    return _Token(simple, label, body)


def _parse_global(text: str, full: str, offset: int):
    if text.startswith("["):
        end = _closing(text, 0, "[", "]")
        token = parse_modification(text[1:end], full, offset + 1)
        at = text[end + 1:]
        if not at.startswith("@") or token.modification is None:
            raise _error("Invalid global modification", "Use <[mod]@AA,...>", full, offset, len(text))
        locations = []
        for location in at[1:].split(","):
            if location in ("N-term", "C-term"):
                locations.append("AnyNTerm" if location == "N-term" else "AnyCTerm")
            else:
                locations.append(f"{location}@Anywhere")
        return FixedGlobal(token.modification, rules(*locations))
    match = _ISOTOPE.match(text)
    if match is None:
        raise _error("Invalid global modification", "Use <13C> style isotopes", full, offset, len(text))
    try:
        element = Element.from_symbol(match.group(2))
    except ValueError as err:
        raise _error("Invalid global modification", str(err), full, offset, len(text)) from err
    return IsotopeGlobal(element, int(match.group(1)))


# =============================================================================
# Chains
# =============================================================================

class _Cursor:
    def __init__(self, text: str, full: str, offset: int):
        self.text = text
        self.full = full
        self.offset = offset
        self.index = 0

    def at_end(self) -> bool:
        return self.index >= len(self.text)

    def peek(self, ahead: int = 0) -> str:
        position = self.index + ahead
        return self.text[position] if position < len(self.text) else ""

    def bracket(self, opening: str, closing: str) -> Tuple[str, int]:
        start = self.index
        end = _closing(self.text, start, opening, closing)
        self.index = end + 1
        return self.text[start + 1:end], self.offset + start + 1


def _record(
    state: _ChainState,
    token: _Token,
    position: SequencePosition,
    chain_index: int,
    cross_links: Dict[str, int],
    definitions: List[Tuple[CrossLinkName, Optional[SimpleModification]]],
    sites: Dict[int, List[Tuple[int, SequencePosition]]],
):
    """Attach one modification token to ``position``."""
    label = token.label
    if label.kind in ("xl", "branch"):
        name = CrossLinkName.BRANCH if label.kind == "branch" else CrossLinkName(label.name)
        key = str(name)
        if key not in cross_links:
            cross_links[key] = len(definitions)
            definitions.append((name, None))
        id = cross_links[key]
        if token.modification is not None:
            definitions[id] = (name, token.modification)
        sites.setdefault(id, []).append((chain_index, position))
    elif label.kind == "group":
        simple, positions = state.groups.get(label.name, (None, []))
        positions.append((position, label.score))
        state.groups[label.name] = (token.modification or simple, positions)
    elif token.modification is not None:
        state.peptidoform.add_modification(position, Simple(token.modification))


def _parse_chain(
    text: str,
    full: str,
    offset: int,
    chain_index: int,
    cross_links: Dict[str, int],
    definitions: List[Tuple[CrossLinkName, Optional[SimpleModification]]],
    sites: Dict[int, List[Tuple[int, SequencePosition]]],
) -> _ChainState:
    state = _ChainState()
    cursor = _Cursor(text, full, offset)
    peptidoform = state.peptidoform

    # Labile and unknown position modifications
    while cursor.peek() in ("{", "["):
        if cursor.peek() == "{":
            body, start = cursor.bracket("{", "}")
            token = parse_modification(body, full, start)
            if token.modification is None:
                raise _error("Invalid labile modification", "A labile modification needs a name", full, start)
            peptidoform.labile.append(token.modification)
            continue
        save = cursor.index
        body, start = cursor.bracket("[", "]")
        count = 1
        if cursor.peek() == "^":
            cursor.index += 1
            digits = re.match(r"\d+", cursor.text[cursor.index:])
            if digits is None:
                raise _error("Invalid unknown position modification", "Expected a count after '^'", full, offset + cursor.index)
            count = int(digits.group(0))
            cursor.index += len(digits.group(0))
        if cursor.peek() != "?":
            # An N-terminal modification
            cursor.index = save
            break
        cursor.index += 1
        token = parse_modification(body, full, start)
        if token.modification is None:
            raise _error("Invalid unknown position modification", "A modification name is needed", full, start)
        group = token.label.name if token.label.kind == "group" else None
        for _ in range(count):
            state.unknown.append(UnknownPositionEntry(token.modification, token.name, group))

    # N-terminal modifications
    save = cursor.index
    n_terminal = []
    while cursor.peek() == "[":
        n_terminal.append(cursor.bracket("[", "]"))
    if n_terminal and cursor.peek() == "-":
        cursor.index += 1
        for body, start in n_terminal:
            _record(state, parse_modification(body, full, start), SequencePosition.N_TERM,
                    chain_index, cross_links, definitions, sites)
    else:
        cursor.index = save

    ranged_start = None
    while not cursor.at_end():
        char = cursor.peek()
        if char == "-" and cursor.peek(1) == "[":
            cursor.index += 1
            while cursor.peek() == "[":
                body, start = cursor.bracket("[", "]")
                _record(state, parse_modification(body, full, start), SequencePosition.C_TERM,
                        chain_index, cross_links, definitions, sites)
            if not cursor.at_end():
                raise _error("Invalid ProForma", "Nothing may follow the C-terminal modification", full,
                             offset + cursor.index)
            break
        if char == "(" and cursor.peek(1) == "?":
            ranged_start = len(peptidoform.sequence)
            cursor.index += 2
            continue
        if char == ")":
            if ranged_start is None:
                raise _error("Invalid ProForma", "Unopened ')'", full, offset + cursor.index)
            cursor.index += 1
            end = len(peptidoform.sequence) - 1
            while cursor.peek() == "[":
                body, start = cursor.bracket("[", "]")
                token = parse_modification(body, full, start)
                if token.modification is None:
                    raise _error("Invalid ranged modification", "A modification name is needed", full, start)
                state.ranged.append((ranged_start, end, token.modification))
            ranged_start = None
            continue
        if char == "[":
            if not peptidoform.sequence:
                raise _error("Invalid ProForma", "A modification needs a preceding residue", full, offset + cursor.index)
            body, start = cursor.bracket("[", "]")
            position = SequencePosition.at(len(peptidoform.sequence) - 1)
            _record(state, parse_modification(body, full, start), position,
                    chain_index, cross_links, definitions, sites)
            continue
        try:
            aminoacid = AminoAcid.from_code(char)
        except ValueError as err:
            raise _error("Invalid amino acid", str(err), full, offset + cursor.index) from err
        peptidoform.sequence.append(SequenceElement(aminoacid))
        cursor.index += 1
    if ranged_start is not None:
        raise _error("Invalid ProForma", "Unclosed '(?'", full, offset + len(text) - 1)
    if not peptidoform.sequence:
        raise _error("Invalid ProForma", "A peptide needs at least one residue", full, offset, len(text))
    return state


def _finish_chain(state: _ChainState, global_modifications, full: str):
    peptidoform = state.peptidoform
    if not apply_global_modifications(peptidoform, global_modifications):
        raise _error("Invalid global isotope modification", "The element does not have this isotope", full, 0, len(full))
    for name, (simple, positions) in state.groups.items():
        if simple is None:
            raise _error("Invalid ambiguous modification", f"The group '{name}' is never defined", full, 0, len(full))
        peptidoform.add_ambiguous_modification(simple, name, positions)
    apply_unknown_position_modifications(peptidoform, state.unknown)
    apply_ranged_unknown_position_modifications(peptidoform, state.ranged)


def parse_proforma(text: str) -> CompoundPeptidoformIon:
    """Read a ProForma string into a :class:`CompoundPeptidoformIon`.

    Raises
    ------
    ProFormaParseError
        For text outside the supported grammar
    CrossLinkError, PlacementError, UnknownPositionError
        For modifications that cannot be placed as written
    """
    index = 0
    global_modifications = []
    while text.startswith("<", index):
        end = _closing(text, index, "<", ">")
        global_modifications.append(_parse_global(text[index + 1:end], text, index + 1))
        index = end + 1

    ions = []
    for ion_offset, ion_text in _split_top_level(text[index:], "+"):
        ion_offset += index
        charge = None
        chains_text = _split_top_level(ion_text, "//")
        last_offset, last = chains_text[-1]
        charge_parts = _split_top_level(last, "/")
        if len(charge_parts) == 2:
            charge_offset, charge_text = charge_parts[1]
            if not charge_text.lstrip("+").isdigit():
                raise _error("Invalid charge", "The charge should be a number", text,
                             ion_offset + last_offset + charge_offset, len(charge_text))
            charge = int(charge_text)
            chains_text[-1] = (last_offset, charge_parts[0][1])
        elif len(charge_parts) > 2:
            raise _error("Invalid ProForma", "Unexpected '/'", text, ion_offset + last_offset)

        cross_links: Dict[str, int] = {}
        definitions: List[Tuple[CrossLinkName, Optional[SimpleModification]]] = []
        sites: Dict[int, List[Tuple[int, SequencePosition]]] = {}
        chains = []
        for chain_index, (chain_offset, chain_text) in enumerate(chains_text):
            state = _parse_chain(
                chain_text, text, ion_offset + chain_offset, chain_index, cross_links, definitions, sites
            )
            _finish_chain(state, global_modifications, text)
            if charge is not None:
                state.peptidoform.charge_carriers = MolecularCharge.proton(charge)
            chains.append(state.peptidoform)
        ions.append(resolve_cross_links(chains, sites, definitions))
    return CompoundPeptidoformIon(ions)


def parse_peptidoform(text: str) -> Peptidoform:
    """Read a ProForma string describing one single chain."""
    compound = parse_proforma(text)
    if len(compound.peptidoform_ions) != 1 or len(compound.peptidoform_ions[0].peptidoforms) != 1:
        raise _error("Invalid ProForma", "Expected a single peptide", text, 0, len(text))
    return compound.peptidoform_ions[0].peptidoforms[0]


def parse_peptidoform_ion(text: str) -> PeptidoformIon:
    """Read a ProForma string describing one (possibly cross-linked) ion."""
    compound = parse_proforma(text)
    if len(compound.peptidoform_ions) != 1:
        raise _error("Invalid ProForma", "Expected a single peptidoform ion", text, 0, len(text))
    return compound.peptidoform_ions[0]
