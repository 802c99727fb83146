"""Amino acids and their residue, side chain and satellite formulas.

Residue formulas are the in-chain formulas (free amino acid minus water).
Ambiguous codes B (N or D) and Z (Q or E) resolve to two alternative formulas,
each labelled with the residue it stands for; J (I or L) has one formula but
both satellite options.

Sources
-------
- IUPAC/Unimod residue compositions: https://www.unimod.org/masses.html
"""

from enum import Enum
from typing import Dict, List, Tuple

from ..chemistry.formula import MolecularFormula, formula
from ..chemistry.labels import AminoAcidLabel
from ..chemistry.multi import Multi

# Glycine residue without its side chain hydrogen
BACKBONE = formula("H3C2NO")


class AminoAcid(Enum):
    """One letter amino acid codes, including the ambiguous B, J, Z and X."""

    Alanine = "A"
    Arginine = "R"
    Asparagine = "N"
    AsparticAcid = "D"
    AmbiguousAsparagine = "B"
    Cysteine = "C"
    Glutamine = "Q"
    GlutamicAcid = "E"
    AmbiguousGlutamine = "Z"
    Glycine = "G"
    Histidine = "H"
    Isoleucine = "I"
    Leucine = "L"
    AmbiguousLeucine = "J"
    Lysine = "K"
    Methionine = "M"
    Phenylalanine = "F"
    Proline = "P"
    Pyrrolysine = "O"
    Selenocysteine = "U"
    Serine = "S"
    Threonine = "T"
    Tryptophan = "W"
    Tyrosine = "Y"
    Valine = "V"
    Unknown = "X"

    @property
    def code(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_code(cls, code: str) -> "AminoAcid":
        try:
            return cls(code.upper())
        except ValueError:
            raise ValueError(f"Unknown amino acid: {code}") from None

    def formulas(
        self, sequence_index: int = 0, peptidoform_index: int = 0, peptidoform_ion_index: int = 0
    ) -> Multi:
        """Residue formula(s); B and Z give two labelled alternatives."""
        options = _AMBIGUOUS.get(self)
        if options is None:
            return Multi.of(_RESIDUES[self])
        return Multi(
            _RESIDUES[option].with_label(
                AminoAcidLabel(option.code, sequence_index, peptidoform_index, peptidoform_ion_index)
            )
            for option in options
        )

    def single_formula(self) -> MolecularFormula:
        """Residue formula, raising for B and Z which have no single formula."""
        if self in _AMBIGUOUS:
            raise ValueError(f"Amino acid {self.code} has more than one formula")
        return _RESIDUES[self]

    def side_chain(self) -> Multi:
        options = _AMBIGUOUS.get(self, (self,))
        return Multi(_SIDE_CHAINS[option] for option in options)

    def satellite_ion_fragments(self) -> List[Tuple[str, MolecularFormula]]:
        """Side chain groups lost in d and w ions, labelled for I/T/J which have two."""
        return _SATELLITES.get(self, [])

    def immonium_formulas(self) -> Multi:
        return self.formulas() - formula("CO")

    def canonical_options(self) -> Tuple["AminoAcid", ...]:
        return _AMBIGUOUS.get(self, (self,))


_RESIDUES: Dict[AminoAcid, MolecularFormula] = {
    AminoAcid.Alanine: formula("H5C3ON"),
    AminoAcid.Arginine: formula("H12C6ON4"),
    AminoAcid.Asparagine: formula("H6C4O2N2"),
    AminoAcid.AsparticAcid: formula("H5C4O3N"),
    AminoAcid.Cysteine: formula("H5C3ONS"),
    AminoAcid.Glutamine: formula("H8C5O2N2"),
    AminoAcid.GlutamicAcid: formula("H7C5O3N"),
    AminoAcid.Glycine: formula("H3C2ON"),
    AminoAcid.Histidine: formula("H7C6ON3"),
    AminoAcid.Isoleucine: formula("H11C6ON"),
    AminoAcid.Leucine: formula("H11C6ON"),
    AminoAcid.AmbiguousLeucine: formula("H11C6ON"),
    AminoAcid.Lysine: formula("H12C6ON2"),
    AminoAcid.Methionine: formula("H9C5ONS"),
    AminoAcid.Phenylalanine: formula("H9C9ON"),
    AminoAcid.Proline: formula("H7C5ON"),
    AminoAcid.Pyrrolysine: formula("H19C11O2N3"),
    AminoAcid.Selenocysteine: formula("H5C3ONSe"),
    AminoAcid.Serine: formula("H5C3O2N"),
    AminoAcid.Threonine: formula("H7C4O2N"),
    AminoAcid.Tryptophan: formula("H10C11ON2"),
    AminoAcid.Tyrosine: formula("H9C9O2N"),
    AminoAcid.Valine: formula("H9C5ON"),
    AminoAcid.Unknown: MolecularFormula(),
}

_AMBIGUOUS: Dict[AminoAcid, Tuple[AminoAcid, ...]] = {
    AminoAcid.AmbiguousAsparagine: (AminoAcid.Asparagine, AminoAcid.AsparticAcid),
    AminoAcid.AmbiguousGlutamine: (AminoAcid.Glutamine, AminoAcid.GlutamicAcid),
}

_SIDE_CHAINS: Dict[AminoAcid, MolecularFormula] = {
    AminoAcid.Alanine: formula("H3C"),
    AminoAcid.Arginine: formula("H10C4N3"),
    AminoAcid.Asparagine: formula("H4C2ON"),
    AminoAcid.AsparticAcid: formula("H3C2O2"),
    AminoAcid.Cysteine: formula("H3CS"),
    AminoAcid.Glutamine: formula("H6C3ON"),
    AminoAcid.GlutamicAcid: formula("H5C3O2"),
    AminoAcid.Glycine: formula("H"),
    AminoAcid.Histidine: formula("H5C4N2"),
    AminoAcid.Isoleucine: formula("H9C4"),
    AminoAcid.Leucine: formula("H9C4"),
    AminoAcid.AmbiguousLeucine: formula("H9C4"),
    AminoAcid.Lysine: formula("H10C4N"),
    AminoAcid.Methionine: formula("H7C3S"),
    AminoAcid.Phenylalanine: formula("H7C7"),
    AminoAcid.Proline: formula("H5C3"),
    AminoAcid.Pyrrolysine: formula("H17C9ON2"),
    AminoAcid.Selenocysteine: formula("H3CSe"),
    AminoAcid.Serine: formula("H3CO"),
    AminoAcid.Threonine: formula("H5C2O"),
    AminoAcid.Tryptophan: formula("H8C9N"),
    AminoAcid.Tyrosine: formula("H7C7O"),
    AminoAcid.Valine: formula("H7C3"),
    AminoAcid.Unknown: MolecularFormula(),
}

# Groups lost from the side chain in d/w ions; residues without are absent
_SATELLITES: Dict[AminoAcid, List[Tuple[str, MolecularFormula]]] = {
    AminoAcid.Arginine: [("", formula("H9C2N2"))],
    AminoAcid.Asparagine: [("", formula("H2CNO"))],
    AminoAcid.AsparticAcid: [("", formula("HCO2"))],
    AminoAcid.Cysteine: [("", formula("HS"))],
    AminoAcid.Glutamine: [("", formula("H4C2NO"))],
    AminoAcid.GlutamicAcid: [("", formula("H3C2O2"))],
    AminoAcid.Isoleucine: [("a", formula("H3C")), ("b", formula("H5C2"))],
    AminoAcid.Leucine: [("", formula("H7C3"))],
    AminoAcid.AmbiguousLeucine: [
        ("", formula("H7C3")),
        ("a", formula("H3C")),
        ("b", formula("H5C2")),
    ],
    AminoAcid.Lysine: [("", formula("H8C3N"))],
    AminoAcid.Methionine: [("", formula("H5C2S"))],
    AminoAcid.Pyrrolysine: [("", formula("H15C9N2O"))],
    AminoAcid.Selenocysteine: [("", formula("Se"))],
    AminoAcid.Serine: [("", formula("HO"))],
    AminoAcid.Threonine: [("a", formula("HO")), ("b", formula("H3C"))],
    AminoAcid.Valine: [("", formula("H3C"))],
}
