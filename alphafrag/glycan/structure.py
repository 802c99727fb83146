"""Glycan structures as an arena-backed rose tree.

Nodes are stored in flat tuples (pre-order, root at index 0) with child
index lists, so every walk over the tree is a fold over indices. On top of
the tree this module computes glycan positions (depth from the root, depth
from the closest leaf, branch naming) and the break points used for
structural B/Y fragments and for glycan cores on peptide fragments.

Text form (``GlycanStructure.parse``)::

    Hex(Hex(HexNAc))          Hex-Hex-HexNAc (linear)
    HexNAc(dHex,HexNAc(Hex))  a core with a fucose branch
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from ..chemistry.formula import MolecularFormula
from ..errors import FormulaParseError
from .monosaccharide import Composition, MonoSaccharide, match_sugar, simplify_composition

_GREEK = [chr(c) for c in range(0x03B1, 0x03CA)] + [chr(c) for c in range(0x0391, 0x03AA)]


@dataclass(frozen=True)
class GlycanPosition:
    """Where a break sits inside a glycan.

    Parameters
    ----------
    inner_depth : int
        Steps from the root (the monosaccharide bound to the peptide)
    series_number : int
        Number of the ion in its series, counted from the series terminal
    branch : tuple of (int, int)
        Branches taken from the root, as (index, index when sorted on mass)
    attachment : (AminoAcid, SequencePosition) or None
        Residue the glycan sits on, if known
    """

    inner_depth: int
    series_number: int
    branch: Tuple[Tuple[int, int], ...] = ()
    attachment: Optional[Tuple[Any, Any]] = None

    def branch_names(self) -> str:
        names = []
        for i, (_, mass_index) in enumerate(self.branch):
            if i == 0:
                names.append(_GREEK[mass_index])
            elif i == 1:
                names.append("'" * mass_index)
            else:
                names.append(f",{mass_index}")
        return "".join(names)

    def label(self) -> str:
        return f"{self.series_number}{self.branch_names()}"

    def __str__(self) -> str:
        return self.label()


class BreakKind(Enum):
    END = "End"
    Y = "Y"
    B = "B"


@dataclass(frozen=True)
class GlycanBreakPos:
    """A bond that broke (``Y``/``B``) or a chain kept up to its end (``END``)."""

    kind: BreakKind
    position: GlycanPosition

    def __str__(self) -> str:
        return f"{self.kind.value}{self.position.label()}"


BreakPoint = Tuple[MolecularFormula, Tuple[GlycanBreakPos, ...], int]


@dataclass(frozen=True)
class GlycanStructure:
    """A glycan tree.

    Parameters
    ----------
    sugars : tuple of MonoSaccharide
        Node sugars in pre-order, the root first
    children : tuple of tuple of int
        For every node the indices of its branches, in written order
    """

    sugars: Tuple[MonoSaccharide, ...]
    children: Tuple[Tuple[int, ...], ...]

    @classmethod
    def leaf(cls, sugar: MonoSaccharide) -> "GlycanStructure":
        return cls((sugar,), ((),))

    # =========================================================================
    # Parsing and display
    # =========================================================================

    @classmethod
    def parse(cls, text: str) -> "GlycanStructure":
        """Parse ``Sugar(branch,branch,...)`` notation.

        Raises
        ------
        FormulaParseError
            For unknown sugars, unclosed brackets or missing commas
        """
        sugars: List[MonoSaccharide] = []
        children: List[List[int]] = []

        def node(index: int) -> int:
            found = match_sugar(text, index)
            if found is None:
                raise FormulaParseError(
                    "Could not parse glycan structure",
                    "Could not parse the following part",
                    text, index, len(text) - index,
                )
            sugar, length = found
            own = len(sugars)
            sugars.append(sugar)
            children.append([])
            index += length
            if index < len(text) and text[index] == "(":
                start = index
                index += 1
                while True:
                    children[own].append(len(sugars))
                    index = node(index)
                    if index >= len(text):
                        raise FormulaParseError(
                            "Invalid glycan branch", "No valid closing delimiter", text, start, 1
                        )
                    if text[index] == ")":
                        return index + 1
                    if text[index] != ",":
                        raise FormulaParseError(
                            "Invalid glycan structure",
                            "Branches should be separated by commas ','",
                            text, index, 1,
                        )
                    index += 1
            return index

        end = node(0)
        if end != len(text):
            raise FormulaParseError(
                "Could not parse glycan structure",
                "Could not parse the following part",
                text, end, len(text) - end,
            )
        return cls(tuple(sugars), tuple(tuple(c) for c in children))

    def __str__(self) -> str:
        def render(index: int) -> str:
            branches = self.children[index]
            if not branches:
                return str(self.sugars[index])
            return f"{self.sugars[index]}({','.join(render(b) for b in branches)})"

        return render(0)

    # =========================================================================
    # Chemistry
    # =========================================================================

    def subtree(self, index: int) -> List[int]:
        """Indices of ``index`` and everything below it."""
        output = []
        stack = [index]
        while stack:
            current = stack.pop()
            output.append(current)
            stack.extend(reversed(self.children[current]))
        return output

    def subtree_formula(self, index: int) -> MolecularFormula:
        return sum((self.sugars[i].formula() for i in self.subtree(index)), MolecularFormula())

    def formula(self) -> MolecularFormula:
        return self.subtree_formula(0)

    def composition(self) -> Composition:
        return simplify_composition([(sugar, 1) for sugar in self.sugars])

    # =========================================================================
    # Positions
    # =========================================================================

    def positions(self) -> List[Tuple[int, int, Tuple[Tuple[int, int], ...]]]:
        """Per node ``(inner_depth, outer_depth, branch)``.

        Branches are ranked on decreasing mass. A node with a single branch
        does not add a level to the branch naming.
        """
        result: List[Any] = [None] * len(self.sugars)
        outer = [0] * len(self.sugars)
        # Pre-order: depth and branch flow down from the parent
        stack = [(0, 0, ())]
        while stack:
            index, depth, branch = stack.pop()
            result[index] = (depth, branch)
            branches = self.children[index]
            if len(branches) == 1:
                stack.append((branches[0], depth + 1, branch))
                continue
            ranked = sorted(
                enumerate(branches),
                key=lambda item: -self.subtree_formula(item[1]).monoisotopic_mass(),
            )
            for mass_index, (branch_index, child) in enumerate(ranked):
                stack.append((child, depth + 1, branch + ((branch_index, mass_index),)))
        # Post-order: outer depth flows up from the leaves
        for index in reversed(range(len(self.sugars))):
            branches = self.children[index]
            outer[index] = max((outer[b] + 1 for b in branches), default=0)
        return [(depth, outer[i], branch) for i, (depth, branch) in enumerate(result)]

    def position(self, index: int, attachment=None, outer: bool = False, positions=None) -> GlycanPosition:
        positions = positions if positions is not None else self.positions()
        inner_depth, outer_depth, branch = positions[index]
        return GlycanPosition(
            inner_depth,
            outer_depth + 1 if outer else inner_depth,
            branch,
            attachment,
        )

    # =========================================================================
    # Break points
    # =========================================================================

    def internal_break_points(self, index: int = 0, depth: int = 0, attachment=None) -> List[BreakPoint]:
        """Every way the bonds at or below ``index`` can break.

        Each option is the formula that is kept, the break positions that
        lead to it, and the depth of the kept part (fucose does not count).
        A leaf is either kept to its end or broken off; an inner node combines
        the options of all its branches and adds the option of breaking off
        right here.
        """
        positions = self.positions()
        return self._break_points(index, depth, attachment, positions)

    def _break_points(self, index: int, depth: int, attachment, positions) -> List[BreakPoint]:
        sugar = self.sugars[index]
        here = self.position(index, attachment, positions=positions)
        broken = (MolecularFormula(), (GlycanBreakPos(BreakKind.Y, here),), depth)
        if not self.children[index]:
            kept_depth = depth + (0 if sugar.is_fucose() else 1)
            return [(sugar.formula(), (GlycanBreakPos(BreakKind.END, here),), kept_depth), broken]

        accumulator: List[BreakPoint] = []
        for child in self.children[index]:
            child_depth = depth + (0 if self.sugars[child].is_fucose() else 1)
            options = self._break_points(child, child_depth, attachment, positions)
            if not accumulator:
                accumulator = options
                continue
            accumulator = [
                (option[0] + base[0], option[1] + base[1], max(option[2], base[2]))
                for base in accumulator
                for option in options
            ]
        output = [(f + sugar.formula(), breaks, d) for f, breaks, d in accumulator]
        output.append(broken)
        return output

    def core_options(
        self, size_range: Tuple[Optional[int], Optional[int]], attachment=None
    ) -> List[Tuple[Tuple[GlycanPosition, ...], MolecularFormula]]:
        """Glycan cores with a depth within ``size_range`` and the Y breaks leading to them."""
        minimum, maximum = size_range
        output = []
        for formula, breaks, depth in self.internal_break_points(0, 0, attachment):
            if (minimum is None or depth >= minimum) and (maximum is None or depth <= maximum):
                output.append(
                    (tuple(b.position for b in breaks if b.kind is not BreakKind.END), formula)
                )
        return output
