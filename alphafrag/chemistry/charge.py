"""Charge states and charge carriers.

A :class:`MolecularCharge` lists the adducts that carry the charge of an ion
(by default protons). For a fragment of charge z every combination of those
carriers that adds up to z is a separate option; :class:`CachedCharge`
memoises the options per charge for the duration of one fragmentation call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .formula import MolecularFormula, formula

PROTON = formula("H:z+1")


# =============================================================================
# Charge Ranges
# =============================================================================

@dataclass(frozen=True)
class ChargePoint:
    """A charge either as absolute value or relative to the precursor charge."""

    value: int
    relative: bool = False

    @classmethod
    def absolute(cls, value: int) -> "ChargePoint":
        return cls(value, False)

    @classmethod
    def relative_to_precursor(cls, offset: int) -> "ChargePoint":
        return cls(offset, True)

    def to_absolute(self, precursor: int) -> int:
        return precursor + self.value if self.relative else self.value


@dataclass(frozen=True)
class ChargeRange:
    """Inclusive range of charges, never below 1.

    Examples
    --------
    >>> list(ChargeRange.ONE_TO_PRECURSOR.charges(3))
    [1, 2, 3]
    """

    start: ChargePoint
    end: ChargePoint

    ONE = None  # type: ChargeRange
    PRECURSOR = None  # type: ChargeRange
    ONE_TO_PRECURSOR = None  # type: ChargeRange

    @classmethod
    def absolute(cls, start: int, end: int) -> "ChargeRange":
        return cls(ChargePoint.absolute(start), ChargePoint.absolute(end))

    def charges(self, precursor: int) -> range:
        start = max(1, self.start.to_absolute(precursor))
        return range(start, self.end.to_absolute(precursor) + 1)


ChargeRange.ONE = ChargeRange(ChargePoint.absolute(1), ChargePoint.absolute(1))
ChargeRange.PRECURSOR = ChargeRange(
    ChargePoint.relative_to_precursor(0), ChargePoint.relative_to_precursor(0)
)
ChargeRange.ONE_TO_PRECURSOR = ChargeRange(
    ChargePoint.absolute(1), ChargePoint.relative_to_precursor(0)
)


# =============================================================================
# Charge Carriers
# =============================================================================

@dataclass(frozen=True)
class MolecularCharge:
    """A set of charge carriers, each with a multiplicity.

    Parameters
    ----------
    charge_carriers : tuple of (int, MolecularFormula)
        ``(count, carrier)``; a carrier's charge is read from its electrons,
        e.g. ``H:z+1`` for a proton or ``Na:z+1`` for sodium
    """

    charge_carriers: Tuple[Tuple[int, MolecularFormula], ...] = ()

    @classmethod
    def proton(cls, charge: int) -> "MolecularCharge":
        if charge == 0:
            return cls(())
        return cls(((charge, PROTON),))

    def is_proton(self) -> bool:
        return all(carrier == PROTON for _, carrier in self.charge_carriers)

    def charge(self) -> int:
        return sum(count * carrier.charge() for count, carrier in self.charge_carriers)

    def formula(self) -> MolecularFormula:
        """All carriers summed into one formula."""
        return sum(
            (carrier * count for count, carrier in self.charge_carriers), MolecularFormula()
        )

    def simplified(self) -> "MolecularCharge":
        """Merge identical carriers, drop zero counts, sort on carrier."""
        merged: Dict[MolecularFormula, int] = {}
        for count, carrier in self.charge_carriers:
            merged[carrier] = merged.get(carrier, 0) + count
        return MolecularCharge(
            tuple((count, carrier) for carrier, count in sorted(merged.items()) if count != 0)
        )

    def options(self, charge: int) -> List["MolecularCharge"]:
        """All carrier combinations with total charge ``charge``.

        Whole copies of this carrier set are used as often as they fit; the
        remainder is made up from every combination of single carriers.
        """
        if charge <= 0:
            raise ValueError(f"Charge options need a positive charge, got {charge}")
        own_charge = self.charge()
        if own_charge <= 0:
            return []
        remainder = charge % own_charge
        quotient = charge // own_charge

        combinations: List[List[Tuple[int, MolecularFormula]]] = []

        def extend(index: int, chosen: List[Tuple[int, MolecularFormula]], total: int):
            if total == remainder:
                combinations.append(list(chosen))
                return
            if index == len(self.charge_carriers) or total > remainder:
                return
            count, carrier = self.charge_carriers[index]
            for n in range(count + 1):
                step = total + n * carrier.charge()
                if step > remainder:
                    break
                chosen.append((n, carrier))
                extend(index + 1, chosen, step)
                chosen.pop()

        extend(0, [], 0)
        options = []
        for combination in combinations:
            carriers = tuple(combination) + self.charge_carriers * quotient
            option = MolecularCharge(carriers).simplified()
            if option not in options:
                options.append(option)
        return options

    def __str__(self) -> str:
        return ",".join(f"{count}{carrier}" for count, carrier in self.charge_carriers)


@dataclass
class CachedCharge:
    """Memoised :meth:`MolecularCharge.options`, one instance per peptidoform."""

    molecular_charge: MolecularCharge
    _options: Dict[int, List[MolecularCharge]] = field(default_factory=dict, repr=False)

    def charge(self) -> int:
        return self.molecular_charge.charge()

    def options(self, charge: int) -> List[MolecularCharge]:
        if charge not in self._options:
            self._options[charge] = self.molecular_charge.options(charge)
        return self._options[charge]

    def range(self, charge_range: ChargeRange) -> List[MolecularCharge]:
        """Options for every charge in ``charge_range`` relative to this precursor."""
        options = []
        for charge in charge_range.charges(self.charge()):
            options.extend(self.options(charge))
        return options
