"""Elements and their isotope tables.

Every element known to the formula algebra is a member of :class:`Element`.
Each member carries its symbol, atomic number and a table of
``(mass number, isotope mass, natural abundance)`` entries. The table is
process-wide reference data: it is built once at import and never mutated,
so concurrent readers need no synchronisation.

Key Features
------------
- Monoisotopic mass (most abundant isotope), average weight, explicit
  isotope masses
- Validity gate for (element, isotope) pairs used by the formula algebra
- Electron as a pseudo element so charges live inside formulas

Coverage
--------
Stable elements up to Br, except Sc and Ge, plus Rb, Sr, Mo, Ag, I, Cs,
the mass cytometry lanthanides La, Pr, Eu, Tb, Ho, Tm and Lu, and Pt, Au,
Hg and Pb. Any other element symbol, for example Sn, Ba, Gd or U, is
rejected by the formula parsers as not a valid character.

Sources
-------
- NIST atomic weights and isotopic compositions:
  https://www.nist.gov/pml/atomic-weights-and-isotopic-compositions-relative-atomic-masses
- NIST 2018 CODATA electron mass
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..constants import ELECTRON_MASS

# =============================================================================
# Isotope Table
# =============================================================================

# symbol -> [(mass number, exact mass, natural abundance)]
# Abundance 0.0 marks radioactive isotopes that can still be used as labels
_ISOTOPES: Dict[str, List[Tuple[int, float, float]]] = {
    "H": [
        (1, 1.00782503223, 0.999885),
        (2, 2.01410177812, 0.000115),
        (3, 3.0160492779, 0.0),
    ],
    "He": [(3, 3.0160293201, 0.00000134), (4, 4.00260325413, 0.99999866)],
    "Li": [(6, 6.0151228874, 0.0759), (7, 7.0160034366, 0.9241)],
    "Be": [(9, 9.012183065, 1.0)],
    "B": [(10, 10.01293695, 0.199), (11, 11.00930536, 0.801)],
    "C": [
        (12, 12.0, 0.9893),
        (13, 13.00335483507, 0.0107),
        (14, 14.0032419884, 0.0),
    ],
    "N": [(14, 14.00307400443, 0.99636), (15, 15.00010889888, 0.00364)],
    "O": [
        (16, 15.99491461957, 0.99757),
        (17, 16.99913175650, 0.00038),
        (18, 17.99915961286, 0.00205),
    ],
    "F": [(19, 18.99840316273, 1.0)],
    "Ne": [
        (20, 19.9924401762, 0.9048),
        (21, 20.993846685, 0.0027),
        (22, 21.991385114, 0.0925),
    ],
    "Na": [(23, 22.9897692820, 1.0)],
    "Mg": [
        (24, 23.985041697, 0.7899),
        (25, 24.985836976, 0.1000),
        (26, 25.982592968, 0.1101),
    ],
    "Al": [(27, 26.98153853, 1.0)],
    "Si": [
        (28, 27.97692653465, 0.92223),
        (29, 28.97649466490, 0.04685),
        (30, 29.973770136, 0.03092),
    ],
    "P": [(31, 30.97376199842, 1.0)],
    "S": [
        (32, 31.9720711744, 0.9499),
        (33, 32.9714589098, 0.0075),
        (34, 33.967867004, 0.0425),
        (36, 35.96708071, 0.0001),
    ],
    "Cl": [(35, 34.968852682, 0.7576), (37, 36.965902602, 0.2424)],
    "Ar": [
        (36, 35.967545105, 0.003336),
        (38, 37.96273211, 0.000629),
        (40, 39.9623831237, 0.996035),
    ],
    "K": [
        (39, 38.9637064864, 0.932581),
        (40, 39.963998166, 0.000117),
        (41, 40.9618252579, 0.067302),
    ],
    "Ca": [
        (40, 39.962590863, 0.96941),
        (42, 41.95861783, 0.00647),
        (43, 42.95876644, 0.00135),
        (44, 43.9554816, 0.02086),
        (46, 45.953689, 0.00004),
        (48, 47.95252276, 0.00187),
    ],
    "Ti": [
        (46, 45.95262772, 0.0825),
        (47, 46.95175879, 0.0744),
        (48, 47.94794198, 0.7372),
        (49, 48.94786568, 0.0541),
        (50, 49.94478689, 0.0518),
    ],
    "V": [(50, 49.94715601, 0.0025), (51, 50.94395704, 0.9975)],
    "Cr": [
        (50, 49.94604183, 0.04345),
        (52, 51.94050623, 0.83789),
        (53, 52.94064815, 0.09501),
        (54, 53.93887916, 0.02365),
    ],
    "Mn": [(55, 54.93804391, 1.0)],
    "Fe": [
        (54, 53.93960899, 0.05845),
        (56, 55.93493633, 0.91754),
        (57, 56.93539284, 0.02119),
        (58, 57.93327443, 0.00282),
    ],
    "Co": [(59, 58.93319429, 1.0)],
    "Ni": [
        (58, 57.93534241, 0.68077),
        (60, 59.93078588, 0.26223),
        (61, 60.93105557, 0.011399),
        (62, 61.92834537, 0.036346),
        (64, 63.92796682, 0.009255),
    ],
    "Cu": [(63, 62.92959772, 0.6915), (65, 64.92778970, 0.3085)],
    "Zn": [
        (64, 63.92914201, 0.4917),
        (66, 65.92603381, 0.2773),
        (67, 66.92712775, 0.0404),
        (68, 67.92484455, 0.1845),
        (70, 69.9253192, 0.0061),
    ],
    "Ga": [(69, 68.9255735, 0.60108), (71, 70.92470258, 0.39892)],
    "As": [(75, 74.92159457, 1.0)],
    "Se": [
        (74, 73.922475934, 0.0089),
        (76, 75.919213704, 0.0937),
        (77, 76.919914154, 0.0763),
        (78, 77.91730928, 0.2377),
        (80, 79.9165218, 0.4961),
        (82, 81.9166995, 0.0873),
    ],
    "Br": [(79, 78.9183376, 0.5069), (81, 80.9162897, 0.4931)],
    "Rb": [(85, 84.9117897379, 0.7217), (87, 86.9091805310, 0.2783)],
    "Sr": [
        (84, 83.9134191, 0.0056),
        (86, 85.9092606, 0.0986),
        (87, 86.9088775, 0.0700),
        (88, 87.9056125, 0.8258),
    ],
    "Mo": [
        (92, 91.90680796, 0.1453),
        (94, 93.90508490, 0.0915),
        (95, 94.90583877, 0.1584),
        (96, 95.90467612, 0.1667),
        (97, 96.90601812, 0.0960),
        (98, 97.90540482, 0.2439),
        (100, 99.9074718, 0.0982),
    ],
    "Ag": [(107, 106.9050916, 0.51839), (109, 108.9047553, 0.48161)],
    "I": [(127, 126.9044719, 1.0)],
    "Cs": [(133, 132.9054519610, 1.0)],
    "La": [(138, 137.9071149, 0.0008881), (139, 138.9063563, 0.9991119)],
    "Pr": [(141, 140.9076576, 1.0)],
    "Eu": [(151, 150.9198578, 0.4781), (153, 152.9212380, 0.5219)],
    "Tb": [(159, 158.9253547, 1.0)],
    "Ho": [(165, 164.9303288, 1.0)],
    "Tm": [(169, 168.9342179, 1.0)],
    "Lu": [(175, 174.9407752, 0.97401), (176, 175.9426897, 0.02599)],
    "Pt": [
        (190, 189.9599297, 0.00012),
        (192, 191.9610387, 0.00782),
        (194, 193.9626809, 0.3286),
        (195, 194.9647917, 0.3378),
        (196, 195.96495209, 0.2521),
        (198, 197.9678949, 0.07356),
    ],
    "Au": [(197, 196.96656879, 1.0)],
    "Hg": [
        (196, 195.9658326, 0.0015),
        (198, 197.96676860, 0.0997),
        (199, 198.96828064, 0.1687),
        (200, 199.96832659, 0.2310),
        (201, 200.97030284, 0.1318),
        (202, 201.97064340, 0.2986),
        (204, 203.97349398, 0.0687),
    ],
    "Pb": [
        (204, 203.9730440, 0.014),
        (206, 205.9744657, 0.241),
        (207, 206.9758973, 0.221),
        (208, 207.9766525, 0.524),
    ],
}


# =============================================================================
# Element Enum
# =============================================================================

class Element(Enum):
    """A chemical element (or the electron pseudo element).

    The enum value is ``(symbol, atomic number)``; formulas are sorted on the
    atomic number, with the electron (number 0) first.

    Examples
    --------
    >>> Element.C.monoisotopic_mass()
    12.0
    >>> Element.from_symbol("Se").number
    34
    """

    Electron = ("e", 0)
    H = ("H", 1)
    He = ("He", 2)
    Li = ("Li", 3)
    Be = ("Be", 4)
    B = ("B", 5)
    C = ("C", 6)
    N = ("N", 7)
    O = ("O", 8)
    F = ("F", 9)
    Ne = ("Ne", 10)
    Na = ("Na", 11)
    Mg = ("Mg", 12)
    Al = ("Al", 13)
    Si = ("Si", 14)
    P = ("P", 15)
    S = ("S", 16)
    Cl = ("Cl", 17)
    Ar = ("Ar", 18)
    K = ("K", 19)
    Ca = ("Ca", 20)
    Ti = ("Ti", 22)
    V = ("V", 23)
    Cr = ("Cr", 24)
    Mn = ("Mn", 25)
    Fe = ("Fe", 26)
    Co = ("Co", 27)
    Ni = ("Ni", 28)
    Cu = ("Cu", 29)
    Zn = ("Zn", 30)
    Ga = ("Ga", 31)
    As = ("As", 33)
    Se = ("Se", 34)
    Br = ("Br", 35)
    Rb = ("Rb", 37)
    Sr = ("Sr", 38)
    Mo = ("Mo", 42)
    Ag = ("Ag", 47)
    I = ("I", 53)  # noqa: E741
    Cs = ("Cs", 55)
    La = ("La", 57)
    Pr = ("Pr", 59)
    Eu = ("Eu", 63)
    Tb = ("Tb", 65)
    Ho = ("Ho", 67)
    Tm = ("Tm", 69)
    Lu = ("Lu", 71)
    Pt = ("Pt", 78)
    Au = ("Au", 79)
    Hg = ("Hg", 80)
    Pb = ("Pb", 82)

    @property
    def symbol(self) -> str:
        return self.value[0]

    @property
    def number(self) -> int:
        return self.value[1]

    @classmethod
    def from_symbol(cls, symbol: str) -> "Element":
        """Look up an element by its (case sensitive) symbol."""
        try:
            return _BY_SYMBOL[symbol]
        except KeyError:
            raise ValueError(f"Unknown element symbol: {symbol}") from None

    def isotopes(self) -> List[Tuple[int, float, float]]:
        """All known isotopes as (mass number, mass, abundance), lightest first."""
        return _ISOTOPES.get(self.symbol, [])

    def is_valid(self, isotope: Optional[int] = None) -> bool:
        """Whether this element has a known mass for ``isotope``.

        ``None`` asks for the natural distribution.
        """
        if self is Element.Electron:
            return isotope is None
        if isotope is None:
            return any(abundance > 0.0 for _, _, abundance in self.isotopes())
        return any(number == isotope for number, _, _ in self.isotopes())

    def mass(self, isotope: Optional[int] = None) -> Optional[float]:
        """Exact mass of ``isotope``, or the monoisotopic mass for ``None``."""
        if self is Element.Electron:
            return ELECTRON_MASS
        if isotope is None:
            return self.monoisotopic_mass()
        for number, mass, _ in self.isotopes():
            if number == isotope:
                return mass
        return None

    def monoisotopic_mass(self) -> Optional[float]:
        if self is Element.Electron:
            return ELECTRON_MASS
        return _MONOISOTOPIC.get(self.symbol)

    def average_weight(self, isotope: Optional[int] = None) -> Optional[float]:
        """Abundance weighted mass, or the exact mass for a given isotope."""
        if self is Element.Electron:
            return ELECTRON_MASS
        if isotope is not None:
            return self.mass(isotope)
        return _AVERAGE.get(self.symbol)


_BY_SYMBOL = {element.symbol: element for element in Element}

# Most abundant isotope defines the monoisotopic mass
_MONOISOTOPIC = {
    symbol: max(table, key=lambda entry: entry[2])[1]
    for symbol, table in _ISOTOPES.items()
}

_AVERAGE = {
    symbol: sum(mass * abundance for _, mass, abundance in table)
    / sum(abundance for _, _, abundance in table)
    for symbol, table in _ISOTOPES.items()
}

# Longest symbols first so 'Se' is not read as 'S' followed by 'e'
ELEMENT_PARSE_LIST: List[Tuple[str, Element]] = sorted(
    ((element.symbol, element) for element in Element if element is not Element.Electron),
    key=lambda entry: -len(entry[0]),
)
