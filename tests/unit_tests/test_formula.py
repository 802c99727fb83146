"""Unit tests for molecular formulas: algebra, masses and Hill notation."""

import pytest

from alphafrag.chemistry import Element, MassMode, MolecularFormula, formula
from alphafrag.chemistry.labels import AminoAcidLabel
from alphafrag.constants import ELECTRON_MASS, H2O_MASS, PROTON_MASS, validate_constants
from alphafrag.errors import FormulaParseError, InvalidFormulaError
from alphafrag.sequence import parse_peptidoform


class TestMasses:
    """Test monoisotopic and average masses."""

    def test_constants(self):
        """Test the scalar constants are physically reasonable."""
        validate_constants()

    def test_water(self):
        """Test H2O mass and Hill notation."""
        water = formula("H2O1")
        assert abs(water.monoisotopic_mass() - 18.0106) < 1e-4
        assert abs(water.monoisotopic_mass() - H2O_MASS) < 1e-8
        assert water.hill_notation() == "H2O"

    def test_proton(self):
        """Test that a charged hydrogen weighs a proton."""
        proton = formula("H:z+1")
        assert proton.charge() == 1
        assert abs(proton.monoisotopic_mass() - PROTON_MASS) < 1e-6

    def test_electron_mass(self):
        """Test that a negative charge adds an electron mass."""
        anion = formula("H2O:z-1")
        assert anion.charge() == -1
        assert abs(anion.monoisotopic_mass() - (H2O_MASS + ELECTRON_MASS)) < 1e-9

    def test_additional_mass(self):
        """Test numeric mass shifts only add to the mass."""
        shift = MolecularFormula.with_additional_mass(15.9949)
        assert shift.elements == ()
        assert abs((formula("H2O") + shift).monoisotopic_mass() - (H2O_MASS + 15.9949)) < 1e-9

    def test_average_heavier_than_monoisotopic(self):
        """Test average weight of a peptide sized formula."""
        peptide = formula("C34H53N7O15")
        assert peptide.mass(MassMode.AVERAGE) > peptide.mass(MassMode.MONOISOTOPIC)

    def test_most_abundant_mass(self):
        """Test most abundant mass shifts for large formulas only."""
        small = formula("C6H12O6")
        assert small.mass(MassMode.MOST_ABUNDANT) == pytest.approx(small.monoisotopic_mass())
        large = formula("C300H500N80O100")
        assert large.mass(MassMode.MOST_ABUNDANT) > large.monoisotopic_mass() + 1.0

    def test_most_abundant_from_lightest_isotope(self):
        """Test the shift is counted from the lightest isotope, two bins for iron."""
        iron = formula("Fe")
        assert iron.monoisotopic_mass() == pytest.approx(55.9349, abs=1e-4)
        assert iron.most_abundant_mass() == pytest.approx(57.9416, abs=1e-3)
        assert iron.most_abundant_mass(threshold=1e-6) == pytest.approx(iron.most_abundant_mass())

    def test_extended_elements(self):
        """Test metals and lanthanides parse and use their most abundant isotope."""
        cisplatin = formula("Cl2H6N2Pt")
        assert cisplatin.count(Element.Pt) == 1
        assert Element.Pt.monoisotopic_mass() == pytest.approx(194.9647917)
        assert formula("Tb").monoisotopic_mass() == pytest.approx(158.9253547)
        assert formula("[204Pb]").monoisotopic_mass() == pytest.approx(203.9730440)

    def test_unsupported_element(self):
        """Test an element outside the table is rejected."""
        with pytest.raises(FormulaParseError):
            formula("Sn")

    def test_isotope_mass(self):
        """Test explicit isotopes use their exact mass."""
        heavy = formula("[13C1]")
        assert abs(heavy.monoisotopic_mass() - 13.0033548) < 1e-6


class TestAlgebra:
    """Test formula arithmetic."""

    def test_add_and_subtract(self):
        """Test that addition merges and subtraction removes counts."""
        combined = formula("C2H4") + formula("O")
        assert combined == formula("C2H4O")
        assert combined - formula("O") == formula("C2H4")

    def test_commutative(self):
        """Test a + b == b + a."""
        a, b = formula("C6H12O6"), formula("[13C2]N-1")
        assert a + b == b + a

    def test_associative(self):
        """Test (a + b) + c == a + (b + c)."""
        a, b, c = formula("C2H3NO"), formula("H2O"), formula("[15N1]S")
        assert (a + b) + c == a + (b + c)

    def test_zero_law(self):
        """Test adding zero atoms or an empty formula is a no-op."""
        f = formula("C2H3NO")
        assert f + MolecularFormula() - MolecularFormula() == f
        assert f.add(Element.C, None, 0) == f
        assert (f + formula("H") - formula("H")).elements == f.elements

    def test_zero_counts_dropped(self):
        """Test canonical form drops elements that cancel out."""
        f = formula("CH4") - formula("CH4")
        assert f.is_empty()

    def test_multiply(self):
        """Test integer multiples."""
        assert formula("H2O") * 3 == formula("H6O3")
        assert 2 * formula("CO") == formula("C2O2")

    def test_negate(self):
        """Test unary minus."""
        assert -formula("H2O") + formula("H2O") == MolecularFormula()

    def test_sum(self):
        """Test sum() over formulas."""
        total = sum([formula("C"), formula("H2"), formula("O")])
        assert total == formula("CH2O")

    def test_global_isotope(self):
        """Test replacing all natural carbons by 13C."""
        labelled = formula("C6H12O6").with_global_isotope(Element.C, 13)
        assert labelled.count(Element.C) == 0
        assert labelled.count(Element.C, 13) == 6

    def test_invalid_isotope(self):
        """Test element/isotope combinations without a mass raise."""
        with pytest.raises(InvalidFormulaError):
            MolecularFormula().add(Element.C, 99, 1)

    def test_labels_part_of_equality(self):
        """Test that labels distinguish otherwise equal formulas."""
        plain = formula("H2O")
        labelled = plain.with_label(AminoAcidLabel("N", 0, 0, 0))
        assert plain != labelled
        assert labelled.without_labels() == plain
        assert (plain + labelled).labels == labelled.labels


class TestHillNotation:
    """Test Hill notation rendering."""

    def test_carbon_first(self):
        """Test C then H then alphabetical."""
        assert formula("NOH3C2").hill_notation() == "C2H3NO"

    def test_without_carbon(self):
        """Test alphabetical order without carbon."""
        assert formula("O4PH3").hill_notation() == "H3O4P"

    def test_charge(self):
        """Test the charge suffix."""
        assert formula("H:z+1").hill_notation() == "H:z+1"

    def test_empty(self):
        """Test the empty formula."""
        assert MolecularFormula().hill_notation() == "(empty)"

    def test_fancy(self):
        """Test sub- and superscripts."""
        assert formula("[13C2]H2O").hill_notation_fancy() == "¹³C₂H₂O"
        assert formula("H2O:z+1").hill_notation_fancy() == "H₂O⁺"

    def test_html(self):
        """Test HTML rendering."""
        assert formula("H2O").hill_notation_html() == "H<sub>2</sub>O"

    @pytest.mark.parametrize("text", [
        "C2H3NO",
        "[13C2][12C-2]H2N",
        "H2O:z+1",
        "C-2H-4O",
        "[15N1]C6H12",
        "H3O4P:z-2",
        "H2O+15.9949",
        "C2H4-17.03",
        "H+1.5:z+1",
        "+0.984",
    ])
    def test_round_trip(self, text):
        """Test parse(render(f)) == f."""
        f = formula(text)
        assert formula(f.hill_notation()) == f

    def test_mass_before_charge(self):
        """Test the additional mass is written ahead of the charge tag."""
        f = formula("H2O:z+1") + MolecularFormula.with_additional_mass(15.9949)
        assert f.hill_notation() == "H2O+15.9949:z+1"
        assert formula(f.hill_notation()) == f

    def test_modified_peptide_round_trip(self):
        """Test the formula of a peptide with a mass modification parses back."""
        f = parse_peptidoform("PEP[+15.9949]TIDE").formulas()[0].without_labels()
        assert f.additional_mass == pytest.approx(15.9949)
        assert formula(f.hill_notation()) == f
