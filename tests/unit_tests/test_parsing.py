"""Unit tests for the formula text grammars (ProForma, PSI-MOD, Unimod, XL-MOD, RESID)."""

import pytest

from alphafrag.chemistry import (
    Element,
    MolecularFormula,
    formula,
    parse_pro_forma,
    parse_psi_mod,
    parse_resid,
    parse_unimod,
    parse_xlmod,
)
from alphafrag.errors import FormulaParseError


class TestProForma:
    """Test the ProForma formula grammar."""

    def test_isotopes(self):
        """Test explicit isotopes next to natural elements."""
        f = parse_pro_forma("[13C2][12C-2]H2N")
        assert f.count(Element.C, 13) == 2
        assert f.count(Element.C, 12) == -2
        assert f.count(Element.C) == 0
        assert f.count(Element.H) == 2
        assert f.count(Element.N) == 1
        assert f.hill_notation() == "[12C-2][13C2]H2N"

    def test_implicit_count(self):
        """Test elements without a number count once."""
        assert parse_pro_forma("C2H3NO") == formula("C2H3N1O1")

    def test_repeated_element(self):
        """Test repeated elements are summed."""
        assert parse_pro_forma("CH3CH3") == formula("C2H6")

    def test_two_letter_symbols(self):
        """Test longest symbol wins."""
        f = parse_pro_forma("NaCl")
        assert f.count(Element.Na) == 1
        assert f.count(Element.Cl) == 1

    def test_spaces_ignored(self):
        """Test whitespace between blocks."""
        assert parse_pro_forma("C2 H3 N O") == formula("C2H3NO")

    def test_charge(self):
        """Test the trailing charge tag."""
        f = parse_pro_forma("H2O:z+2")
        assert f.charge() == 2
        assert f.count(Element.Electron) == -2

    def test_mass_term(self):
        """Test signed decimals add mass while signed integers stay counts."""
        f = parse_pro_forma("H2O+15.9949")
        assert f.count(Element.O) == 1
        assert f.additional_mass == pytest.approx(15.9949)
        assert parse_pro_forma("C-2").count(Element.C) == -2
        lossy = parse_pro_forma("O-17.03")
        assert lossy.count(Element.O) == 1
        assert lossy.additional_mass == pytest.approx(-17.03)

    def test_charge_not_allowed(self):
        """Test charge tags are rejected when charges are off."""
        with pytest.raises(FormulaParseError):
            parse_pro_forma("H2O:z+1", allow_charge=False)

    def test_empty(self):
        """Test the empty formula literal."""
        assert parse_pro_forma("(empty)", allow_empty=True) == MolecularFormula()
        with pytest.raises(FormulaParseError) as excinfo:
            parse_pro_forma("")
        assert excinfo.value.explanation == "The formula is empty"

    def test_invalid_character(self):
        """Test the span of an invalid character."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_pro_forma("C2H3#")
        error = excinfo.value
        assert error.title == "Invalid ProForma molecular formula"
        assert error.offset == 4
        assert error.length == 1

    def test_unclosed_bracket(self):
        """Test a missing closing bracket."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_pro_forma("C2[13C2")
        assert excinfo.value.offset == 2
        assert "closing square bracket" in excinfo.value.explanation

    def test_zero_isotope(self):
        """Test isotope number zero is rejected."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_pro_forma("[0C2]")
        assert excinfo.value.explanation == "The isotope number is zero"

    def test_unknown_isotope(self):
        """Test isotopes without a known mass are reported as parse errors."""
        with pytest.raises(FormulaParseError):
            parse_pro_forma("[99C1]")

    def test_bad_charge_tag(self):
        """Test a charge tag without the z."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_pro_forma("H2O:q+1")
        assert "charge tag" in excinfo.value.explanation

    def test_from_pro_forma(self):
        """Test the class method wrapper."""
        f = MolecularFormula.from_pro_forma("C2H3NO")
        assert abs(f.monoisotopic_mass() - 57.021464) < 1e-5


class TestPsiMod:
    """Test the PSI-MOD DiffFormula grammar."""

    def test_isotopes(self):
        """Test isotope prefixes in round brackets."""
        f = parse_psi_mod("(12)C -5 (13)C 5 H 1")
        assert f.count(Element.C, 12) == -5
        assert f.count(Element.C, 13) == 5
        assert f.count(Element.H) == 1

    def test_plain(self):
        """Test a formula without isotopes."""
        assert parse_psi_mod("C 2 H 2 O 1") == formula("C2H2O")

    def test_missing_count(self):
        """Test every element needs a count."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_psi_mod("C 2 H")
        assert excinfo.value.explanation == "Last element missed a count"

    def test_unclosed(self):
        """Test an isotope without closing bracket."""
        with pytest.raises(FormulaParseError):
            parse_psi_mod("(13C 5")


class TestUnimod:
    """Test the Unimod composition grammar."""

    def test_composition(self):
        """Test counts in brackets and isotope prefixes."""
        f = parse_unimod("H(2) C(-2) 13C(2) N O")
        assert f == formula("[13C2]C-2H2NO")

    def test_bricks(self):
        """Test monosaccharide shorthands."""
        assert parse_unimod("Hex") == formula("C6H10O5")
        assert parse_unimod("HexNAc(2)") == formula("C16H26N2O10")

    def test_unknown_brick(self):
        """Test an unknown name."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_unimod("H(2) Foo(1)")
        assert excinfo.value.title == "Invalid Unimod chemical formula"
        assert excinfo.value.offset == 5
        assert excinfo.value.length == 3

    def test_unclosed_amount(self):
        """Test an amount without closing bracket."""
        with pytest.raises(FormulaParseError):
            parse_unimod("H(2")


class TestXlmod:
    """Test the XL-MOD formula grammar."""

    def test_deuterium(self):
        """Test D is hydrogen isotope 2."""
        f = parse_xlmod("C7 D10 H2 N4")
        assert f.count(Element.H, 2) == 10
        assert f.count(Element.H) == 2
        assert f.count(Element.C) == 7
        assert f.count(Element.N) == 4

    def test_negative_block(self):
        """Test a leading minus."""
        assert parse_xlmod("C2 -H") == formula("C2H-1")

    def test_no_element(self):
        """Test a block with only a number."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_xlmod("C2 7")
        assert excinfo.value.explanation == "No element is defined"
        assert excinfo.value.offset == 3

    def test_deuterium_with_isotope(self):
        """Test D cannot get an isotope prefix."""
        with pytest.raises(FormulaParseError):
            parse_xlmod("2D")


class TestResid:
    """Test the RESID formula grammar."""

    def test_charge(self):
        """Test a trailing plus removes an electron."""
        alternatives = parse_resid("C 2 H 3 N 1 O 1 +")
        assert len(alternatives) == 1
        assert alternatives[0].charge() == 1
        assert alternatives[0].without_labels() == formula("C2H3NO:z+1")

    def test_alternatives(self):
        """Test comma separated alternatives."""
        alternatives = parse_resid("C 2 H 3, C 2 H 4")
        assert alternatives == [formula("C2H3"), formula("C2H4")]

    def test_invalid(self):
        """Test the offset counts from the full text."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_resid("C 2, H 3 ?")
        assert excinfo.value.offset == 9
