"""Unit tests for placement rules and modification specificities."""

import pytest

from alphafrag.errors import FormulaParseError
from alphafrag.sequence import (
    AminoAcid,
    AminoAcidRule,
    AnywhereRule,
    CrossLinkSide,
    PlacementRule,
    Position,
    RulePossible,
    SequenceElement,
    SequencePosition,
    TerminalRule,
    modification,
    rules,
)
from alphafrag.sequence.modification import LinkSide

MIDDLE = SequencePosition.at(3)
SLOTS = [SequencePosition.N_TERM, MIDDLE, SequencePosition.C_TERM]


def residue(code):
    return SequenceElement(AminoAcid.from_code(code))


class TestParse:
    """Test the rule text form."""

    def test_aminoacid_rule(self):
        """Test AA@Position."""
        rule = PlacementRule.parse("KR@AnyNTerm")
        assert rule == AminoAcidRule(frozenset({AminoAcid.Lysine, AminoAcid.Arginine}), Position.AnyNTerm)
        assert str(rule) == "KR@AnyNTerm"

    def test_position_only(self):
        """Test bare positions."""
        assert PlacementRule.parse("Anywhere") == AnywhereRule()
        assert PlacementRule.parse("proteincterm") == TerminalRule(Position.ProteinCTerm)

    def test_several(self):
        """Test the rules helper."""
        assert len(rules("C@Anywhere", "AnyNTerm")) == 2

    def test_invalid_aminoacid(self):
        """Test the offset of a bad residue code."""
        with pytest.raises(FormulaParseError) as excinfo:
            PlacementRule.parse("K1@Anywhere")
        assert excinfo.value.offset == 1

    def test_invalid_position(self):
        """Test the span of a bad position."""
        with pytest.raises(FormulaParseError) as excinfo:
            PlacementRule.parse("K@Somewhere")
        assert excinfo.value.offset == 2
        assert excinfo.value.length == len("Somewhere")


class TestIsPossible:
    """Test rule evaluation on residues and slots."""

    def test_side_chain_rule(self):
        """Test a side chain rule on the side chain and on a terminus."""
        rule = PlacementRule.parse("C@Anywhere")
        assert rule.is_possible(residue("C"), MIDDLE) is RulePossible.YES
        assert rule.is_possible(residue("C"), SequencePosition.N_TERM) is RulePossible.ONLY_IF_NOT_TERMINAL
        assert rule.is_possible(residue("A"), MIDDLE) is RulePossible.NO

    def test_terminal_rule(self):
        """Test terminal rules only match their own terminus."""
        rule = PlacementRule.parse("AnyNTerm")
        assert rule.is_possible(residue("A"), SequencePosition.N_TERM) is RulePossible.YES
        assert rule.is_possible(residue("A"), SequencePosition.C_TERM) is RulePossible.NO
        assert rule.is_possible(residue("A"), MIDDLE) is RulePossible.NO

    def test_aminoacid_at_terminus(self):
        """Test a residue rule bound to a terminus."""
        rule = PlacementRule.parse("Q@AnyNTerm")
        assert rule.is_possible(residue("Q"), SequencePosition.N_TERM) is RulePossible.YES
        assert rule.is_possible(residue("Q"), MIDDLE) is RulePossible.NO

    def test_or_semantics(self):
        """Test YES beats ONLY_IF_NOT_TERMINAL beats NO."""
        assert (RulePossible.NO | RulePossible.ONLY_IF_NOT_TERMINAL) is RulePossible.ONLY_IF_NOT_TERMINAL
        assert (RulePossible.ONLY_IF_NOT_TERMINAL | RulePossible.YES) is RulePossible.YES
        combined = PlacementRule.any_possible(rules("C@Anywhere", "AnyNTerm"), residue("C"), SequencePosition.N_TERM)
        assert combined is RulePossible.YES

    @pytest.mark.parametrize("code", ["A", "C", "K", "S"])
    def test_adding_rules_never_removes(self, code):
        """Test a superset of rules allows at least as much."""
        small = rules("C@Anywhere")
        large = small + rules("K@Anywhere", "ProteinNTerm")
        for slot in SLOTS:
            before = PlacementRule.any_possible(small, residue(code), slot)
            after = PlacementRule.any_possible(large, residue(code), slot)
            assert after.value >= before.value

    def test_is_possible_aa(self):
        """Test rules checked against a residue class and position class."""
        rule = PlacementRule.parse("K@Anywhere")
        assert rule.is_possible_aa(AminoAcid.Lysine, Position.AnyNTerm) is RulePossible.YES
        assert rule.is_possible_aa(AminoAcid.Serine, Position.Anywhere) is RulePossible.NO
        terminal = PlacementRule.parse("AnyCTerm")
        assert terminal.is_possible_aa(AminoAcid.Serine, Position.ProteinCTerm) is RulePossible.YES
        assert terminal.is_possible_aa(AminoAcid.Serine, Position.Anywhere) is RulePossible.NO


class TestModificationPlacement:
    """Test specificities of the built-in modifications."""

    def test_oxidation(self):
        """Test oxidation on methionine only on the side chain."""
        oxidation = modification("Oxidation")
        assert oxidation.is_possible(residue("M"), MIDDLE) is not None
        assert oxidation.is_possible(residue("M"), SequencePosition.N_TERM) is None
        assert oxidation.is_possible(residue("A"), MIDDLE) is None

    def test_neutral_losses_per_specificity(self):
        """Test losses only come from the specificity that matched."""
        phospho = modification("Phospho")
        assert [str(l) for l in phospho.neutral_losses(residue("S"), MIDDLE)] == ["-H3O4P"]
        assert phospho.neutral_losses(residue("Y"), MIDDLE) == []
        assert len(phospho.diagnostic_ions(residue("Y"), MIDDLE)) == 1

    def test_unknown_name(self):
        """Test an unknown modification name."""
        with pytest.raises(ValueError, match="Unknown modification"):
            modification("NotAModification")

    def test_lookup_forms(self):
        """Test prefixed names and accessions."""
        assert modification("U:Oxidation") is modification("Oxidation")
        assert modification("UNIMOD:35") is modification("oxidation")
        assert modification("XLMOD:02001") is modification("DSS")

    def test_symmetric_linker(self):
        """Test a symmetric linker fits both ends on a lysine."""
        dss = modification("DSS")
        side = dss.is_possible(residue("K"), MIDDLE)
        assert side == CrossLinkSide.symmetric([0])
        assert dss.is_possible(residue("A"), MIDDLE) is None
        assert dss.is_possible(residue("A"), SequencePosition.N_TERM) is not None

    def test_asymmetric_linker(self):
        """Test the left rules of SDA only match lysines."""
        sda = modification("SDA")
        assert sda.is_possible(residue("K"), MIDDLE).kind is LinkSide.SYMMETRIC
        assert sda.is_possible(residue("A"), MIDDLE).kind is LinkSide.RIGHT
