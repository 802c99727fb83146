"""Unit tests for glycan compositions, structures and their fragments."""

import pytest

from alphafrag.chemistry import CachedCharge, MolecularCharge, Multi, formula
from alphafrag.constants import MAX_GLYCAN_COUNT
from alphafrag.errors import FormulaParseError
from alphafrag.fragments import (
    FragmentationModel,
    FragmentKind,
    GlycanModel,
    composition_fragments,
    structure_fragments,
)
from alphafrag.glycan import (
    BreakKind,
    GlycanStructure,
    MonoSaccharide,
    composition_formula,
    composition_left_over,
    composition_options,
    format_composition,
    is_valid_composition,
    parse_composition,
)

Hex = MonoSaccharide.Hex
HexNAc = MonoSaccharide.HexNAc
Hep = MonoSaccharide.Hep

BRANCHED = "HexNAc(dHex,HexNAc(Hex))"


class TestComposition:
    """Test composition parsing and bookkeeping."""

    def test_parse(self):
        """Test a plain composition."""
        assert parse_composition("Hex5HexNAc4") == ((Hex, 5), (HexNAc, 4))

    def test_parse_simplifies(self):
        """Test implicit counts, merging and ordering."""
        assert parse_composition("HexNAc2Hex") == ((Hex, 1), (HexNAc, 2))
        assert parse_composition("Hex1Hex2") == ((Hex, 3),)
        assert parse_composition("Hex0") == ()

    def test_aliases(self):
        """Test common names map onto the ProForma names."""
        assert parse_composition("Fuc1GlcNAc2") == ((HexNAc, 2), (MonoSaccharide.dHex, 1))

    def test_parse_error(self):
        """Test the offset of an unknown monosaccharide."""
        with pytest.raises(FormulaParseError) as excinfo:
            parse_composition("Hexx")
        assert excinfo.value.offset == 3

    def test_validity(self):
        """Test negative and overflowing counts are invalid."""
        assert is_valid_composition(parse_composition("Hex5HexNAc4"))
        assert not is_valid_composition(parse_composition("Hex1HexNAc-1"))
        assert not is_valid_composition(((Hex, MAX_GLYCAN_COUNT),))

    def test_formula(self):
        """Test the composition formula sums the residues."""
        composition = parse_composition("Hex2")
        assert composition_formula(composition) == formula("C12H20O10")
        assert format_composition(composition) == "Hex2"

    def test_left_over(self):
        """Test removing a broken off part."""
        composition = parse_composition("Hex1Hep2")
        assert composition_left_over(composition, ((Hep, 1),)) == ((Hex, 1), (Hep, 1))
        assert composition_left_over(composition, composition) == ()


class TestCompositionOptions:
    """Test enumeration of sub-compositions."""

    def test_size_one(self):
        """Test only single sugars fit a size of exactly one."""
        options = composition_options(parse_composition("Hex1Hep2"), (1, 1))
        assert options == [((Hex, 1),), ((Hep, 1),)]

    def test_size_two(self):
        """Test both ways to pick two sugars."""
        options = composition_options(parse_composition("Hex1Hep2"), (2, 2))
        assert [format_composition(o) for o in options] == ["Hep2", "Hex1Hep1"]

    def test_unbounded(self):
        """Test every non-empty sub-composition, the full one included."""
        options = composition_options(parse_composition("Hex1Hep2"), (None, None))
        assert len(options) == 5
        assert len(set(options)) == 5
        assert ((Hex, 1), (Hep, 2)) in options

    def test_maximum_zero(self):
        """Test a maximum of zero gives nothing."""
        assert composition_options(parse_composition("Hex1Hep2"), (None, 0)) == []


class TestStructure:
    """Test glycan trees."""

    def test_round_trip(self):
        """Test parsing and writing a branched structure."""
        assert str(GlycanStructure.parse(BRANCHED)) == BRANCHED

    def test_alias_written_canonical(self):
        """Test aliases are written with their ProForma name."""
        assert str(GlycanStructure.parse("GlcNAc(Fuc)")) == "HexNAc(dHex)"

    def test_formula_and_composition(self):
        """Test the tree formula equals its composition formula."""
        structure = GlycanStructure.parse(BRANCHED)
        assert structure.composition() == ((Hex, 1), (HexNAc, 2), (MonoSaccharide.dHex, 1))
        assert structure.formula() == composition_formula(structure.composition())

    @pytest.mark.parametrize("text,offset", [
        ("Foo", 0),
        ("HexNAc(Hex", 6),
        ("HexNAc(Hex;Hex)", 10),
        ("HexNAc(Hex)x", 11),
    ])
    def test_parse_errors(self, text, offset):
        """Test error locations."""
        with pytest.raises(FormulaParseError) as excinfo:
            GlycanStructure.parse(text)
        assert excinfo.value.offset == offset

    def test_positions(self):
        """Test depths and branch ranks, heavier branch first."""
        structure = GlycanStructure.parse(BRANCHED)
        assert structure.positions() == [
            (0, 2, ()),
            (1, 0, ((0, 1),)),
            (1, 1, ((1, 0),)),
            (2, 0, ((1, 0),)),
        ]

    def test_position_labels(self):
        """Test branch names in position labels."""
        structure = GlycanStructure.parse(BRANCHED)
        assert structure.position(3).label() == "2α"
        assert structure.position(1).label() == "1β"
        assert structure.position(0, outer=True).label() == "3"

    def test_break_points_linear(self):
        """Test a chain of two: keep both, keep the root, or break at the root."""
        structure = GlycanStructure.parse("HexNAc(Hex)")
        options = structure.internal_break_points()
        assert len(options) == 3
        kept = [f for f, _, _ in options]
        assert structure.formula() in kept
        assert HexNAc.formula() in kept
        assert [d for _, _, d in options] == [2, 1, 0]

    def test_break_points_branched(self):
        """Test the product over branches plus the root break."""
        structure = GlycanStructure.parse(BRANCHED)
        options = structure.internal_break_points()
        assert len(options) == 7
        intact = [o for o in options if all(b.kind is BreakKind.END for b in o[1])]
        assert len(intact) == 1
        assert intact[0][0] == structure.formula()
        empty = [o for o in options if o[0].is_empty()]
        assert len(empty) == 1
        assert [b.kind for b in empty[0][1]] == [BreakKind.Y]

    def test_core_options(self):
        """Test cores of exactly one monosaccharide."""
        structure = GlycanStructure.parse("HexNAc(Hex)")
        cores = structure.core_options((1, 1))
        assert len(cores) == 1
        breaks, kept = cores[0]
        assert kept == HexNAc.formula()
        assert [b.label() for b in breaks] == ["1"]


class TestGlycanFragments:
    """Test B, Y and diagnostic ions of glycans."""

    @pytest.fixture
    def model(self):
        return FragmentationModel(glycan=GlycanModel.ALLOW)

    @pytest.fixture
    def charges(self):
        return CachedCharge(MolecularCharge.proton(1))

    def test_composition(self, model, charges):
        """Test three sub-compositions give three B and three Y ions."""
        composition = parse_composition("Hex1HexNAc1")
        full = Multi.of(formula("C20H35N3O11"))
        fragments = composition_fragments(composition, model, 0, 0, charges, full)
        kinds = [f.ion.kind for f in fragments]
        assert kinds.count(FragmentKind.BComposition) == 3
        assert kinds.count(FragmentKind.YComposition) == 3
        # 4 Hex and 6 HexNAc specific losses, no plain monosaccharide ions
        assert kinds.count(FragmentKind.diagnostic) == 10
        assert all(f.charge == 1 for f in fragments)

    def test_composition_y_formula(self, model, charges):
        """Test Y ions are the full formula minus the broken off part."""
        composition = parse_composition("Hex1")
        full = Multi.of(formula("C20H35N3O11"))
        fragments = composition_fragments(composition, model, 0, 0, charges, full)
        y_ions = [f for f in fragments if f.ion.kind is FragmentKind.YComposition]
        assert len(y_ions) == 1
        expected = formula("C20H35N3O11") - Hex.formula() + formula("H:z+1")
        assert y_ions[0].formula.without_labels() == expected

    def test_invalid_composition(self, model, charges, caplog):
        """Test a negative count gives no fragments and a warning."""
        composition = parse_composition("Hex1HexNAc-1")
        full = Multi.of(formula("C20H35N3O11"))
        assert composition_fragments(composition, model, 0, 0, charges, full) == []
        assert "Invalid glycan composition" in caplog.text

    def test_structure(self, model, charges):
        """Test B, Y and diagnostic ions of a two sugar chain."""
        structure = GlycanStructure.parse("HexNAc(Hex)")
        full = Multi.of(formula("C10H17N3O6") + structure.formula())
        fragments = structure_fragments(structure, model, 0, 0, charges, full)
        kinds = [f.ion.kind for f in fragments]
        assert kinds.count(FragmentKind.B) == 3
        assert kinds.count(FragmentKind.Y) == 2
        # every monosaccharide with and without its specific losses
        assert kinds.count(FragmentKind.diagnostic) == 12
        y_names = {str(f.ion) for f in fragments if f.ion.kind is FragmentKind.Y}
        assert y_names == {"Y1", "Y0"}

    def test_structure_y_keeps_core(self, model, charges):
        """Test the Y1 ion keeps the root on the peptide."""
        structure = GlycanStructure.parse("HexNAc(Hex)")
        peptide = formula("C10H17N3O6")
        full = Multi.of(peptide + structure.formula())
        fragments = structure_fragments(structure, model, 0, 0, charges, full)
        y1 = [f for f in fragments if str(f.ion) == "Y1"]
        assert len(y1) == 1
        assert y1[0].formula.without_labels() == peptide + HexNAc.formula() + formula("H:z+1")

    def test_structure_disallowed(self, charges):
        """Test structural fragments can be switched off."""
        model = FragmentationModel(glycan=GlycanModel.DISALLOW)
        structure = GlycanStructure.parse("HexNAc(Hex)")
        full = Multi.of(structure.formula())
        assert structure_fragments(structure, model, 0, 0, charges, full) == []
