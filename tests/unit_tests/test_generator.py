"""Unit tests for theoretical fragment generation."""

from dataclasses import replace

import pytest

from alphafrag.chemistry import MolecularFormula, formula
from alphafrag.constants import PROTON_MASS
from alphafrag.fragments import (
    FragmentationModel,
    FragmentKind,
    GlycanModel,
    fragments_to_arrays,
    generate_fragments_batch,
    generate_theoretical_fragments,
)
from alphafrag.glycan import MonoSaccharide
from alphafrag.sequence import AminoAcid, parse_peptidoform, parse_peptidoform_ion, parse_proforma
from alphafrag.sequence.modification import GlycanPeptideFragment

PROTON = formula("H:z+1")
WATER = formula("H2O")


def residues(sequence):
    return sum((AminoAcid.from_code(code).single_formula() for code in sequence), MolecularFormula())


def by_name(fragments, name, charge=1, peptidoform_index=0):
    return [
        f for f in fragments
        if str(f.ion) == name and f.charge == charge and f.peptidoform_index == peptidoform_index
    ]


class TestBackbone:
    """Test b and y ions of a modified peptide."""

    SEQUENCE = "EMEVEESPEK"

    def expected_b(self, n):
        extra = MolecularFormula()
        if n >= 2:
            extra = extra + formula("O")
        if n >= 7:
            extra = extra + formula("HO3P")
        return residues(self.SEQUENCE[:n]) + extra + PROTON

    def expected_y(self, n):
        start = len(self.SEQUENCE) - n
        extra = MolecularFormula()
        if start <= 1:
            extra = extra + formula("O")
        if start <= 6:
            extra = extra + formula("HO3P")
        return residues(self.SEQUENCE[start:]) + extra + WATER + PROTON

    def test_b1_and_y1(self, modified_peptide, by_model):
        """Test the first ions of both series."""
        fragments = generate_theoretical_fragments(modified_peptide, 2, by_model)
        b1 = by_name(fragments, "b1")
        assert len(b1) == 1
        assert b1[0].formula.without_labels() == residues("E") + PROTON
        assert b1[0].neutral_loss == []
        y1 = by_name(fragments, "y1")
        assert len(y1) == 1
        assert y1[0].formula.without_labels() == residues("K") + WATER + PROTON

    def test_modifications_never_omitted(self, modified_peptide, by_model):
        """Test every b and y ion carries the modifications it covers."""
        fragments = generate_theoretical_fragments(modified_peptide, 2, by_model)
        for n in range(1, len(self.SEQUENCE)):
            b = by_name(fragments, f"b{n}")
            y = by_name(fragments, f"y{n}")
            assert [f.formula.without_labels() for f in b] == [self.expected_b(n)]
            assert [f.formula.without_labels() for f in y] == [self.expected_y(n)]

    def test_charges(self, modified_peptide, by_model):
        """Test every ion comes in charge 1 and 2 and no full length ions form."""
        fragments = generate_theoretical_fragments(modified_peptide, 2, by_model)
        backbone = [f for f in fragments if f.ion.kind in (FragmentKind.b, FragmentKind.y)]
        assert len(backbone) == 2 * 2 * (len(self.SEQUENCE) - 1)
        assert {f.charge for f in backbone} == {1, 2}
        assert not by_name(fragments, f"b{len(self.SEQUENCE)}")

    def test_doubly_charged(self, simple_peptide, by_model):
        """Test the m/z of a doubly charged ion."""
        fragments = generate_theoretical_fragments(simple_peptide, 2, by_model)
        b2 = by_name(fragments, "b2", charge=1)[0]
        b2_double = by_name(fragments, "b2", charge=2)[0]
        assert b2_double.mz() == pytest.approx((b2.mz() + PROTON_MASS) / 2, abs=1e-6)

    def test_invalid_charge(self, simple_peptide, by_model):
        """Test the maximal charge has to be positive."""
        with pytest.raises(ValueError, match="at least 1"):
            generate_theoretical_fragments(simple_peptide, 0, by_model)


class TestPrecursor:
    """Test the precursor ion."""

    def test_only_precursor(self, simple_peptide, known_peptide_masses):
        """Test the empty model gives the precursor at the precursor charge."""
        fragments = generate_theoretical_fragments(simple_peptide, 2, FragmentationModel.none())
        assert len(fragments) == 1
        precursor = fragments[0]
        assert precursor.ion.kind is FragmentKind.precursor
        assert precursor.charge == 2
        expected = (known_peptide_masses["PEPTIDE"] + 2 * PROTON_MASS) / 2
        assert precursor.mz() == pytest.approx(expected, abs=1e-4)

    def test_modification_losses(self, modified_peptide):
        """Test the precursor loses the oxidation and phospho specific groups."""
        fragments = generate_theoretical_fragments(modified_peptide, 1, FragmentationModel.cid())
        losses = {
            str(f.neutral_loss[0])
            for f in fragments
            if f.ion.kind is FragmentKind.precursor and f.neutral_loss
        }
        assert {"-H2O", "-CH4OS", "-H3O4P"} <= losses


class TestModels:
    """Test preset specific ions."""

    def test_cid(self, simple_peptide):
        """Test CID gives a1 but no other a ions and no c ions."""
        fragments = generate_theoretical_fragments(simple_peptide, 1, FragmentationModel.cid())
        names = {str(f.ion) for f in fragments}
        assert "a1" in names
        assert "a2" not in names
        assert not any(f.ion.kind is FragmentKind.c for f in fragments)
        assert {"b3", "y3"} <= names

    def test_all_has_immonium(self, simple_peptide):
        """Test the all model adds immonium ions."""
        fragments = generate_theoretical_fragments(simple_peptide, 1, FragmentationModel.all())
        names = {str(f.ion) for f in fragments}
        assert {"immP", "immE", "c2", "z2"} <= names

    def test_arrays(self, simple_peptide):
        """Test the generated fragments flatten into aligned arrays."""
        fragments = generate_theoretical_fragments(simple_peptide, 2, FragmentationModel.cid())
        mz, kind, position, charge = fragments_to_arrays(fragments)
        assert len(mz) == len(kind) == len(position) == len(charge) == len(fragments)
        assert (mz > 0).all()


class TestGlycopeptide:
    """Test glycans on the backbone."""

    def test_valid_composition(self):
        """Test a glycan composition adds B and Y ions."""
        peptide = parse_peptidoform("AN[Glycan:Hex1HexNAc1]K")
        fragments = generate_theoretical_fragments(peptide, 2, FragmentationModel.cid())
        kinds = {f.ion.kind for f in fragments}
        assert FragmentKind.BComposition in kinds
        assert FragmentKind.YComposition in kinds

    def test_negative_count(self, caplog):
        """Test a negative count drops the glycan fragments but not the backbone."""
        model = FragmentationModel.cid()
        glycosylated = generate_theoretical_fragments(parse_peptidoform("AN[Glycan:Hex1HexNAc-1]K"), 2, model)
        plain = generate_theoretical_fragments(parse_peptidoform("ANK"), 2, model)
        assert not any(f.ion.kind.is_glycan() for f in glycosylated)
        assert "Invalid glycan composition" in caplog.text

        def backbone(fragments):
            return sorted(
                (str(f.ion), f.charge)
                for f in fragments
                if f.ion.kind in (FragmentKind.b, FragmentKind.y)
            )

        assert backbone(glycosylated)
        assert backbone(glycosylated) == backbone(plain)
        # Ions that do not reach the glycosylated residue keep their mass
        for name in ("b1", "y1"):
            assert by_name(glycosylated, name)[0].mz() == pytest.approx(by_name(plain, name)[0].mz(), abs=1e-9)

    def test_glycan_model_sets_y_base(self):
        """Test the glycan part kept on the peptide changes the Y ions."""
        peptide = parse_peptidoform("AN[Glycan:Hex1]K")
        bare = parse_peptidoform("ANK").formulas()[0].without_labels()
        hexose = MonoSaccharide.Hex.formula()

        def y_formulas(glycan):
            fragments = generate_theoretical_fragments(peptide, 1, FragmentationModel(glycan=glycan))
            return {
                f.formula.without_labels()
                for f in fragments
                if f.ion.kind is FragmentKind.YComposition
            }

        intact = y_formulas(replace(GlycanModel.ALLOW, default_peptide_fragment=GlycanPeptideFragment.FULL))
        assert intact == {bare + PROTON}
        core_and_free = y_formulas(GlycanModel.ALLOW)
        assert core_and_free == {bare + PROTON, bare - hexose + PROTON}


class TestMultipleChains:
    """Test cross-linked and chimeric targets."""

    def test_cross_linked(self, cross_linked_ion, by_model):
        """Test a b ion past the link carries the partner chain."""
        fragments = generate_theoretical_fragments(cross_linked_ion, 1, by_model)
        assert {f.peptidoform_index for f in fragments} == {0, 1}
        b1 = by_name(fragments, "b1")
        assert b1[0].formula.without_labels() == residues("A") + PROTON
        # b3 and y1 of the first chain together make up the precursor
        b3 = by_name(fragments, "b3")[0]
        y1 = by_name(fragments, "y1")[0]
        precursor = by_name(fragments, "p")[0]
        assert b3.mz() + y1.mz() == pytest.approx(precursor.mz() + PROTON_MASS, abs=1e-6)

    def test_cross_linked_precursors_agree(self, cross_linked_ion, by_model):
        """Test both chains report the same precursor."""
        fragments = generate_theoretical_fragments(cross_linked_ion, 2, by_model)
        first = by_name(fragments, "p", charge=2, peptidoform_index=0)[0]
        second = by_name(fragments, "p", charge=2, peptidoform_index=1)[0]
        assert first.mz() == pytest.approx(second.mz(), abs=1e-6)
        expected = cross_linked_ion.formulas()[0].monoisotopic_mass()
        assert first.mz() == pytest.approx((expected + 2 * PROTON_MASS) / 2, abs=1e-6)

    def test_chimeric(self, by_model):
        """Test every ion of a chimeric spectrum is fragmented."""
        compound = parse_proforma("PEPTIDE+ACDEK")
        fragments = generate_theoretical_fragments(compound, 1, by_model)
        assert {f.peptidoform_ion_index for f in fragments} == {0, 1}
        assert by_name(fragments, "y1")


class TestCrossLinkTopology:
    """Test which cleavages a cross-link allows."""

    def test_intra_chain_loop(self, by_model):
        """Test cleavages inside a loop closed by a cross-link are skipped."""
        peptide = parse_peptidoform("PEK[X:DSS#XL1]TIK[#XL1]DE")
        fragments = generate_theoretical_fragments(peptide, 1, by_model)
        names = {str(f.ion) for f in fragments}
        assert names == {"b1", "b2", "b6", "b7", "y1", "y2", "y6", "y7", "p"}

    def test_symmetric(self, by_model):
        """Test a chain gives the same ions whichever side defines the linker."""
        forward = generate_theoretical_fragments(
            parse_peptidoform_ion("AK[X:DSS#XL1]LR//GK[#XL1]VR"), 2, by_model
        )
        reverse = generate_theoretical_fragments(
            parse_peptidoform_ion("GK[X:DSS#XL1]VR//AK[#XL1]LR"), 2, by_model
        )
        for forward_index, reverse_index in ((0, 1), (1, 0)):
            a = sorted((str(f.ion), f.charge, f.mz()) for f in forward if f.peptidoform_index == forward_index)
            b = sorted((str(f.ion), f.charge, f.mz()) for f in reverse if f.peptidoform_index == reverse_index)
            assert [x[:2] for x in a] == [x[:2] for x in b]
            assert [x[2] for x in a] == pytest.approx([x[2] for x in b], abs=1e-6)


class TestDeterminism:
    """Test repeated runs agree."""

    @pytest.mark.parametrize("text", [
        "EM[Oxidation]EVEES[Phospho]PEK",
        "AN[Glycan:Hex1HexNAc1]K",
        "AK[X:DSS#XL1]LR//GK[#XL1]VR",
    ])
    def test_same_fragment_set(self, text):
        """Test two runs give the same set of fragments."""
        model = FragmentationModel.cid()
        first = generate_theoretical_fragments(parse_proforma(text), 2, model)
        second = generate_theoretical_fragments(parse_proforma(text), 2, model)
        assert first
        assert {f.key() for f in first} == {f.key() for f in second}


class TestBatch:
    """Test the batch API."""

    TARGETS = ["PEPTIDE", "EM[Oxidation]EVEES[Phospho]PEK", "AN[Glycan:Hex1HexNAc1]K"]

    def test_matches_sequential(self):
        """Test batch results equal the single calls, in order, with and without processes."""
        model = FragmentationModel.cid()
        targets = [parse_peptidoform(t) for t in self.TARGETS]
        expected = [[f.key() for f in generate_theoretical_fragments(t, 2, model)] for t in targets]
        for processes in (None, 2):
            result = generate_fragments_batch(targets, 2, model, processes=processes)
            assert [[f.key() for f in fragments] for fragments in result] == expected

    def test_invalid_charge(self):
        """Test errors surface from the batch."""
        with pytest.raises(ValueError):
            generate_fragments_batch([parse_peptidoform("PEPTIDE")], 0, FragmentationModel.cid())
