"""Unit tests for fragments, fragment types and array output."""

import numpy as np
import pytest

from alphafrag.chemistry import CachedCharge, ChargeRange, MolecularCharge, Multi, formula, loss
from alphafrag.constants import PROTON_MASS
from alphafrag.fragments import (
    KIND_CODES,
    Fragment,
    FragmentKind,
    FragmentType,
    PeptidePosition,
    fragments_to_arrays,
)
from alphafrag.glycan import MonoSaccharide
from alphafrag.sequence import AminoAcid, SequencePosition

WATER_MASS = 18.010565


def position_n(index, length=5):
    return PeptidePosition.n(SequencePosition.at(index), length)


def position_c(index, length=5):
    return PeptidePosition.c(SequencePosition.at(index), length)


class TestPeptidePosition:
    """Test series numbering."""

    def test_n_terminal(self):
        """Test N-terminal ions count from the start."""
        assert position_n(0).series_number == 1
        assert position_n(2).series_number == 3
        assert PeptidePosition.n(SequencePosition.N_TERM, 5).series_number == 1

    def test_c_terminal(self):
        """Test C-terminal ions count from the end."""
        assert position_c(4).series_number == 1
        assert position_c(2).series_number == 3
        assert PeptidePosition.c(SequencePosition.C_TERM, 5).series_number == 1

    def test_flip(self):
        """Test flipping gives the complementary series number."""
        assert position_n(0).flip_terminal().series_number == 5
        assert position_n(3).flip_terminal().series_number == 2

    def test_terminal_flags(self):
        """Test the first and last residue."""
        assert position_n(0).is_n_terminal()
        assert not position_n(1).is_n_terminal()
        assert position_n(4).is_c_terminal()


class TestFragmentType:
    """Test ion names."""

    def test_backbone(self):
        """Test backbone names with series numbers."""
        assert str(FragmentType(FragmentKind.b, position=position_n(0))) == "b1"
        assert str(FragmentType(FragmentKind.y, position=position_c(2))) == "y3"

    def test_variants(self):
        """Test hydrogen variants."""
        assert str(FragmentType(FragmentKind.c, position=position_n(1), variant=1)) == "c2'"
        assert str(FragmentType(FragmentKind.z, position=position_c(4), variant=-1)) == "z1·"

    def test_satellite_label(self):
        """Test the label of a satellite ion."""
        ion = FragmentType(FragmentKind.w, position=position_c(3), distance=0, label="a")
        assert str(ion) == "aw2"

    def test_other_kinds(self):
        """Test immonium, precursor and glycan composition names."""
        assert str(FragmentType(FragmentKind.immonium, aminoacid=AminoAcid.from_code("K"))) == "immK"
        assert str(FragmentType(FragmentKind.precursor)) == "p"
        hex1 = ((MonoSaccharide.Hex, 1),)
        assert str(FragmentType(FragmentKind.BComposition, composition=hex1)) == "BHex1"
        assert str(FragmentType(FragmentKind.YComposition, composition=hex1)) == "YHex1"

    def test_series_number(self):
        """Test only backbone positions give a series number."""
        assert FragmentType(FragmentKind.b, position=position_n(2)).series_number == 3
        assert FragmentType(FragmentKind.precursor).series_number is None

    def test_kind_classes(self):
        """Test kind groupings."""
        assert FragmentKind.d.is_n_terminal()
        assert FragmentKind.w.is_c_terminal()
        assert not FragmentKind.immonium.is_backbone()
        assert FragmentKind.YComposition.is_glycan()


class TestFragment:
    """Test charging, losses and cross products."""

    def test_uncharged_mz(self):
        """Test an uncharged fragment reports its neutral mass."""
        water = Fragment(formula("H2O"), 0, FragmentType(FragmentKind.precursor))
        assert water.mz() == pytest.approx(WATER_MASS, abs=1e-5)

    def test_with_charge(self):
        """Test adding protons."""
        water = Fragment(formula("H2O"), 0, FragmentType(FragmentKind.precursor))
        single = water.with_charge(MolecularCharge.proton(1))
        assert single.charge == 1
        assert single.mz() == pytest.approx(WATER_MASS + PROTON_MASS, abs=1e-5)
        double = water.with_charge(MolecularCharge.proton(2))
        assert double.charge == 2
        assert double.mz() == pytest.approx((WATER_MASS + 2 * PROTON_MASS) / 2, abs=1e-5)
        assert water.charge == 0

    def test_with_neutral_losses(self):
        """Test the fragment is kept next to its lossy copies."""
        ethanol = Fragment(formula("C2H6O"), 0, FragmentType(FragmentKind.precursor))
        fragments = ethanol.with_neutral_losses([loss("-H2O")])
        assert len(fragments) == 2
        assert fragments[0] is ethanol
        assert fragments[1].formula == formula("C2H4")
        assert [str(l) for l in fragments[1].neutral_loss] == ["-H2O"]
        assert ethanol.neutral_loss == []

    def test_generate_all(self):
        """Test masses x charges x (no loss or one loss set)."""
        masses = Multi([formula("C6H12O6"), formula("C6H10O5")])
        fragments = Fragment.generate_all(
            masses, 0, 0, FragmentType(FragmentKind.precursor), Multi.of(formula("")),
            [[loss("-H2O")]], CachedCharge(MolecularCharge.proton(2)), ChargeRange.ONE_TO_PRECURSOR,
        )
        assert len(fragments) == 8
        assert {f.charge for f in fragments} == {1, 2}
        assert sum(1 for f in fragments if f.neutral_loss) == 4

    def test_key(self):
        """Test keys ignore object identity but not charge."""
        ion = FragmentType(FragmentKind.b, position=position_n(0))
        a = Fragment(formula("C2H4"), 0, ion).with_charge(MolecularCharge.proton(1))
        b = Fragment(formula("C2H4"), 0, ion).with_charge(MolecularCharge.proton(1))
        c = Fragment(formula("C2H4"), 0, ion).with_charge(MolecularCharge.proton(2))
        assert a.key() == b.key()
        assert a.key() != c.key()


class TestArrays:
    """Test flattening fragments for vectorised matching."""

    def test_fragments_to_arrays(self):
        """Test every column."""
        b1 = Fragment(formula("C2H4"), 0, FragmentType(FragmentKind.b, position=position_n(0)))
        y3 = Fragment(formula("C3H6"), 0, FragmentType(FragmentKind.y, position=position_c(2)))
        precursor = Fragment(formula("H2O"), 0, FragmentType(FragmentKind.precursor))
        fragments = [
            b1.with_charge(MolecularCharge.proton(1)),
            y3.with_charge(MolecularCharge.proton(2)),
            precursor,
        ]
        mz, kind, position, charge = fragments_to_arrays(fragments)
        np.testing.assert_allclose(mz, [f.mz() for f in fragments])
        assert kind.dtype == np.uint8
        assert list(kind) == [KIND_CODES[FragmentKind.b], KIND_CODES[FragmentKind.y], KIND_CODES[FragmentKind.precursor]]
        assert list(position) == [1, 3, 0]
        assert list(charge) == [1, 2, 0]

    def test_codes_unique(self):
        """Test every kind has its own code."""
        assert len(set(KIND_CODES.values())) == len(FragmentKind)
