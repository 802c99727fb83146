"""Unit tests for the isotope envelope kernels."""

import numpy as np
import pytest

from alphafrag.chemistry import formula, isotopic_distribution, isotopic_distribution_batch
from alphafrag.chemistry.isotopes import binomial_pmf, convolve_same_length, truncated_spread


class TestKernels:
    """Test the numba kernels directly."""

    def test_binomial_sums_to_one(self):
        """Test the pmf is normalised."""
        pmf = binomial_pmf(50, 0.0107)
        assert pmf.shape == (51,)
        assert abs(pmf.sum() - 1.0) < 1e-10

    def test_binomial_known_value(self):
        """Test P(k=1) for n=2, p=0.5."""
        pmf = binomial_pmf(2, 0.5)
        np.testing.assert_allclose(pmf, [0.25, 0.5, 0.25])

    def test_binomial_degenerate(self):
        """Test p of 0 and 1."""
        assert binomial_pmf(3, 0.0)[0] == 1.0
        assert binomial_pmf(3, 1.0)[3] == 1.0

    def test_truncated_spread(self):
        """Test tail removal and spacing."""
        spread = truncated_spread(np.array([0.9, 0.1, 1e-9]), 1e-6, 2)
        np.testing.assert_allclose(spread, [0.9, 0.0, 0.1, 0.0])

    def test_convolve_same_length(self):
        """Test truncation to the longest input."""
        combined = convolve_same_length(np.array([0.5, 0.5]), np.array([0.5, 0.5]))
        np.testing.assert_allclose(combined, [0.25, 0.5])


class TestIsotopicDistribution:
    """Test full envelopes."""

    def test_sums_to_one(self):
        """Test the envelope of a peptide is normalised."""
        distribution = isotopic_distribution(formula("C34H53N7O15"))
        assert abs(distribution.sum() - 1.0) < 1e-3

    def test_small_molecule_monoisotopic_highest(self):
        """Test glucose peaks at its monoisotopic mass."""
        distribution = isotopic_distribution(formula("C6H12O6"))
        assert int(distribution.argmax()) == 0
        assert distribution[1] == pytest.approx(0.065, abs=0.008)

    def test_large_molecule_shifts(self):
        """Test a large formula peaks above the monoisotopic mass."""
        distribution = isotopic_distribution(formula("C300H500N80O100"))
        assert int(distribution.argmax()) > 0
        assert abs(distribution.sum() - 1.0) < 1e-3

    def test_explicit_isotopes_fixed(self):
        """Test explicit isotopes do not widen the envelope."""
        distribution = isotopic_distribution(formula("[13C6]"))
        np.testing.assert_allclose(distribution, [1.0])

    def test_empty(self):
        """Test the empty formula."""
        np.testing.assert_allclose(isotopic_distribution(formula("")), [1.0])

    def test_batch_matches_sequential(self):
        """Test the batch API returns the same envelopes in order."""
        formulas = [formula("C6H12O6"), formula("C34H53N7O15"), formula("H2O")]
        expected = [isotopic_distribution(f) for f in formulas]
        for result in (
            isotopic_distribution_batch(formulas),
            isotopic_distribution_batch(formulas, processes=2),
        ):
            assert len(result) == len(expected)
            for got, want in zip(result, expected):
                np.testing.assert_allclose(got, want)
