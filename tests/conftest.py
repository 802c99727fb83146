"""Pytest configuration for AlphaFrag tests.

This module provides common fixtures and configuration for all tests.
Everything is pure computation, no files or network are touched.
"""

import numpy as np
import pytest


@pytest.fixture
def simple_peptide():
    """Simple peptide for basic tests."""
    from alphafrag.sequence import parse_peptidoform
    return parse_peptidoform("PEPTIDE")


@pytest.fixture
def modified_peptide():
    """Peptide with an oxidised methionine and a phosphoserine."""
    from alphafrag.sequence import parse_peptidoform
    return parse_peptidoform("EM[Oxidation]EVEES[Phospho]PEK")


@pytest.fixture
def cross_linked_ion():
    """Two chains joined by DSS between their lysines."""
    from alphafrag.sequence import parse_peptidoform_ion
    return parse_peptidoform_ion("AK[X:DSS#XL1]LR//GK[#XL1]VR")


@pytest.fixture
def by_model():
    """Only plain b and y ions, charge 1 up to the precursor charge."""
    from alphafrag.fragments import FragmentationModel, PrimaryIonSeries
    return FragmentationModel(b=PrimaryIonSeries(), y=PrimaryIonSeries())


@pytest.fixture
def known_peptide_masses():
    """Known neutral monoisotopic peptide masses for validation."""
    return {
        "PEPTIDE": 799.359965,
        "ACDEK": 564.221363,
        "YGGFMTSEK": 1018.442984,
    }


@pytest.fixture
def proton_mass():
    """Proton mass constant."""
    from alphafrag.constants import PROTON_MASS
    return PROTON_MASS


@pytest.fixture
def h2o_mass():
    """Water mass constant."""
    from alphafrag.constants import H2O_MASS
    return H2O_MASS


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
