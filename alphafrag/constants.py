"""Physical constants and library defaults for fragment computation.

This module provides the physical constants used throughout AlphaFrag and the
default numeric settings of the isotope envelope and fragment engine. All
values are sourced from NIST or established proteomics standards.

Formulas carry their own exact masses (see ``alphafrag.chemistry``); the
scalar constants here are for quick checks, m/z conversion and tests.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- ELECTRON_MASS matching the electron pseudo element in formulas
- Isotope spacing used for most-abundant-mass offsets
- Default isotope threshold and size limits for glycan compositions

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC isotopic compositions: https://ciaaw.org/isotopic-abundances.htm
"""

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Electron mass
# Source: NIST 2018 CODATA
ELECTRON_MASS = 0.000548579909065  # Da

# Water mass (H2O)
# Calculated: 2*1.00782503223 + 15.99491461957
H2O_MASS = 18.01056468403  # Da

# =============================================================================
# Isotope Envelope
# =============================================================================

# Average spacing between isotope peaks of peptides (13C - 12C)
ISOTOPE_SPACING = 1.0033548353399997  # Da

# Binomial terms below this probability are cut from the tail
DEFAULT_ISOTOPE_THRESHOLD = 1e-6

# Coarser cut when only the highest bin of the envelope is needed
MOST_ABUNDANT_THRESHOLD = 0.01

# =============================================================================
# Glycan Compositions
# =============================================================================

# Monosaccharide counts are stored as 16 bit unsigned integers upstream,
# compositions outside [0, MAX_GLYCAN_COUNT) produce no fragments
MAX_GLYCAN_COUNT = 2**16


# =============================================================================
# Mass Accuracy Validation
# =============================================================================

def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    This is a sanity check to catch copy-paste errors or typos.
    """
    # Proton mass should be ~1.007276, NOT 1.007825 (hydrogen atom)
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"

    # Electron mass should be ~0.000549
    assert 0.0005 < ELECTRON_MASS < 0.0006, f"ELECTRON_MASS is wrong: {ELECTRON_MASS}"

    # Water mass should be ~18.01
    assert 18.00 < H2O_MASS < 18.02, f"H2O_MASS is wrong: {H2O_MASS}"

    # Hydrogen atom = proton + electron
    h_atom_mass = PROTON_MASS + ELECTRON_MASS
    assert abs(h_atom_mass - 1.00782503223) < 0.000001, \
        f"H atom mass inconsistent: {h_atom_mass}"

    assert 1.003 < ISOTOPE_SPACING < 1.004, f"ISOTOPE_SPACING is wrong: {ISOTOPE_SPACING}"
