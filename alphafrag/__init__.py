"""AlphaFrag - theoretical fragments of (glyco)peptidoforms from exact formulas.

Formulas with isotopes and charges, isotope envelopes, modification and
cross-link placement rules, a minimal ProForma reader and a fragment engine
covering backbone, satellite, immonium, precursor, diagnostic and glycan
ions.
"""

__version__ = "0.1.0"

# Import main submodules for convenient access
from alphafrag import chemistry
from alphafrag import glycan
from alphafrag import sequence
from alphafrag import fragments
from alphafrag.errors import AlphaFragError

__all__ = [
    "chemistry",
    "glycan",
    "sequence",
    "fragments",
    "AlphaFragError",
]
