"""Unit tests for Multi, the set of alternative formulas."""

from alphafrag.chemistry import MolecularFormula, Multi, formula


class TestMulti:
    """Test cartesian arithmetic on alternatives."""

    def test_identity(self):
        """Test Multi.of(empty) is the additive identity."""
        options = Multi([formula("H2O"), formula("NH3")])
        assert options + Multi.of(MolecularFormula()) == options

    def test_cartesian_sum(self):
        """Test every pair of options is summed."""
        a = Multi([formula("H"), formula("H2")])
        b = Multi([formula("O"), formula("N")])
        total = a + b
        assert len(total) == 4
        assert formula("H2N") in total
        assert formula("HO") in total

    def test_deduplicated(self):
        """Test equal results collapse."""
        a = Multi([formula("CH2"), formula("C2")])
        b = Multi([formula("C"), formula("H2")])
        # CH2 + C == C2 + H2
        assert len(a + b) == 3

    def test_scalar_formula(self):
        """Test adding and subtracting a single formula."""
        options = Multi([formula("C2H4"), formula("C3H6")])
        assert (options + formula("O")).to_list() == [formula("C2H4O"), formula("C3H6O")]
        assert (formula("O") + options)[0] == formula("C2H4O")
        assert (options - formula("H2"))[1] == formula("C3H4")

    def test_extend_keeps_order(self):
        """Test the union keeps first-seen order."""
        union = Multi([formula("H")]).extend([formula("O"), formula("H")])
        assert union.to_list() == [formula("H"), formula("O")]

    def test_map(self):
        """Test mapping every option."""
        doubled = Multi([formula("H"), formula("O")]).map(lambda f: f * 2)
        assert doubled.to_list() == [formula("H2"), formula("O2")]

    def test_sum(self):
        """Test sum() starts from zero."""
        total = sum([Multi.of(formula("H")), Multi.of(formula("O"))])
        assert total == Multi.of(formula("HO"))

    def test_commutative(self):
        """Test a + b equals b + a although the options come in another order."""
        a = Multi([formula("H2O"), formula("NH3")])
        b = Multi([formula("C"), formula("O")])
        assert a + b == b + a
        assert hash(a + b) == hash(b + a)
        assert (a + b).to_list() != (b + a).to_list()

    def test_associative(self):
        """Test (a + b) + c equals a + (b + c)."""
        a = Multi([formula("H2O"), formula("NH3")])
        b = Multi([formula("C"), formula("O")])
        c = Multi([formula("S"), formula("P")])
        assert (a + b) + c == a + (b + c)

    def test_order_free_equality(self):
        """Test equality compares the options as a set."""
        assert Multi([formula("H"), formula("O")]) == Multi([formula("O"), formula("H")])
        assert Multi([formula("H"), formula("O")]) != Multi([formula("H")])
