"""Mutually exclusive alternatives with cartesian arithmetic.

A :class:`Multi` holds a small, ordered, deduplicated set of alternatives,
for example the two residue formulas an ambiguous amino acid B can stand
for. Adding two ``Multi`` values sums every pair of alternatives. Iteration
follows insertion order, equality ignores it.
"""

from typing import Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")


class Multi(Generic[T]):
    """Ordered set of alternative values.

    Examples
    --------
    >>> from alphafrag.chemistry.formula import formula
    >>> options = Multi([formula("H2O"), formula("NH3")])
    >>> len(options + Multi([formula("H")]))
    2
    """

    __slots__ = ("_options",)

    def __init__(self, options: Iterable[T] = ()):
        self._options = tuple(dict.fromkeys(options))

    @classmethod
    def of(cls, value: T) -> "Multi[T]":
        return cls((value,))

    def __iter__(self) -> Iterator[T]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __getitem__(self, index):
        return self._options[index]

    def __contains__(self, value) -> bool:
        return value in self._options

    def __eq__(self, other):
        if not isinstance(other, Multi):
            return NotImplemented
        return frozenset(self._options) == frozenset(other._options)

    def __hash__(self):
        return hash(frozenset(self._options))

    def __repr__(self) -> str:
        return f"Multi([{', '.join(str(o) for o in self._options)}])"

    def to_list(self):
        return list(self._options)

    def extend(self, other: Iterable[T]) -> "Multi[T]":
        """Union of the alternatives, keeping first-seen order."""
        return Multi(self._options + tuple(other))

    def map(self, function) -> "Multi":
        return Multi(function(option) for option in self._options)

    def __add__(self, other):
        if isinstance(other, Multi):
            return Multi(a + b for a in self._options for b in other._options)
        return Multi(a + other for a in self._options)

    def __radd__(self, other):
        if isinstance(other, int) and other == 0:
            return self
        return Multi(other + a for a in self._options)

    def __sub__(self, other):
        if isinstance(other, Multi):
            return Multi(a - b for a in self._options for b in other._options)
        return Multi(a - other for a in self._options)

    def __rsub__(self, other):
        return Multi(other - a for a in self._options)

    def __mul__(self, factor):
        return Multi(a * factor for a in self._options)

    __rmul__ = __mul__
