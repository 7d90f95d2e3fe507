""" A boolean logic predicate library """

import abc
from collections.abc import Sequence
from typing import TypeVar, Generic

T = TypeVar('T')

class Criteria(Generic[T], abc.ABC):
    @abc.abstractmethod
    def evaluate(self, universe:T) -> bool: ...

class Literal(Criteria[T]):
    def __init__(self, value:bool) -> None:
        self.value = value
    def evaluate(self, universe:T) -> bool:
        return self.value

class Negation(Criteria[T]):
    def __init__(self, inner:Criteria[T]) -> None:
        self.inner = inner

    def evaluate(self, universe:T) -> bool:
        return not self.inner.evaluate(universe)

class Disjunction(Criteria[T]):
    """ true if any term is true, short circuits. no terms is false. """
    def __init__(self, terms:Sequence[Criteria[T]]) -> None:
        self.terms = list(terms)

    def evaluate(self, universe:T) -> bool:
        return any(t.evaluate(universe) for t in self.terms)

class Conjunction(Criteria[T]):
    """ true if every term is true, short circuits. no terms is true. """
    def __init__(self, terms:Sequence[Criteria[T]]) -> None:
        self.terms = list(terms)

    def evaluate(self, universe:T) -> bool:
        return all(t.evaluate(universe) for t in self.terms)
